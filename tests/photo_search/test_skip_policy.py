"""Tests for the description skip policy."""

from __future__ import annotations

import pytest

from photo_search.services.skip_policy import should_skip


class TestShouldSkip:
    """Keep specific descriptions; reprocess missing and generic ones."""

    def test_missing_description_is_processed(self) -> None:
        assert should_skip(None) is False

    def test_specific_description_is_kept(self) -> None:
        assert should_skip('random description') is True

    @pytest.mark.parametrize(
        'description',
        [
            'this is an image of nature',
            'This PICTURE shows mountains',
            'Photo',
            'A photograph of the harbour',
            'image',
        ],
    )
    def test_generic_description_is_processed(self, description: str) -> None:
        assert should_skip(description) is False

    @pytest.mark.parametrize('description', ['imagery of the coast', 'photos from the trip', 'photographer at work'])
    def test_whole_words_only(self, description: str) -> None:
        """Longer words containing a generic term are specific."""
        assert should_skip(description) is True

    @pytest.mark.parametrize('description', ['', '   ', '\n\t'])
    def test_blank_description_is_processed(self, description: str) -> None:
        assert should_skip(description) is False
