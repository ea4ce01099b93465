"""Tests for the startup dimension check."""

from __future__ import annotations

import asyncio

import pytest

from photo_search.errors import ConfigurationError
from photo_search.services.collections import check_dimensions
from tests.photo_search import fakes


def _check(
    store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient, dimension: int, recreate: bool = False
) -> int | None:
    return asyncio.run(
        check_dimensions(store, model, collection_name='photos', dimension=dimension, recreate=recreate)
    )


class TestCheckDimensions:
    """Model output and collection geometry must match the configuration."""

    def test_no_collection_yet(self, vector_store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient) -> None:
        assert _check(vector_store, model, fakes.DIMENSION) is None
        assert model.embed_calls == [['dimension probe']]

    def test_matching_collection(self, vector_store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient) -> None:
        vector_store.add_collection('photos', fakes.DIMENSION)
        assert _check(vector_store, model, fakes.DIMENSION) == fakes.DIMENSION

    def test_model_mismatch(self, vector_store: fakes.InMemoryVectorStore) -> None:
        with pytest.raises(ConfigurationError, match='EMBEDDING_DIMENSIONS'):
            _check(vector_store, fakes.FakeModelClient(dimension=8), fakes.DIMENSION)

    def test_collection_mismatch(self, vector_store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient) -> None:
        vector_store.add_collection('photos', 8)
        with pytest.raises(ConfigurationError, match='--recreate'):
            _check(vector_store, model, fakes.DIMENSION)

    def test_collection_mismatch_allowed_when_recreating(
        self, vector_store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        vector_store.add_collection('photos', 8)
        assert _check(vector_store, model, fakes.DIMENSION, recreate=True) == 8
