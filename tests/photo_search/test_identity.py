"""Tests for content identity derivation."""

from __future__ import annotations

from pathlib import Path

from photo_search.services.identity import identify


class TestIdentify:
    """Path -> u64 point id."""

    def test_pinned_value(self) -> None:
        """First 8 bytes of sha256('/test/path/file.jpg'), big-endian."""
        assert identify('/test/path/file.jpg') == 0xEDBC677613588766

    def test_deterministic(self) -> None:
        assert identify('/test/path/file.jpg') == identify('/test/path/file.jpg')

    def test_path_and_str_agree(self) -> None:
        assert identify(Path('/photos/2019/rome.jpg')) == identify('/photos/2019/rome.jpg')

    def test_distinct_paths_get_distinct_ids(self) -> None:
        paths = [f'/photos/album-{i}/IMG_{j:04d}.jpg' for i in range(20) for j in range(50)]
        assert len({identify(p) for p in paths}) == len(paths)

    def test_case_sensitive(self) -> None:
        assert identify('/photos/A.jpg') != identify('/photos/a.jpg')

    def test_fits_unsigned_64_bits(self) -> None:
        for path in ('', '/', '/ünïcødé/路径.jpg', '/x' * 500):
            assert 0 <= identify(path) < 2**64
