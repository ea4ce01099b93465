"""Tests for EmbeddingIndexer - the chunked probe/embed/upsert coordinator."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

import pytest

from photo_search.schemas.config import IndexerSettings
from photo_search.schemas.indexing import IndexingResult
from photo_search.schemas.vectors import SearchResult, VectorPoint
from photo_search.services import indexing
from photo_search.services.identity import identify
from photo_search.services.indexing import EmbeddingIndexer
from tests.photo_search import fakes

COLLECTION = 'photos'


def _make_indexer(
    metadata: fakes.FakeMetadataStore,
    model: fakes.FakeModelClient,
    store: fakes.InMemoryVectorStore,
    **settings: int | float,
) -> EmbeddingIndexer:
    return EmbeddingIndexer(metadata, model, store, IndexerSettings(collection_name=COLLECTION, **settings))


def _index(indexer: EmbeddingIndexer, files: Sequence[Path]) -> IndexingResult:
    return asyncio.run(indexer.index(files))


def _files(*names: str) -> list[Path]:
    return [Path('/photos/trip') / name for name in names]


@pytest.fixture
def store() -> fakes.InMemoryVectorStore:
    store = fakes.InMemoryVectorStore()
    asyncio.run(store.create_collection(COLLECTION))
    return store


class TestEndToEnd:
    """Two files, one described, indexed twice."""

    def test_only_described_files_are_indexed(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        described, undescribed = _files('a.jpg', 'b.jpg')
        metadata = fakes.FakeMetadataStore({described: 'Harbour at dusk'})
        indexer = _make_indexer(metadata, model, store)

        result = _index(indexer, [described, undescribed])

        points = store.points(COLLECTION)
        assert list(points) == [identify(described)]
        point = points[identify(described)]
        assert point.payload == {'path': str(described), 'description': 'Harbour at dusk', 'folder': 'trip'}
        assert list(point.embedding) == fakes.embedding_for('Harbour at dusk')
        assert result.files_scanned == 2
        assert result.points_upserted == 1
        assert result.files_skipped_missing == 1
        assert result.errors == []

    def test_second_run_adds_nothing(self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient) -> None:
        described, undescribed = _files('a.jpg', 'b.jpg')
        metadata = fakes.FakeMetadataStore({described: 'Harbour at dusk'})
        indexer = _make_indexer(metadata, model, store)

        _index(indexer, [described, undescribed])
        second = _index(indexer, [described, undescribed])

        assert second.points_upserted == 0
        assert second.files_skipped_unchanged == 1
        assert len(model.embed_calls) == 1
        assert len(store.upsert_calls) == 1
        assert len(store.points(COLLECTION)) == 1

    def test_changed_description_is_reindexed(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        (path,) = _files('a.jpg')
        metadata = fakes.FakeMetadataStore({path: 'Harbour at dusk'})
        indexer = _make_indexer(metadata, model, store)
        _index(indexer, [path])

        metadata.descriptions[path] = 'Fishing boats in morning fog'
        result = _index(indexer, [path])

        assert result.points_upserted == 1
        assert store.points(COLLECTION)[identify(path)].payload['description'] == 'Fishing boats in morning fog'

    def test_contained_description_counts_as_unchanged(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        """The stored payload containing the current description is enough."""
        (path,) = _files('a.jpg')
        asyncio.run(
            store.upsert_points(
                COLLECTION,
                [VectorPoint.for_photo(identify(path), path, 'Harbour at dusk, two gulls', [0.5] * fakes.DIMENSION)],
            )
        )
        metadata = fakes.FakeMetadataStore({path: 'Harbour at dusk'})

        result = _index(_make_indexer(metadata, model, store), [path])

        assert result.files_skipped_unchanged == 1
        assert model.embed_calls == []


class TestBatching:
    """One embedding call and one upsert per chunk, paired by position."""

    def test_one_embed_and_upsert_per_chunk(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        files = _files(*(f'{i}.jpg' for i in range(7)))
        metadata = fakes.FakeMetadataStore({p: f'Description {i}' for i, p in enumerate(files)})

        result = _index(_make_indexer(metadata, model, store, chunk_size=3), files)

        assert [len(call) for call in model.embed_calls] == [3, 3, 1]
        assert [len(call) for call in store.upsert_calls] == [3, 3, 1]
        assert result.chunks_total == 3
        assert result.points_upserted == 7

    def test_embedding_order_matches_task_order(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        files = _files('a.jpg', 'b.jpg', 'c.jpg')
        metadata = fakes.FakeMetadataStore({p: f'Scene {p.stem}' for p in files})

        _index(_make_indexer(metadata, model, store), files)

        assert model.embed_calls == [['Scene a', 'Scene b', 'Scene c']]
        for path in files:
            point = store.points(COLLECTION)[identify(path)]
            assert list(point.embedding) == fakes.embedding_for(f'Scene {path.stem}')

    def test_scrambled_response_scrambles_association(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        """Vectors are paired by position; a reversed response is stored reversed."""
        first, second = _files('a.jpg', 'b.jpg')
        metadata = fakes.FakeMetadataStore({first: 'Scene a', second: 'Scene b'})
        model.reorder = lambda vectors: list(reversed(vectors))

        _index(_make_indexer(metadata, model, store), [first, second])

        points = store.points(COLLECTION)
        assert list(points[identify(first)].embedding) == fakes.embedding_for('Scene b')
        assert list(points[identify(second)].embedding) == fakes.embedding_for('Scene a')
        assert points[identify(first)].payload['description'] == 'Scene a'

    def test_short_response_fails_chunk(self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient) -> None:
        files = _files('a.jpg', 'b.jpg')
        metadata = fakes.FakeMetadataStore({p: f'Scene {p.stem}' for p in files})
        model.reorder = lambda vectors: vectors[:-1]

        result = _index(_make_indexer(metadata, model, store), files)

        assert store.upsert_calls == []
        assert result.chunks_failed == 1
        assert result.files_failed == 2
        assert {err.error_type for err in result.errors} == {'EmbeddingMismatchError'}
        assert {err.stage for err in result.errors} == {'embed'}

    def test_nothing_pending_skips_embedding(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        files = _files('a.jpg', 'b.jpg')

        result = _index(_make_indexer(fakes.FakeMetadataStore(), model, store), files)

        assert model.embed_calls == []
        assert store.upsert_calls == []
        assert result.files_skipped_missing == 2

    def test_empty_file_list(self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient) -> None:
        result = _index(_make_indexer(fakes.FakeMetadataStore(), model, store), [])
        assert result.chunks_total == 0
        assert result.files_scanned == 0


class TestFailureIsolation:
    """Per-file and per-chunk failures are recorded, never fatal."""

    def test_failed_embedding_chunk_does_not_stop_run(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        files = _files('a.jpg', 'b.jpg', 'c.jpg')
        metadata = fakes.FakeMetadataStore({p: f'Scene {p.stem}' for p in files})
        model.fail_embed_for = {'Scene b'}

        result = _index(_make_indexer(metadata, model, store, chunk_size=1), files)

        assert set(store.points(COLLECTION)) == {identify(files[0]), identify(files[2])}
        assert result.chunks_failed == 1
        assert result.points_upserted == 2
        assert [err.file_path for err in result.errors] == [str(files[1])]
        assert result.errors[0].error_type == 'ModelError'

    def test_failed_upsert_is_recorded(self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient) -> None:
        files = _files('a.jpg', 'b.jpg')
        metadata = fakes.FakeMetadataStore({p: f'Scene {p.stem}' for p in files})
        store.fail_upsert = True

        result = _index(_make_indexer(metadata, model, store), files)

        assert result.chunks_failed == 1
        assert result.points_upserted == 0
        assert {err.stage for err in result.errors} == {'upsert'}

    def test_unreadable_metadata_drops_only_that_file(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        good, bad = _files('a.jpg', 'b.jpg')
        metadata = fakes.FakeMetadataStore({good: 'Scene a', bad: 'Scene b'})
        metadata.unreadable.add(bad)

        result = _index(_make_indexer(metadata, model, store), [good, bad])

        assert list(store.points(COLLECTION)) == [identify(good)]
        assert result.files_failed == 1
        assert result.chunks_failed == 0
        assert result.errors[0].stage == 'metadata'

    def test_probe_failure_drops_only_that_file(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        good, bad = _files('a.jpg', 'b.jpg')
        metadata = fakes.FakeMetadataStore({good: 'Scene a', bad: 'Scene b'})
        store.fail_find_for.add(identify(bad))

        result = _index(_make_indexer(metadata, model, store), [good, bad])

        assert model.embed_calls == [['Scene a']]
        assert result.files_failed == 1
        assert result.errors[0].stage == 'probe'
        assert result.errors[0].error_type == 'VectorStoreError'


class _SlowProbeStore(fakes.InMemoryVectorStore):
    """Records how many probes overlap."""

    def __init__(self) -> None:
        super().__init__()
        self.in_flight = 0
        self.peak = 0

    async def find_by_id(self, collection: str, point_id: int) -> SearchResult | None:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return await super().find_by_id(collection, point_id)
        finally:
            self.in_flight -= 1


class TestConcurrency:
    """Probe fan-out, pacing and progress reporting."""

    def test_probe_concurrency_is_bounded(self, model: fakes.FakeModelClient) -> None:
        store = _SlowProbeStore()
        asyncio.run(store.create_collection(COLLECTION))
        files = _files(*(f'{i}.jpg' for i in range(12)))
        metadata = fakes.FakeMetadataStore({p: f'Scene {p.stem}' for p in files})

        _index(_make_indexer(metadata, model, store, chunk_size=12, probe_concurrency=3), files)

        assert 2 <= store.peak <= 3

    def test_delay_between_chunk_embedding_calls(
        self,
        store: fakes.InMemoryVectorStore,
        model: fakes.FakeModelClient,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        delays: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            delays.append(seconds)

        monkeypatch.setattr(indexing.asyncio, 'sleep', fake_sleep)
        files = _files('a.jpg', 'b.jpg', 'c.jpg')
        metadata = fakes.FakeMetadataStore({p: f'Scene {p.stem}' for p in files})

        _index(_make_indexer(metadata, model, store, chunk_size=1, chunk_delay_seconds=0.25), files)

        assert delays == [0.25, 0.25]

    def test_progress_reports_every_probed_file(
        self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        files = _files('a.jpg', 'b.jpg', 'c.jpg')
        metadata = fakes.FakeMetadataStore({files[0]: 'Scene a'})
        calls: list[tuple[int, int]] = []

        indexer = _make_indexer(metadata, model, store, chunk_size=2)
        asyncio.run(indexer.index(files, on_progress=lambda done, total: calls.append((done, total))))

        assert calls == [(1, 3), (2, 3), (3, 3)]


class TestIndexDirectory:
    """Scanning and collection preparation."""

    def test_scans_and_creates_collection(self, tmp_path: Path, model: fakes.FakeModelClient) -> None:
        root = tmp_path.resolve()
        for rel in ('rome/a.jpg', 'rome/b.JPEG', 'rome/c.png'):
            (root / rel).parent.mkdir(parents=True, exist_ok=True)
            (root / rel).write_bytes(b'')
        metadata = fakes.FakeMetadataStore({root / 'rome' / 'a.jpg': 'Trevi fountain at night'})
        store = fakes.InMemoryVectorStore()

        indexer = _make_indexer(metadata, model, store)
        result = asyncio.run(indexer.index_directory(root))

        assert result.files_scanned == 2
        assert result.points_upserted == 1
        point = store.points(COLLECTION)[identify(root / 'rome' / 'a.jpg')]
        assert point.payload['folder'] == 'rome'

    def test_recreate_drops_existing_points(
        self, tmp_path: Path, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient
    ) -> None:
        stale = VectorPoint(id=1, embedding=[0.5] * fakes.DIMENSION, payload={'description': 'stale'})
        asyncio.run(store.upsert_points(COLLECTION, [stale]))

        indexer = _make_indexer(fakes.FakeMetadataStore(), model, store)
        asyncio.run(indexer.index_directory(tmp_path, recreate=True))

        assert store.points(COLLECTION) == {}

    def test_missing_root_raises(self, store: fakes.InMemoryVectorStore, model: fakes.FakeModelClient) -> None:
        indexer = _make_indexer(fakes.FakeMetadataStore(), model, store)
        with pytest.raises(NotADirectoryError):
            asyncio.run(indexer.index_directory('/definitely/not/here'))
