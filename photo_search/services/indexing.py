"""Indexing service - embeds stored photo descriptions into the vector store.

Coordinates: read description → probe store → embed → upsert, one chunk of
files at a time.

Architecture:
- Chunks are processed sequentially; at most one embedding call in flight
- Within a chunk, metadata reads and store probes fan out under a semaphore
- One embed_many and one upsert per chunk (fewer API calls)
- Embedding count validated against the pending tasks before pairing
- A failed file or chunk is logged and recorded, never fatal to the run
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from photo_search.clients.protocols import MetadataStore, ModelClient, VectorStore
from photo_search.errors import EmbeddingMismatchError, MetadataError, ModelError, PhotoSearchError, VectorStoreError
from photo_search.schemas.config import IndexerSettings
from photo_search.schemas.indexing import (
    ChunkOutcome,
    FileProcessingError,
    FileRecord,
    IndexingResult,
    PipelineStage,
    ProgressCallback,
)
from photo_search.schemas.vectors import VectorPoint
from photo_search.services.identity import identify
from photo_search.services.scanner import DEFAULT_EXTENSIONS, scan

__all__ = [
    'EmbeddingIndexer',
]

logger = logging.getLogger(__name__)


@dataclass
class _ProbeOutcome:
    """What probing decided for one file."""

    status: Literal['pending', 'missing', 'unchanged', 'error']
    record: FileRecord | None = None
    error: FileProcessingError | None = None


class EmbeddingIndexer:
    """Index stored photo descriptions as vectors.

    Idempotent: a file whose point already carries its current description is
    not re-embedded, so a second run over an unchanged corpus upserts nothing.

    Collaborators are injected; configuration is explicit.
    """

    def __init__(
        self,
        metadata: MetadataStore,
        model: ModelClient,
        store: VectorStore,
        settings: IndexerSettings,
    ) -> None:
        self._metadata = metadata
        self._model = model
        self._store = store
        self._settings = settings

    @property
    def settings(self) -> IndexerSettings:
        return self._settings

    async def index_directory(
        self,
        root: Path | str,
        *,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        recreate: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> IndexingResult:
        """Scan ``root`` and index every matching file.

        Args:
            root: Directory to scan recursively.
            extensions: File suffixes to include.
            recreate: Drop and recreate the collection first (full reindex).
            on_progress: Called with (files_done, files_total) after each probe.

        Raises:
            NotADirectoryError: If ``root`` is not a directory.
            OSError: If the tree cannot be walked.
            VectorStoreError: If the collection cannot be prepared.
        """
        files = await asyncio.to_thread(lambda: list(scan(root, extensions)))
        logger.info(f'[SCAN] Found {len(files)} files under {root}')

        name = self._settings.collection_name
        if recreate and await self._store.delete_collection(name):
            logger.info(f'Dropped collection {name!r} for full reindex')
        await self._store.create_collection(name)

        return await self.index(files, on_progress=on_progress)

    async def index(self, files: Sequence[Path], *, on_progress: ProgressCallback | None = None) -> IndexingResult:
        """Index the given files into the configured collection.

        The collection must exist.

        Args:
            files: Files to index, in processing order.
            on_progress: Called with (files_done, files_total) after each probe.

        Returns:
            Aggregated counters and per-file errors.
        """
        t0 = time.perf_counter()
        total = len(files)
        done = 0

        def tick() -> None:
            nonlocal done
            done += 1
            if on_progress is not None:
                on_progress(done, total)

        outcomes: list[ChunkOutcome] = []
        chunks = list(itertools.batched(files, self._settings.chunk_size))
        for chunk_index, chunk in enumerate(chunks):
            outcome = await self._process_chunk(chunk_index, chunk, tick)
            outcomes.append(outcome)

            # Pace embedding calls; nothing to wait for after the last chunk
            embedded = outcome.pending > 0
            if embedded and self._settings.chunk_delay_seconds and chunk_index < len(chunks) - 1:
                await asyncio.sleep(self._settings.chunk_delay_seconds)

        result = IndexingResult.from_chunks(outcomes, elapsed_seconds=time.perf_counter() - t0)
        logger.info(
            f'[INDEX] Done: scanned={result.files_scanned} upserted={result.points_upserted} '
            f'unchanged={result.files_skipped_unchanged} missing={result.files_skipped_missing} '
            f'failed={result.files_failed} chunks_failed={result.chunks_failed}/{result.chunks_total} '
            f'in {result.elapsed_seconds:.1f}s'
        )
        return result

    async def _process_chunk(
        self,
        chunk_index: int,
        chunk: Sequence[Path],
        tick: Callable[[], None],
    ) -> ChunkOutcome:
        semaphore = asyncio.Semaphore(self._settings.probe_concurrency)

        async def probe(path: Path) -> _ProbeOutcome:
            async with semaphore:
                outcome = await self._probe(path)
            tick()
            return outcome

        # gather preserves input order, so pending tasks keep scan order
        probes = await asyncio.gather(*(probe(path) for path in chunk))

        pending = [p.record for p in probes if p.record is not None]
        errors = [p.error for p in probes if p.error is not None]
        counts = {
            'chunk_index': chunk_index,
            'files': len(chunk),
            'skipped_missing': sum(1 for p in probes if p.status == 'missing'),
            'skipped_unchanged': sum(1 for p in probes if p.status == 'unchanged'),
            'probe_errors': len(errors),
            'pending': len(pending),
        }
        logger.debug(f'[PROBE] Chunk {chunk_index}: {counts}')

        if not pending:
            return ChunkOutcome(**counts, errors=errors)

        try:
            points = await self._embed(pending)
            await self._store.upsert_points(self._settings.collection_name, points)
        except (ModelError, VectorStoreError, EmbeddingMismatchError) as exc:
            stage: PipelineStage = 'upsert' if isinstance(exc, VectorStoreError) else 'embed'
            logger.error(f'[{stage.upper()}] Chunk {chunk_index} failed ({len(pending)} files): {exc}')
            errors.extend(_file_error(record.path, stage, exc) for record in pending)
            return ChunkOutcome(**counts, failed=True, errors=errors)

        logger.info(f'[UPSERT] Chunk {chunk_index}: {len(points)} points')
        return ChunkOutcome(**counts, upserted=len(points), errors=errors)

    async def _probe(self, path: Path) -> _ProbeOutcome:
        """Decide whether ``path`` needs embedding."""
        try:
            description = await asyncio.to_thread(self._metadata.get_description, path)
        except MetadataError as exc:
            logger.error(f'[PROBE] Cannot read metadata of {path}: {exc}')
            return _ProbeOutcome('error', error=_file_error(path, 'metadata', exc))

        if not description:
            logger.debug(f'[PROBE] No description, skipping {path}')
            return _ProbeOutcome('missing')

        content_id = identify(path)
        try:
            existing = await self._store.find_by_id(self._settings.collection_name, content_id)
        except VectorStoreError as exc:
            logger.warning(f'[PROBE] Vector store lookup failed for {path}: {exc}')
            return _ProbeOutcome('error', error=_file_error(path, 'probe', exc))

        if existing is not None and description in existing.payload.get('description', ''):
            logger.debug(f'[PROBE] Unchanged, skipping {path}')
            return _ProbeOutcome('unchanged')

        return _ProbeOutcome('pending', record=FileRecord(path=path, content_id=content_id, description=description))

    async def _embed(self, pending: Sequence[FileRecord]) -> Sequence[VectorPoint]:
        """Embed all pending descriptions in one call and pair them by position."""
        embeddings = await self._model.embed_many([record.description for record in pending])
        if len(embeddings) != len(pending):
            raise EmbeddingMismatchError(f'Requested {len(pending)} embeddings, provider returned {len(embeddings)}')
        logger.debug(f'[EMBED] {len(embeddings)} embeddings')

        return [
            VectorPoint.for_photo(record.content_id, record.path, record.description, embedding)
            for record, embedding in zip(pending, embeddings, strict=True)
        ]


def _file_error(path: Path, stage: PipelineStage, exc: PhotoSearchError) -> FileProcessingError:
    return FileProcessingError(
        file_path=str(path),
        stage=stage,
        error_type=type(exc).__name__,
        message=str(exc),
    )
