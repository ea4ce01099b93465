"""Indexing and description pipeline schemas.

Per-file records flowing through the pipelines and the counters they report.
Counters are observability only; nothing branches on them.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Literal

from photo_search.schemas.base import StrictModel
from photo_search.schemas.vectors import ContentId

__all__ = [
    'ChunkOutcome',
    'DescriptionResult',
    'FileProcessingError',
    'FileRecord',
    'IndexingResult',
    'PipelineStage',
    'ProgressCallback',
]

type PipelineStage = Literal['metadata', 'probe', 'embed', 'upsert', 'encode', 'describe', 'write']

# Called with (files_done, files_total) after each file is probed or described
type ProgressCallback = Callable[[int, int], None]


class FileRecord(StrictModel):
    """A scanned file with its stored description.

    Lives for one chunk only. A record that survives probing is pending
    embedding and upsert.
    """

    path: Path
    content_id: ContentId
    description: str


class FileProcessingError(StrictModel):
    """Single file or chunk failure with context."""

    file_path: str
    stage: PipelineStage
    error_type: str  # e.g. "MetadataError", "VectorStoreError"
    message: str


class ChunkOutcome(StrictModel):
    """Result of processing one chunk of files."""

    chunk_index: int
    files: int
    skipped_missing: int = 0  # No stored description
    skipped_unchanged: int = 0  # Already indexed with the same description
    probe_errors: int = 0  # Metadata read or vector-store probe failed
    pending: int = 0  # Survived probing, sent to embedding
    upserted: int = 0
    failed: bool = False  # Embedding or upsert failed for the whole chunk
    errors: Sequence[FileProcessingError] = ()


class IndexingResult(StrictModel):
    """Result of one EmbeddingIndexer run."""

    files_scanned: int
    files_skipped_missing: int
    files_skipped_unchanged: int
    files_failed: int  # Per-file metadata/probe failures plus files in failed chunks
    points_upserted: int
    chunks_total: int
    chunks_failed: int
    elapsed_seconds: float
    errors: Sequence[FileProcessingError]

    @classmethod
    def from_chunks(cls, outcomes: Sequence[ChunkOutcome], elapsed_seconds: float) -> IndexingResult:
        """Aggregate per-chunk outcomes."""
        return cls(
            files_scanned=sum(o.files for o in outcomes),
            files_skipped_missing=sum(o.skipped_missing for o in outcomes),
            files_skipped_unchanged=sum(o.skipped_unchanged for o in outcomes),
            files_failed=sum(o.probe_errors + (o.pending if o.failed else 0) for o in outcomes),
            points_upserted=sum(o.upserted for o in outcomes),
            chunks_total=len(outcomes),
            chunks_failed=sum(1 for o in outcomes if o.failed),
            elapsed_seconds=elapsed_seconds,
            errors=[err for o in outcomes for err in o.errors],
        )

    @property
    def error_summary(self) -> str:
        """Human-readable error summary."""
        if not self.errors:
            return 'All files indexed successfully'

        grouped: dict[str, int] = {}
        for err in self.errors:
            key = f'{err.stage}/{err.error_type}'
            grouped[key] = grouped.get(key, 0) + 1

        lines = [f'{len(self.errors)} errors:']
        for key, count in sorted(grouped.items()):
            lines.append(f'  {key}: {count}')
        return '\n'.join(lines)


class DescriptionResult(StrictModel):
    """Result of one DescriptionGenerator run."""

    files_scanned: int
    files_skipped: int  # Already carry a specific description
    files_described: int  # Description generated and written back
    files_failed: int
    elapsed_seconds: float
    errors: Sequence[FileProcessingError]
