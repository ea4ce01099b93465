"""Description service - writes model-generated descriptions into image metadata.

For each image without a specific description: gather hints (tagged people,
folder name, GPS position), encode a thumbnail, ask the vision model, and
write the answer back into the file's XMP description. The indexing service
later embeds what this service wrote.

Failures are per file: logged, recorded, and the run continues.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from photo_search.clients.protocols import ImageEncoder, MetadataStore, ModelClient
from photo_search.errors import ImageEncodingError, MetadataError, ModelError
from photo_search.schemas.indexing import DescriptionResult, FileProcessingError, PipelineStage, ProgressCallback
from photo_search.services.scanner import DEFAULT_EXTENSIONS, scan
from photo_search.services.skip_policy import should_skip

__all__ = [
    'DescriptionGenerator',
]

logger = logging.getLogger(__name__)


@dataclass
class _FileOutcome:
    status: Literal['skipped', 'described', 'failed']
    error: FileProcessingError | None = None


class DescriptionGenerator:
    """Generate and store descriptions for images that lack a specific one."""

    DEFAULT_CONCURRENCY = 2

    def __init__(
        self,
        metadata: MetadataStore,
        encoder: ImageEncoder,
        model: ModelClient,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f'concurrency must be positive, got {concurrency}')
        self._metadata = metadata
        self._encoder = encoder
        self._model = model
        self._concurrency = concurrency

    async def describe_directory(
        self,
        root: Path | str,
        *,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        on_progress: ProgressCallback | None = None,
    ) -> DescriptionResult:
        """Scan ``root`` and describe every matching image.

        Raises:
            NotADirectoryError: If ``root`` is not a directory.
            OSError: If the tree cannot be walked.
        """
        files = await asyncio.to_thread(lambda: list(scan(root, extensions)))
        logger.info(f'[SCAN] Found {len(files)} files under {root}')
        return await self.describe_files(files, on_progress=on_progress)

    async def describe_files(
        self,
        files: Sequence[Path],
        *,
        on_progress: ProgressCallback | None = None,
    ) -> DescriptionResult:
        """Describe the given images with bounded concurrency."""
        t0 = time.perf_counter()
        semaphore = asyncio.Semaphore(self._concurrency)
        total = len(files)
        done = 0

        async def run(path: Path) -> _FileOutcome:
            nonlocal done
            async with semaphore:
                outcome = await self._describe_one(path)
            done += 1
            if on_progress is not None:
                on_progress(done, total)
            return outcome

        outcomes = await asyncio.gather(*(run(path) for path in files))

        result = DescriptionResult(
            files_scanned=total,
            files_skipped=sum(1 for o in outcomes if o.status == 'skipped'),
            files_described=sum(1 for o in outcomes if o.status == 'described'),
            files_failed=sum(1 for o in outcomes if o.status == 'failed'),
            elapsed_seconds=time.perf_counter() - t0,
            errors=[o.error for o in outcomes if o.error is not None],
        )
        logger.info(
            f'[DESCRIBE] Done: scanned={result.files_scanned} described={result.files_described} '
            f'skipped={result.files_skipped} failed={result.files_failed} in {result.elapsed_seconds:.1f}s'
        )
        return result

    async def _describe_one(self, path: Path) -> _FileOutcome:
        try:
            stored = await asyncio.to_thread(self._metadata.get_description, path)
        except MetadataError as exc:
            logger.error(f'[DESCRIBE] Cannot read metadata of {path}: {exc}')
            return _failed(path, 'metadata', exc)

        if should_skip(stored):
            logger.info(f'[DESCRIBE] Skipping {path.name}, already described: {stored!r}')
            return _FileOutcome('skipped')

        try:
            persons = await asyncio.to_thread(self._metadata.get_persons, path)
        except MetadataError as exc:
            logger.warning(f'[DESCRIBE] Cannot read persons of {path}, continuing without: {exc}')
            persons = []

        try:
            location = await asyncio.to_thread(self._metadata.get_geolocation, path)
        except MetadataError as exc:
            logger.warning(f'[DESCRIBE] Cannot read location of {path}, continuing without: {exc}')
            location = None

        try:
            image = await asyncio.to_thread(self._encoder.encode, path)
        except ImageEncodingError as exc:
            logger.error(f'[DESCRIBE] Cannot encode {path}: {exc}')
            return _failed(path, 'encode', exc)

        try:
            description = await self._model.describe(image, persons, path.parent.name, location=location)
        except ModelError as exc:
            logger.error(f'[DESCRIBE] Model failed for {path}: {exc}')
            return _failed(path, 'describe', exc)

        if not description.strip():
            logger.error(f'[DESCRIBE] Model returned an empty description for {path}')
            return _FileOutcome(
                'failed',
                FileProcessingError(
                    file_path=str(path),
                    stage='describe',
                    error_type='EmptyDescription',
                    message='Model returned an empty description',
                ),
            )

        try:
            await asyncio.to_thread(self._metadata.set_description, path, description)
        except MetadataError as exc:
            logger.error(f'[DESCRIBE] Cannot write description to {path}: {exc}')
            return _failed(path, 'write', exc)

        logger.info(f'[DESCRIBE] {path.name}: {description}')
        return _FileOutcome('described')


def _failed(path: Path, stage: PipelineStage, exc: Exception) -> _FileOutcome:
    return _FileOutcome(
        'failed',
        FileProcessingError(file_path=str(path), stage=stage, error_type=type(exc).__name__, message=str(exc)),
    )
