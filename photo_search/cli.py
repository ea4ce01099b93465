"""Command-line entry points.

    photo-search-describe <folder>   write model descriptions into image metadata
    photo-search-index <folder>      embed stored descriptions into Qdrant
    photo-search-query <question>    answer a question from the index

Configuration comes from the environment (and ``.env``); see
``photo_search.schemas.config``. Exit status is 0 on completion (per-file
failures are reported, not fatal), 1 on configuration or startup errors, and
2 on usage errors.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Coroutine, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import rich.console
import rich.logging
import rich.progress
import rich.table

from photo_search import __version__
from photo_search.clients import (
    ExifToolMetadataStore,
    PillowImageEncoder,
    create_model_client,
    create_vector_store,
)
from photo_search.errors import ConfigurationError, PhotoSearchError
from photo_search.schemas.config import Settings, load_settings
from photo_search.schemas.indexing import DescriptionResult, IndexingResult, ProgressCallback
from photo_search.schemas.query import QueryResult
from photo_search.services.collections import check_dimensions
from photo_search.services.descriptions import DescriptionGenerator
from photo_search.services.indexing import EmbeddingIndexer
from photo_search.services.query import QueryService

__all__ = [
    'describe_main',
    'index_main',
    'query_main',
]

logger = logging.getLogger(__name__)

# Progress bars and logs share stderr; answers go to stdout
console = rich.console.Console(stderr=True)
stdout = rich.console.Console()

# Third-party loggers that are noisy at INFO
NOISY_LOGGERS = ('httpx', 'httpcore', 'PIL', 'exiftool', 'grpc')


def describe_main(argv: Sequence[str] | None = None) -> int:
    """Entry point for ``photo-search-describe``."""
    parser = _parser('photo-search-describe', 'Generate descriptions for images and store them in XMP metadata.')
    parser.add_argument('folder', type=Path, help='root folder to scan for JPEG images')
    args = parser.parse_args(argv)

    settings = _startup()
    if settings is None:
        return 1
    return _run(_describe(settings, args.folder))


def index_main(argv: Sequence[str] | None = None) -> int:
    """Entry point for ``photo-search-index``."""
    parser = _parser('photo-search-index', 'Embed stored image descriptions into the vector store.')
    parser.add_argument('folder', type=Path, help='root folder to scan for JPEG images')
    parser.add_argument('--recreate', action='store_true', help='drop and recreate the collection first')
    args = parser.parse_args(argv)

    settings = _startup()
    if settings is None:
        return 1
    return _run(_index(settings, args.folder, recreate=args.recreate))


def query_main(argv: Sequence[str] | None = None) -> int:
    """Entry point for ``photo-search-query``."""
    parser = _parser('photo-search-query', 'Answer a question using the indexed image descriptions.')
    parser.add_argument('question', help='free-text question, e.g. "beach sunsets in Italy"')
    parser.add_argument('--folder', help='only match images from this folder name')
    parser.add_argument('--threshold', type=float, help='drop matches scoring below this (0-1)')
    parser.add_argument('--no-summary', action='store_true', help='list matches without asking the chat model')
    args = parser.parse_args(argv)
    if not args.question.strip():
        parser.error('question must not be empty')

    settings = _startup()
    if settings is None:
        return 1
    payload_filter = {'folder': args.folder} if args.folder else None
    return _run(
        _query(
            settings,
            args.question,
            payload_filter=payload_filter,
            score_threshold=args.threshold,
            summarize=not args.no_summary,
        )
    )


async def _describe(settings: Settings, folder: Path) -> int:
    async with create_model_client(settings) as model:
        generator = DescriptionGenerator(
            ExifToolMetadataStore(),
            PillowImageEncoder(),
            model,
            concurrency=settings.describe_concurrency,
        )
        with _progress('Describing') as on_progress:
            result = await generator.describe_directory(folder, on_progress=on_progress)

    _print_description_summary(result)
    return 0


async def _index(settings: Settings, folder: Path, *, recreate: bool) -> int:
    async with create_model_client(settings) as model, create_vector_store(settings) as store:
        await check_dimensions(
            store,
            model,
            collection_name=settings.collection_name,
            dimension=settings.embedding_dimensions,
            recreate=recreate,
        )
        indexer = EmbeddingIndexer(ExifToolMetadataStore(), model, store, settings.indexer_settings())
        with _progress('Indexing') as on_progress:
            result = await indexer.index_directory(folder, recreate=recreate, on_progress=on_progress)

    _print_indexing_summary(result)
    return 0


async def _query(
    settings: Settings,
    question: str,
    *,
    payload_filter: dict[str, str] | None,
    score_threshold: float | None,
    summarize: bool,
) -> int:
    async with create_model_client(settings) as model, create_vector_store(settings) as store:
        existing = await check_dimensions(
            store,
            model,
            collection_name=settings.collection_name,
            dimension=settings.embedding_dimensions,
        )
        if existing is None:
            console.print(
                f'[red]Collection {settings.collection_name!r} does not exist.[/red] Run photo-search-index first.'
            )
            return 1

        service = QueryService(model, store, collection_name=settings.collection_name)
        result = await service.query(
            question,
            payload_filter=payload_filter,
            score_threshold=score_threshold,
            summarize=summarize,
        )

    _print_query_result(result)
    return 0


def _parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def _startup() -> Settings | None:
    """Load settings and configure logging. None if configuration is invalid."""
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        console.print(f'[red]{exc}[/red]')
        return None

    logging.basicConfig(
        level=settings.log_level,
        format='%(name)s: %(message)s',
        handlers=[rich.logging.RichHandler(console=console, show_path=False)],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return settings


def _run(main: Coroutine[Any, Any, int]) -> int:
    """Run a pipeline coroutine, mapping startup failures to exit status 1."""
    try:
        return asyncio.run(main)
    except ConfigurationError as exc:
        console.print(f'[red]Configuration error:[/red] {exc}')
    except PhotoSearchError as exc:
        console.print(f'[red]{type(exc).__name__}:[/red] {exc}')
    except OSError as exc:
        console.print(f'[red]Cannot scan folder:[/red] {exc}')
    except KeyboardInterrupt:
        console.print('Interrupted')
        return 130
    return 1


@contextmanager
def _progress(label: str) -> Iterator[ProgressCallback]:
    """Progress bar over files; yields the callback the services report to."""
    with rich.progress.Progress(
        rich.progress.TextColumn('[bold]{task.description}'),
        rich.progress.BarColumn(),
        rich.progress.MofNCompleteColumn(),
        rich.progress.TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(label, total=None)

        def on_progress(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        yield on_progress


def _print_description_summary(result: DescriptionResult) -> None:
    console.print(
        f'Described {result.files_described} of {result.files_scanned} images '
        f'({result.files_skipped} already described, {result.files_failed} failed) '
        f'in {result.elapsed_seconds:.1f}s'
    )
    for err in result.errors:
        console.print(f'  [yellow]{err.stage}[/yellow] {err.file_path}: {err.message}')


def _print_indexing_summary(result: IndexingResult) -> None:
    console.print(
        f'Indexed {result.points_upserted} of {result.files_scanned} images '
        f'({result.files_skipped_unchanged} unchanged, {result.files_skipped_missing} without description, '
        f'{result.files_failed} failed) in {result.elapsed_seconds:.1f}s'
    )
    if result.errors:
        console.print(result.error_summary)


def _print_query_result(result: QueryResult) -> None:
    if result.hits:
        table = rich.table.Table('Score', 'Folder', 'Path', 'Description', title=result.question)
        for hit in result.hits:
            score = f'{hit.score:.3f}' if hit.score is not None else '-'
            table.add_row(score, hit.payload.get('folder', ''), hit.path or '', hit.description or '')
        console.print(table)

    if result.answer is not None:
        stdout.print(result.answer)
    else:
        for description in result.descriptions:
            stdout.print(description)

