"""Corpus scanner.

Walks a directory tree and yields image files. Lazy: each call re-walks the
filesystem, and directories are listed only as the iterator advances.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

__all__ = [
    'DEFAULT_EXTENSIONS',
    'scan',
]

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: frozenset[str] = frozenset({'.jpg', '.jpeg'})


def scan(root: Path | str, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> Iterator[Path]:
    """Lazily iterate files under ``root`` whose suffix is in ``extensions``.

    Suffixes are compared case-insensitively and may be given with or without
    the leading dot. Paths are absolute, and each directory's entries are
    visited in sorted order. Symlinked directories are not followed.

    Args:
        root: Directory to scan.
        extensions: File suffixes to include.

    Raises:
        NotADirectoryError: If ``root`` is not an existing directory.
        OSError: If any directory cannot be listed. The scan stops there.
    """
    wanted = frozenset(ext.lower() if ext.startswith('.') else f'.{ext.lower()}' for ext in extensions)
    base = Path(root).resolve()
    if not base.is_dir():
        raise NotADirectoryError(f'Not a directory: {base}')

    logger.debug(f'[SCAN] {base} for {sorted(wanted)}')
    return _walk(base, wanted)


def _walk(directory: Path, wanted: frozenset[str]) -> Iterator[Path]:
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk(Path(entry.path), wanted)
        elif entry.is_file() and os.path.splitext(entry.name)[1].lower() in wanted:
            yield Path(entry.path)
