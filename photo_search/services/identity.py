"""Content identity for indexed files.

A file's vector-store point id is derived from its path string, so the same
file maps to the same point across runs, processes and platforms.
"""

from __future__ import annotations

import hashlib
from os import PathLike

__all__ = [
    'identify',
]


def identify(path: str | PathLike[str]) -> int:
    """Stable unsigned 64-bit id for a path.

    First 8 bytes of SHA-256 over the UTF-8 path string, read big-endian.
    The string is hashed exactly as given: no normalization or case folding.
    Callers pass the absolute paths produced by the scanner.

    Args:
        path: File path (str or Path).

    Returns:
        Integer in ``[0, 2**64)``.
    """
    digest = hashlib.sha256(str(path).encode('utf-8')).digest()
    return int.from_bytes(digest[:8], 'big')
