"""Decide whether an image already has a usable description."""

from __future__ import annotations

import re

__all__ = [
    'GENERIC_DESCRIPTION',
    'should_skip',
]

# Placeholder descriptions written by cameras and older tools ("Image", "A photo of ...")
GENERIC_DESCRIPTION = re.compile(r'\b(?:image|photo|picture|photograph)\b', re.IGNORECASE)


def should_skip(stored_description: str | None) -> bool:
    """True if the stored description is specific enough to keep.

    Missing, blank and generic descriptions (any whole-word mention of
    image/photo/picture/photograph, case-insensitive) need a new one.
    """
    if stored_description is None or not stored_description.strip():
        return False
    return GENERIC_DESCRIPTION.search(stored_description) is None
