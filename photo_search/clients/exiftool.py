"""ExifTool metadata store.

Reads and writes XMP/EXIF tags through pyexiftool, which drives a persistent
``exiftool`` process. Requires ExifTool on PATH.

Tags (ExifTool group-0 keys as returned with ``-G``):
- Description: written as ``XMP-dc:Description``, read back as ``XMP:Description``
- Persons: MWG face regions, ``XMP-mwg-rs:RegionName``
- Geolocation: ``Composite:GPSLatitude`` / ``Composite:GPSLongitude`` (signed decimal with ``-n``)

Each call opens its own ExifToolHelper so the store is safe to use from
worker threads. Every pyexiftool or OS error leaves as MetadataError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from exiftool import ExifToolHelper  # type: ignore[attr-defined]

from photo_search.boundary import LibraryBoundary
from photo_search.errors import MetadataError

__all__ = [
    'ExifToolMetadataStore',
]

logger = logging.getLogger(__name__)

_boundary = LibraryBoundary(MetadataError)

DESCRIPTION_WRITE_TAG = 'XMP-dc:Description'
DESCRIPTION_TAG = 'XMP:Description'
REGION_NAME_QUERY = 'XMP-mwg-rs:RegionName'
REGION_NAME_TAG = 'XMP:RegionName'
LATITUDE_TAG = 'Composite:GPSLatitude'
LONGITUDE_TAG = 'Composite:GPSLongitude'

type TagBlock = Mapping[str, Any]


class ExifToolMetadataStore:
    """MetadataStore backed by ExifTool."""

    def __init__(self, helper_factory: Callable[[], ExifToolHelper] = ExifToolHelper) -> None:
        """Initialize the store.

        Args:
            helper_factory: Builds a context-managed ExifToolHelper. The
                default uses ``exiftool`` from PATH with ``-G -n``.
        """
        self._helper_factory = helper_factory

    @_boundary
    def get_description(self, path: Path) -> str | None:
        """Stored description, None if absent or blank."""
        value = self._read(path, [DESCRIPTION_TAG]).get(DESCRIPTION_TAG)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @_boundary
    def set_description(self, path: Path, description: str) -> None:
        """Write the description in place (no ``_original`` backup)."""
        with self._helper_factory() as et:
            et.set_tags(
                files=[str(path)],
                tags={DESCRIPTION_WRITE_TAG: description},
                params=['-overwrite_original'],
            )
        logger.debug(f'Wrote description to {path.name}')

    @_boundary
    def get_persons(self, path: Path) -> Sequence[str]:
        """Names of tagged face regions, de-duplicated in order."""
        value = self._read(path, [REGION_NAME_QUERY]).get(REGION_NAME_TAG)
        if value is None:
            return []
        names = value if isinstance(value, (list, tuple)) else [value]
        return list(dict.fromkeys(str(name).strip() for name in names if str(name).strip()))

    @_boundary
    def get_geolocation(self, path: Path) -> str | None:
        """GPS position as ``"lat,lon"``, None unless both are present."""
        block = self._read(path, [LATITUDE_TAG, LONGITUDE_TAG])
        latitude = block.get(LATITUDE_TAG)
        longitude = block.get(LONGITUDE_TAG)
        if latitude in (None, '') or longitude in (None, ''):
            return None
        return f'{float(latitude)},{float(longitude)}'

    def _read(self, path: Path, tags: Sequence[str]) -> TagBlock:
        with self._helper_factory() as et:
            blocks: Sequence[TagBlock] = et.get_tags(files=[str(path)], tags=list(tags))
        return blocks[0] if blocks else {}
