"""Pillow image encoder.

Prepares images for multimodal models: flatten to RGB, downscale to fit a
square box, JPEG-encode in memory and base64 the bytes. No temporary files.
"""

from __future__ import annotations

import base64
import logging
from io import BytesIO
from pathlib import Path

from PIL import Image

from photo_search.boundary import LibraryBoundary
from photo_search.errors import ImageEncodingError

__all__ = [
    'PillowImageEncoder',
]

logger = logging.getLogger(__name__)

_boundary = LibraryBoundary(ImageEncodingError)


class PillowImageEncoder:
    """ImageEncoder that produces base64 JPEG thumbnails."""

    # Native input size of LLaVA-style vision encoders
    DEFAULT_MAX_SIZE = 672
    DEFAULT_JPEG_QUALITY = 85

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> None:
        self._max_size = max_size
        self._jpeg_quality = jpeg_quality

    @_boundary
    def encode(self, path: Path) -> str:
        """Return ``path`` as a base64 JPEG no larger than max_size on either side."""
        with Image.open(path) as img:
            # Composite alpha onto white background if present
            if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
                alpha = img.convert('RGBA')
                background = Image.new('RGBA', alpha.size, (255, 255, 255, 255))
                rgb = Image.alpha_composite(background, alpha).convert('RGB')
            else:
                rgb = img.convert('RGB')

        # Downscale only, aspect ratio preserved
        rgb.thumbnail((self._max_size, self._max_size), Image.Resampling.LANCZOS)

        buffer = BytesIO()
        rgb.save(buffer, format='JPEG', quality=self._jpeg_quality)
        logger.debug(f'Encoded {path.name} at {rgb.width}x{rgb.height} ({buffer.tell()} bytes)')
        return base64.b64encode(buffer.getvalue()).decode('ascii')
