"""Exception hierarchy for photo search.

Adapters translate third-party exceptions into these types at their call
boundary (see ``photo_search.boundary``). Services catch them per file or per
chunk; anything else is a bug and propagates.
"""

from __future__ import annotations

__all__ = [
    'ConfigurationError',
    'EmbeddingMismatchError',
    'ImageEncodingError',
    'MetadataError',
    'ModelError',
    'PhotoSearchError',
    'VectorStoreError',
]


class PhotoSearchError(Exception):
    """Base class for all photo search errors."""


class ConfigurationError(PhotoSearchError):
    """Missing or invalid configuration. Fatal at startup."""


class MetadataError(PhotoSearchError):
    """Embedded file metadata could not be read or written."""


class ImageEncodingError(PhotoSearchError):
    """Image could not be decoded, resized or encoded."""


class ModelError(PhotoSearchError):
    """The model provider failed (network, HTTP status, malformed response)."""


class VectorStoreError(PhotoSearchError):
    """The vector store failed or is unreachable."""


class EmbeddingMismatchError(PhotoSearchError):
    """Embedding response does not line up with the request.

    Raised when the provider returns a different number of vectors than texts
    sent.
    """
