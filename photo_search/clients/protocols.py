"""Protocol definitions for the collaborators the services consume.

Services depend only on these protocols. Concrete adapters live next to this
module; tests inject in-memory fakes.

Async protocols (ModelClient, VectorStore) wrap network services. The
synchronous ones (MetadataStore, ImageEncoder) touch local files and are run
in worker threads by the services.

Every implementation raises ``photo_search.errors`` types only.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from photo_search.schemas.vectors import PayloadFilter, SearchResult, VectorPoint

__all__ = [
    'ImageEncoder',
    'MetadataStore',
    'ModelClient',
    'VectorStore',
]


class ModelClient(Protocol):
    """Embedding, vision and chat model provider."""

    async def describe(
        self,
        image: str,
        persons: Sequence[str],
        folder_hint: str,
        *,
        location: str | None = None,
    ) -> str:
        """Describe a base64-encoded JPEG image.

        Args:
            image: Base64-encoded JPEG.
            persons: Names of people tagged in the image.
            folder_hint: Name of the containing folder (often an event or place).
            location: Optional "lat,lon" string.

        Returns:
            Description text.

        Raises:
            ModelError: If the provider fails.
        """
        ...

    async def embed_many(self, texts: Sequence[str]) -> Sequence[Sequence[float]]:
        """Embed texts in one request.

        Returns:
            One vector per input text, in input order.

        Raises:
            ModelError: If the provider fails.
        """
        ...

    async def summarize(self, question: str, descriptions: Sequence[str]) -> str:
        """Answer a question using the given descriptions as context.

        Raises:
            ModelError: If the provider fails.
        """
        ...

    async def close(self) -> None:
        """Release resources."""
        ...


class VectorStore(Protocol):
    """Vector database gateway.

    Dimension and distance of new collections are gateway configuration.
    """

    async def create_collection(self, name: str) -> bool:
        """Create a collection if missing.

        Returns:
            True if created, False if it already existed.
        """
        ...

    async def delete_collection(self, name: str) -> bool:
        """Delete a collection and all its points.

        Returns:
            True if a collection was deleted.
        """
        ...

    async def get_collection_dimension(self, name: str) -> int | None:
        """Vector dimension of an existing collection, None if it does not exist."""
        ...

    async def upsert_points(self, collection: str, points: Sequence[VectorPoint]) -> bool:
        """Insert or replace points in one batch.

        Raises:
            VectorStoreError: If the batch was not stored.
        """
        ...

    async def find_by_id(self, collection: str, point_id: int) -> SearchResult | None:
        """Fetch one point's payload. ``score`` is None on the result."""
        ...

    async def search_points(
        self,
        collection: str,
        vector: Sequence[float],
        payload_filter: PayloadFilter | None = None,
    ) -> Sequence[SearchResult]:
        """Nearest-neighbor search, top-K by configured limit.

        Args:
            collection: Collection name.
            vector: Query embedding.
            payload_filter: Exact-match conditions, all of which must hold.
        """
        ...

    async def close(self) -> None:
        """Release resources."""
        ...


class MetadataStore(Protocol):
    """Per-file embedded metadata (XMP/EXIF).

    Read methods return None or an empty list when the tag is absent and
    raise MetadataError when the file cannot be read.
    """

    def get_description(self, path: Path) -> str | None: ...

    def set_description(self, path: Path, description: str) -> None: ...

    def get_persons(self, path: Path) -> Sequence[str]: ...

    def get_geolocation(self, path: Path) -> str | None: ...


class ImageEncoder(Protocol):
    """Turns an image file into a model-ready payload."""

    def encode(self, path: Path) -> str:
        """Return the image as a base64-encoded JPEG.

        Raises:
            ImageEncodingError: If the image cannot be decoded or encoded.
        """
        ...
