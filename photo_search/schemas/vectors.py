"""Vector storage schemas.

Typed models for vector database operations. These define the interface
between the services and any VectorStore implementation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Annotated

import pydantic

from photo_search.schemas.base import StrictModel

__all__ = [
    'ContentId',
    'PayloadFilter',
    'SearchResult',
    'UNKNOWN_FOLDER',
    'VectorPoint',
]

U64_MAX = 2**64 - 1

# Point ids are unsigned 64-bit integers derived from the file path
type ContentId = Annotated[int, pydantic.Field(ge=0, le=U64_MAX)]

# Exact-match payload conditions, combined with AND
type PayloadFilter = Mapping[str, str]

# Folder payload value for paths without a parent directory name (e.g. '/a.jpg')
UNKNOWN_FOLDER = 'Unknown'


class VectorPoint(StrictModel):
    """A point to store in the vector store.

    Payload is a flat string map. Photos carry path, description and folder.
    """

    id: ContentId
    embedding: Sequence[float]
    payload: Mapping[str, str]

    @classmethod
    def for_photo(
        cls,
        content_id: int,
        path: Path,
        description: str,
        embedding: Sequence[float],
    ) -> VectorPoint:
        """Create a VectorPoint for an image and its description embedding."""
        return cls(
            id=content_id,
            embedding=embedding,
            payload={
                'path': str(path),
                'description': description,
                'folder': path.parent.name or UNKNOWN_FOLDER,
            },
        )


class SearchResult(StrictModel):
    """A point returned by the vector store.

    ``score`` is set for similarity search and None for direct id lookup.
    """

    id: ContentId
    score: float | None = None
    payload: Mapping[str, str] = {}

    @property
    def description(self) -> str | None:
        """Stored description, if the payload has one."""
        return self.payload.get('description')

    @property
    def path(self) -> str | None:
        """Stored file path, if the payload has one."""
        return self.payload.get('path')
