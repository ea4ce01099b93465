"""Adapters for external services.

Each adapter satisfies one protocol from ``photo_search.clients.protocols``
and raises only ``photo_search.errors`` types.
"""

from __future__ import annotations

from photo_search.clients.exiftool import ExifToolMetadataStore
from photo_search.clients.images import PillowImageEncoder
from photo_search.clients.openai import OpenAIClient
from photo_search.clients.protocols import ImageEncoder, MetadataStore, ModelClient, VectorStore
from photo_search.clients.qdrant import QdrantVectorStore
from photo_search.schemas.config import Settings

__all__ = [
    'ExifToolMetadataStore',
    'ImageEncoder',
    'MetadataStore',
    'ModelClient',
    'OpenAIClient',
    'PillowImageEncoder',
    'QdrantVectorStore',
    'VectorStore',
    'create_model_client',
    'create_vector_store',
]


def create_model_client(settings: Settings) -> OpenAIClient:
    """Create the model client configured by ``settings``."""
    return OpenAIClient(
        settings.chat_api_base,
        chat_model=settings.chat_model,
        image_model=settings.image_model,
        embedding_model=settings.embedding_model,
        api_key=settings.chat_api_key,
    )


def create_vector_store(settings: Settings) -> QdrantVectorStore:
    """Create the vector store gateway configured by ``settings``."""
    return QdrantVectorStore(
        settings.qdrant_url,
        dimension=settings.embedding_dimensions,
        search_limit=settings.search_limit,
    )
