"""Qdrant vector store adapter.

Thin wrapper around qdrant-client implementing the VectorStore protocol.
Handles API calls and type translation only - no business logic.

Uses AsyncQdrantClient for non-blocking I/O. Hot-path calls (probe, upsert,
search) retry transient failures and sit behind a circuit breaker. Every
qdrant-client or transport exception leaves this module as VectorStoreError.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
import tenacity
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PointStruct,
    ScalarQuantization,
    ScalarQuantizationConfig,
    ScalarType,
    VectorParams,
)

from photo_search.boundary import LibraryBoundary
from photo_search.clients import _retry
from photo_search.concurrency import ConcurrencyTracker
from photo_search.errors import VectorStoreError
from photo_search.schemas.vectors import PayloadFilter, SearchResult, VectorPoint

__all__ = [
    'QdrantVectorStore',
]

logger = logging.getLogger(__name__)

_boundary = LibraryBoundary(VectorStoreError)

_retrying = tenacity.retry(
    retry=tenacity.retry_if_exception(_retry.is_retryable_qdrant_error),
    stop=tenacity.stop_after_attempt(3),
    wait=tenacity.wait_exponential(multiplier=0.5, max=5),
    before_sleep=_retry.log_qdrant_retry,
    reraise=True,
)


class QdrantVectorStore:
    """Async Qdrant gateway for photo description vectors.

    Collection name is passed explicitly to each operation. Dimension and
    distance for new collections are fixed at construction.
    """

    DEFAULT_URL = 'http://localhost:6333'
    DEFAULT_SEARCH_LIMIT = 10

    # Timeout raised from qdrant-client's 5s default for large batch upserts.
    # Explicit limits override qdrant-client's localhost defaults, which
    # disable keep-alive.
    DEFAULT_TIMEOUT = 10
    DEFAULT_POOL_SIZE = (os.cpu_count() or 8) * 2

    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        dimension: int,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        timeout: int = DEFAULT_TIMEOUT,
        pool_size: int = DEFAULT_POOL_SIZE,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            url: Qdrant REST URL. gRPC (port 6334) is preferred for data calls.
            dimension: Vector size for collections created by this gateway.
            search_limit: Top-K for similarity search.
            timeout: Request timeout in seconds.
            pool_size: HTTP connection pool size (default 2x CPU count).
            client: Pre-built client, e.g. ``AsyncQdrantClient(':memory:')``.
        """
        self._dimension = dimension
        self._search_limit = search_limit

        if client is None:
            limits = httpx.Limits(max_connections=pool_size, max_keepalive_connections=pool_size)
            client = AsyncQdrantClient(
                url=url,
                prefer_grpc=True,
                timeout=timeout,
                limits=limits,
            )
        self._client = client
        self._tracker = ConcurrencyTracker('QDRANT')

    @property
    def dimension(self) -> int:
        """Vector size used for new collections."""
        return self._dimension

    @_boundary
    async def create_collection(self, name: str) -> bool:
        """Create a cosine collection with int8 scalar quantization if missing.

        Returns:
            True if created, False if it already existed.
        """
        if await self._exists(name):
            logger.debug(f'Collection {name!r} already exists')
            return False

        await self._client.create_collection(
            collection_name=name,
            vectors_config=VectorParams(size=self._dimension, distance=Distance.COSINE),
            quantization_config=ScalarQuantization(
                scalar=ScalarQuantizationConfig(type=ScalarType.INT8, always_ram=True),
            ),
        )
        logger.info(f'Created collection {name!r} ({self._dimension} dims, cosine)')
        return True

    @_boundary
    async def delete_collection(self, name: str) -> bool:
        """Delete a collection. Returns False if it did not exist."""
        if not await self._exists(name):
            return False
        deleted = await self._client.delete_collection(name)
        logger.info(f'Deleted collection {name!r}')
        return bool(deleted)

    @_boundary
    async def get_collection_dimension(self, name: str) -> int | None:
        """Vector dimension of an existing collection, None if missing."""
        if not await self._exists(name):
            return None

        info = await self._client.get_collection(name)

        # Named vectors (dict) or a single unnamed vector config
        vectors_config = info.config.params.vectors
        if isinstance(vectors_config, Mapping):
            first = next(iter(vectors_config.values()), None)
            return first.size if first else None
        if vectors_config is not None:
            return vectors_config.size
        return None

    @_boundary
    @_retry.qdrant_breaker
    @_retrying
    async def upsert_points(self, collection: str, points: Sequence[VectorPoint]) -> bool:
        """Insert or replace a batch of points, waiting for the write to apply."""
        if not points:
            return True

        point_structs = [
            PointStruct(
                id=point.id,
                vector=list(point.embedding),
                payload=dict(point.payload),
            )
            for point in points
        ]

        async with self._tracker.track('upsert'):
            await self._client.upsert(
                collection_name=collection,
                points=point_structs,
                wait=True,
            )
        return True

    @_boundary
    @_retry.qdrant_breaker
    @_retrying
    async def find_by_id(self, collection: str, point_id: int) -> SearchResult | None:
        """Retrieve one point's payload by id."""
        async with self._tracker.track('retrieve'):
            records = await self._client.retrieve(
                collection_name=collection,
                ids=[point_id],
                with_payload=True,
                with_vectors=False,
            )

        if not records:
            return None
        record = records[0]
        return SearchResult(id=int(record.id), payload=_string_payload(record.payload))

    @_boundary
    @_retry.qdrant_breaker
    @_retrying
    async def search_points(
        self,
        collection: str,
        vector: Sequence[float],
        payload_filter: PayloadFilter | None = None,
    ) -> Sequence[SearchResult]:
        """Top-K cosine similarity search with optional exact-match filter."""
        query_filter = None
        if payload_filter:
            query_filter = Filter(
                must=[FieldCondition(key=key, match=MatchValue(value=value)) for key, value in payload_filter.items()]
            )

        async with self._tracker.track('query'):
            response = await self._client.query_points(
                collection_name=collection,
                query=list(vector),
                limit=self._search_limit,
                query_filter=query_filter,
                with_payload=True,
            )

        return [
            SearchResult(id=int(hit.id), score=hit.score, payload=_string_payload(hit.payload))
            for hit in response.points
        ]

    async def close(self) -> None:
        """Close the underlying client and log call statistics."""
        self._tracker.log_summary()
        await self._client.close()

    async def __aenter__(self) -> QdrantVectorStore:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def _exists(self, name: str) -> bool:
        collections = await self._client.get_collections()
        return any(c.name == name for c in collections.collections)


def _string_payload(payload: Mapping[str, Any] | None) -> Mapping[str, str]:
    """Coerce a raw Qdrant payload to the flat string map the services use."""
    if not payload:
        return {}
    return {key: value if isinstance(value, str) else str(value) for key, value in payload.items()}
