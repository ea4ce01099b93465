"""Startup checks tying collection geometry to the embedding model."""

from __future__ import annotations

import logging

from photo_search.clients.protocols import ModelClient, VectorStore
from photo_search.errors import ConfigurationError

__all__ = [
    'check_dimensions',
]

logger = logging.getLogger(__name__)

PROBE_TEXT = 'dimension probe'


async def check_dimensions(
    store: VectorStore,
    model: ModelClient,
    *,
    collection_name: str,
    dimension: int,
    recreate: bool = False,
) -> int | None:
    """Verify the configured dimension against the model and the collection.

    Embeds a short probe text to learn the model's real output size, then
    compares it and the existing collection (if any) with ``dimension``. A
    collection about to be recreated is not compared.

    Returns:
        The existing collection's dimension, or None if it does not exist yet.

    Raises:
        ConfigurationError: On any mismatch.
        ModelError: If the probe embedding fails.
        VectorStoreError: If the collection cannot be inspected.
    """
    probe = await model.embed_many([PROBE_TEXT])
    if len(probe) != 1:
        raise ConfigurationError(f'Embedding model returned {len(probe)} vectors for one probe text')

    model_dimension = len(probe[0])
    if model_dimension != dimension:
        raise ConfigurationError(
            f'Embedding model produces {model_dimension}-dimensional vectors, '
            f'but EMBEDDING_DIMENSIONS is {dimension}'
        )

    existing = await store.get_collection_dimension(collection_name)
    if existing is not None and existing != dimension and not recreate:
        raise ConfigurationError(
            f'Collection {collection_name!r} stores {existing}-dimensional vectors, '
            f'but EMBEDDING_DIMENSIONS is {dimension}. Reindex with --recreate to rebuild it.'
        )

    logger.debug(f'Dimensions consistent: {dimension} (collection exists: {existing is not None})')
    return existing
