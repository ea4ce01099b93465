"""Query service - answers free-text questions from indexed descriptions.

embed question → nearest-neighbor search → rank → threshold → summarize.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from photo_search.clients.protocols import ModelClient, VectorStore
from photo_search.errors import EmbeddingMismatchError
from photo_search.schemas.query import QueryResult
from photo_search.schemas.vectors import PayloadFilter, SearchResult

__all__ = [
    'NO_MATCHES_MESSAGE',
    'QueryService',
    'filter_by_threshold',
    'rank_results',
]

logger = logging.getLogger(__name__)

NO_MATCHES_MESSAGE = 'No matching documents found.'


def rank_results(results: Iterable[SearchResult]) -> Sequence[SearchResult]:
    """Sort by score, highest first.

    Results without a score go last. Ties keep their input order.
    """
    return sorted(results, key=lambda r: (r.score is None, -r.score if r.score is not None else 0.0))


def filter_by_threshold(results: Iterable[SearchResult], threshold: float) -> Sequence[SearchResult]:
    """Keep results scoring at least ``threshold``, preserving order.

    Results without a score are dropped.
    """
    return [r for r in results if r.score is not None and r.score >= threshold]


class QueryService:
    """Semantic search over one collection."""

    def __init__(self, model: ModelClient, store: VectorStore, *, collection_name: str) -> None:
        self._model = model
        self._store = store
        self._collection_name = collection_name

    async def query(
        self,
        text: str,
        *,
        payload_filter: PayloadFilter | None = None,
        score_threshold: float | None = None,
        summarize: bool = True,
    ) -> QueryResult:
        """Answer a question.

        Args:
            text: The question.
            payload_filter: Exact-match payload conditions (e.g. ``{'folder': 'Rome'}``).
            score_threshold: Drop hits scoring below this.
            summarize: Ask the chat model to answer from the hits.

        Returns:
            Ranked hits, their descriptions and the answer. With no hits the
            answer is NO_MATCHES_MESSAGE and the chat model is not called.

        Raises:
            ValueError: If ``text`` is blank.
            ModelError: If embedding or summarization fails.
            VectorStoreError: If the search fails.
        """
        if not text.strip():
            raise ValueError('Query text must not be empty')

        vectors = await self._model.embed_many([text])
        if len(vectors) != 1:
            raise EmbeddingMismatchError(f'Requested 1 embedding, provider returned {len(vectors)}')

        hits = await self._store.search_points(self._collection_name, vectors[0], payload_filter or {})
        ranked = rank_results(hits)
        if score_threshold is not None:
            ranked = filter_by_threshold(ranked, score_threshold)
        logger.info(f'[QUERY] {len(hits)} hits, {len(ranked)} kept for {text!r}')

        descriptions = [hit.description for hit in ranked if hit.description]
        if not descriptions:
            logger.info(f'[QUERY] {NO_MATCHES_MESSAGE}')
            return QueryResult(question=text, hits=ranked, descriptions=[], answer=NO_MATCHES_MESSAGE)

        answer = await self._model.summarize(text, descriptions) if summarize else None
        return QueryResult(question=text, hits=ranked, descriptions=descriptions, answer=answer)
