"""Query result schema."""

from __future__ import annotations

from collections.abc import Sequence

from photo_search.schemas.base import StrictModel
from photo_search.schemas.vectors import SearchResult

__all__ = [
    'QueryResult',
]


class QueryResult(StrictModel):
    """Answer to one free-text question.

    ``hits`` are ranked (and threshold-filtered when requested);
    ``descriptions`` are their description payloads in the same order.
    ``answer`` is the synthesized summary, the no-match message when nothing
    was found, or None when summarization was not requested.
    """

    question: str
    hits: Sequence[SearchResult]
    descriptions: Sequence[str]
    answer: str | None = None

    @property
    def found(self) -> bool:
        """Whether any matching document was found."""
        return bool(self.descriptions)
