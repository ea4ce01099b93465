"""Domain services for photo search."""

from __future__ import annotations

from photo_search.services.collections import check_dimensions
from photo_search.services.descriptions import DescriptionGenerator
from photo_search.services.identity import identify
from photo_search.services.indexing import EmbeddingIndexer
from photo_search.services.query import NO_MATCHES_MESSAGE, QueryService, filter_by_threshold, rank_results
from photo_search.services.scanner import DEFAULT_EXTENSIONS, scan
from photo_search.services.skip_policy import should_skip

__all__ = [
    'DEFAULT_EXTENSIONS',
    'DescriptionGenerator',
    'EmbeddingIndexer',
    'NO_MATCHES_MESSAGE',
    'QueryService',
    'check_dimensions',
    'filter_by_threshold',
    'identify',
    'rank_results',
    'scan',
    'should_skip',
]
