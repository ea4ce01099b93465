"""Pydantic schemas for photo search operations."""

from __future__ import annotations

from photo_search.schemas.base import StrictModel
from photo_search.schemas.config import IndexerSettings, Settings, load_settings
from photo_search.schemas.indexing import (
    ChunkOutcome,
    DescriptionResult,
    FileProcessingError,
    FileRecord,
    IndexingResult,
    ProgressCallback,
)
from photo_search.schemas.query import QueryResult
from photo_search.schemas.vectors import UNKNOWN_FOLDER, PayloadFilter, SearchResult, VectorPoint

__all__ = [
    'ChunkOutcome',
    'DescriptionResult',
    'FileProcessingError',
    'FileRecord',
    'IndexerSettings',
    'IndexingResult',
    'PayloadFilter',
    'ProgressCallback',
    'QueryResult',
    'SearchResult',
    'Settings',
    'StrictModel',
    'UNKNOWN_FOLDER',
    'VectorPoint',
    'load_settings',
]
