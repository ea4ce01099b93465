"""Runtime configuration schema.

Settings come from the process environment, optionally seeded from a ``.env``
file in the working directory. Everything is validated once at startup so a
bad value fails before any file is touched.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Literal

import dotenv
import pydantic

from photo_search.errors import ConfigurationError
from photo_search.schemas.base import StrictModel

__all__ = [
    'ENV_FIELDS',
    'IndexerSettings',
    'LogLevel',
    'Settings',
    'load_settings',
]

logger = logging.getLogger(__name__)

type LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

type PositiveInt = Annotated[int, pydantic.Field(gt=0)]

# Environment variable -> Settings field
ENV_FIELDS: Mapping[str, str] = {
    'QDRANT_URL': 'qdrant_url',
    'QDRANT_COLLECTION': 'collection_name',
    'EMBEDDING_DIMENSIONS': 'embedding_dimensions',
    'SEARCH_LIMIT': 'search_limit',
    'CHAT_API_BASE': 'chat_api_base',
    'CHAT_API_KEY': 'chat_api_key',
    'CHAT_MODEL': 'chat_model',
    'CHAT_MODEL_IMAGE': 'image_model',
    'CHAT_MODEL_EMBEDDINGS': 'embedding_model',
    'INDEX_CHUNK_SIZE': 'chunk_size',
    'INDEX_PROBE_CONCURRENCY': 'probe_concurrency',
    'INDEX_CHUNK_DELAY': 'chunk_delay_seconds',
    'DESCRIBE_CONCURRENCY': 'describe_concurrency',
    'LOG_LEVEL': 'log_level',
}


class IndexerSettings(StrictModel):
    """Configuration for one EmbeddingIndexer.

    Passed explicitly at construction; the indexer reads nothing from the
    environment.
    """

    collection_name: str = 'photos'
    chunk_size: PositiveInt = 32
    # Bounds metadata reads and vector-store probes within one chunk
    probe_concurrency: PositiveInt = 8
    # Fixed pause between chunk embedding calls (provider rate limits)
    chunk_delay_seconds: Annotated[float, pydantic.Field(ge=0)] = 0.0


class Settings(StrictModel):
    """Process-wide settings for the command-line tools.

    Environment values arrive as strings, so this model relaxes strict mode
    to allow ``'32'`` -> ``32`` coercion. Unknown fields are still rejected.
    """

    model_config = pydantic.ConfigDict(
        extra='forbid',
        strict=False,
        frozen=True,
    )

    # Vector store
    qdrant_url: str = 'http://localhost:6333'
    collection_name: Annotated[str, pydantic.Field(min_length=1)] = 'photos'
    embedding_dimensions: PositiveInt = 1024
    search_limit: PositiveInt = 10

    # OpenAI-compatible model provider (Ollama by default)
    chat_api_base: str = 'http://localhost:11434/v1'
    chat_api_key: str = ''
    chat_model: str = 'llama3.1:8b'
    image_model: str = 'llava:13b'
    embedding_model: str = 'mxbai-embed-large'

    # Pipelines
    chunk_size: PositiveInt = 32
    probe_concurrency: PositiveInt = 8
    chunk_delay_seconds: Annotated[float, pydantic.Field(ge=0)] = 0.0
    describe_concurrency: PositiveInt = 2

    log_level: LogLevel = 'INFO'

    @pydantic.field_validator('qdrant_url', 'chat_api_base')
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        """Require an absolute http(s) URL; trailing slashes are dropped."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f'Expected an http(s) URL, got {v!r}')
        return v.rstrip('/')

    @pydantic.field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v

    def indexer_settings(self) -> IndexerSettings:
        """Project the indexer's share of the settings."""
        return IndexerSettings(
            collection_name=self.collection_name,
            chunk_size=self.chunk_size,
            probe_concurrency=self.probe_concurrency,
            chunk_delay_seconds=self.chunk_delay_seconds,
        )


def load_settings(environ: Mapping[str, str] | None = None, *, env_file: Path | None = None) -> Settings:
    """Build Settings from environment variables.

    Args:
        environ: Variables to read. Defaults to ``os.environ`` after loading
            ``env_file`` (or ``.env`` in the working directory) into it.
            Already-set variables win over the file.
        env_file: Explicit dotenv file. Ignored when ``environ`` is given.

    Returns:
        Validated settings. Unset or empty variables take their defaults.

    Raises:
        ConfigurationError: If any value fails validation.
    """
    if environ is None:
        loaded = dotenv.load_dotenv(env_file) if env_file else dotenv.load_dotenv()
        if loaded:
            logger.debug(f'Loaded environment from {env_file or ".env"}')
        environ = os.environ

    values = {field: environ[name] for name, field in ENV_FIELDS.items() if environ.get(name, '').strip()}
    try:
        return Settings.model_validate(values)
    except pydantic.ValidationError as exc:
        problems = '; '.join(
            f'{_env_name(str(err["loc"][0]))}: {err["msg"]}' if err['loc'] else err['msg'] for err in exc.errors()
        )
        raise ConfigurationError(f'Invalid configuration: {problems}') from exc


def _env_name(field: str) -> str:
    """Map a Settings field back to its environment variable name."""
    for name, mapped in ENV_FIELDS.items():
        if mapped == field:
            return name
    return field
