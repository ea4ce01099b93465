"""Tests for environment-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from photo_search.errors import ConfigurationError
from photo_search.schemas.config import IndexerSettings, Settings, load_settings


class TestLoadSettings:
    """Environment variables -> validated Settings."""

    def test_defaults(self) -> None:
        settings = load_settings({})
        assert settings == Settings()
        assert settings.qdrant_url == 'http://localhost:6333'
        assert settings.collection_name == 'photos'
        assert settings.embedding_dimensions == 1024
        assert settings.chat_api_base == 'http://localhost:11434/v1'
        assert settings.log_level == 'INFO'

    def test_reads_variables(self) -> None:
        settings = load_settings(
            {
                'QDRANT_URL': 'https://qdrant.example.com:6333/',
                'QDRANT_COLLECTION': 'holidays',
                'EMBEDDING_DIMENSIONS': '768',
                'SEARCH_LIMIT': '5',
                'CHAT_MODEL_IMAGE': 'llava:7b',
                'INDEX_CHUNK_SIZE': '16',
                'INDEX_CHUNK_DELAY': '0.5',
            }
        )
        assert settings.qdrant_url == 'https://qdrant.example.com:6333'
        assert settings.collection_name == 'holidays'
        assert settings.embedding_dimensions == 768
        assert settings.search_limit == 5
        assert settings.image_model == 'llava:7b'
        assert settings.chunk_size == 16
        assert settings.chunk_delay_seconds == 0.5

    def test_empty_values_use_defaults(self) -> None:
        assert load_settings({'QDRANT_COLLECTION': '', 'SEARCH_LIMIT': '  '}) == Settings()

    def test_unrelated_variables_ignored(self) -> None:
        assert load_settings({'HOME': '/root', 'PATH': '/usr/bin'}) == Settings()

    def test_log_level_any_case(self) -> None:
        assert load_settings({'LOG_LEVEL': 'debug'}).log_level == 'DEBUG'

    @pytest.mark.parametrize(
        ('name', 'value'),
        [
            ('EMBEDDING_DIMENSIONS', 'many'),
            ('EMBEDDING_DIMENSIONS', '0'),
            ('INDEX_CHUNK_SIZE', '-1'),
            ('INDEX_CHUNK_DELAY', '-0.1'),
            ('LOG_LEVEL', 'LOUD'),
            ('QDRANT_URL', 'localhost:6333'),
            ('CHAT_API_BASE', 'ftp://models'),
        ],
    )
    def test_invalid_value_names_the_variable(self, name: str, value: str) -> None:
        with pytest.raises(ConfigurationError, match=name):
            load_settings({name: value})

    def test_reads_dotenv_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / 'photo.env'
        env_file.write_text('QDRANT_COLLECTION=from-file\nSEARCH_LIMIT=3\n')

        settings = load_settings(env_file=env_file)

        assert settings.collection_name == 'from-file'
        assert settings.search_limit == 3

    def test_process_environment_wins_over_dotenv(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / 'photo.env'
        env_file.write_text('QDRANT_COLLECTION=from-file\n')
        monkeypatch.setenv('QDRANT_COLLECTION', 'from-shell')

        assert load_settings(env_file=env_file).collection_name == 'from-shell'


class TestIndexerSettings:
    """The indexer's projection of Settings."""

    def test_projection(self) -> None:
        settings = load_settings({'QDRANT_COLLECTION': 'holidays', 'INDEX_PROBE_CONCURRENCY': '3'})
        assert settings.indexer_settings() == IndexerSettings(
            collection_name='holidays', chunk_size=32, probe_concurrency=3, chunk_delay_seconds=0.0
        )

    def test_rejects_zero_chunk_size(self) -> None:
        with pytest.raises(ValueError):
            IndexerSettings(chunk_size=0)

    def test_frozen(self) -> None:
        settings = IndexerSettings()
        with pytest.raises(ValueError):
            settings.chunk_size = 64  # type: ignore[misc]
