"""Shared pytest fixtures.

Service tests run against the in-memory fakes in ``tests/photo_search/fakes.py``.
Environment variables that configure photo search are cleared so a developer's
shell or ``.env`` cannot leak into tests.
"""

from __future__ import annotations

import pytest

from photo_search.schemas.config import ENV_FIELDS
from tests.photo_search import fakes


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove photo search settings from the process environment."""
    for name in ENV_FIELDS:
        # setenv first so variables a test loads from a dotenv file are removed on teardown
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)


@pytest.fixture
def vector_store() -> fakes.InMemoryVectorStore:
    return fakes.InMemoryVectorStore()


@pytest.fixture
def model() -> fakes.FakeModelClient:
    return fakes.FakeModelClient()


@pytest.fixture
def metadata() -> fakes.FakeMetadataStore:
    return fakes.FakeMetadataStore()


@pytest.fixture
def encoder() -> fakes.FakeImageEncoder:
    return fakes.FakeImageEncoder()
