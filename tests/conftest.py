"""
Pytest configuration and shared fixtures.

This module provides:
- Shared fixtures for all tests
- Hypothesis profile configuration
- Test environment setup
"""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from hypothesis import settings as hypothesis_settings, Verbosity
from pymongo.errors import BulkWriteError

# Configure Hypothesis profiles
hypothesis_settings.register_profile(
    "ci",
    max_examples=100,
    deadline=1000,
    verbosity=Verbosity.normal,
)
hypothesis_settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
    verbosity=Verbosity.verbose,
)
hypothesis_settings.register_profile(
    "debug",
    max_examples=10,
    deadline=None,
    verbosity=Verbosity.verbose,
)

# Load profile from environment or use dev
profile = os.environ.get("HYPOTHESIS_PROFILE", "dev")
hypothesis_settings.load_profile(profile)

TEST_DIMENSION = 8


class InMemoryCollection:
    """
    Minimal stand-in for a pymongo collection.

    Supports the calls the knowledge store makes and records every
    ``insert_many`` batch so tests can inspect batching.
    """

    def __init__(self, indexes: list[str] | None = None) -> None:
        self.documents: list[dict[str, Any]] = []
        self.index_names: list[str] = indexes if indexes is not None else ["_id_"]
        self.insert_calls: list[list[dict[str, Any]]] = []
        self.create_index_calls: list[dict[str, Any]] = []

    def list_indexes(self) -> list[dict[str, Any]]:
        return [{"name": name} for name in self.index_names]

    def create_index(self, keys: list[tuple[str, int]], name: str, unique: bool = False) -> str:
        self.create_index_calls.append({"keys": keys, "name": name, "unique": unique})
        self.index_names.append(name)
        return name

    def insert_many(self, documents: list[dict[str, Any]], ordered: bool = True) -> MagicMock:
        self.insert_calls.append(list(documents))
        seen = {doc["uuid"] for doc in self.documents}
        inserted, errors = [], []
        for i, doc in enumerate(documents):
            if doc["uuid"] in seen:
                errors.append({"index": i, "code": 11000, "errmsg": "duplicate key"})
                if ordered:
                    break
                continue
            seen.add(doc["uuid"])
            self.documents.append(doc)
            inserted.append(doc["uuid"])
        if errors:
            raise BulkWriteError({"nInserted": len(inserted), "writeErrors": errors})
        return MagicMock(inserted_ids=inserted)

    def delete_many(self, query: dict[str, Any]) -> MagicMock:
        kept = [d for d in self.documents if not self._matches(d, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return MagicMock(deleted_count=deleted)

    def count_documents(self, query: dict[str, Any]) -> int:
        return sum(1 for d in self.documents if self._matches(d, query))

    @staticmethod
    def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
        return all(document.get(key) == value for key, value in query.items())


@pytest.fixture
def in_memory_collection() -> InMemoryCollection:
    """Create an empty in-memory collection."""
    return InMemoryCollection()


@pytest.fixture
def mock_database(in_memory_collection: InMemoryCollection) -> MagicMock:
    """Create a mock DatabaseClient serving the in-memory collection."""
    database = MagicMock()
    database.get_collection.return_value = in_memory_collection
    database.health_check.return_value = True
    return database


@pytest.fixture
def knowledge_store(mock_database: MagicMock) -> Any:
    """Create a KnowledgeStore backed by the in-memory collection."""
    from src.core.vectorstore import KnowledgeStore

    return KnowledgeStore(mock_database, "test_db", "test_knowledges")


@pytest.fixture
def mock_embeddings() -> MagicMock:
    """Create mock embeddings that return consistent vectors."""
    mock = MagicMock()
    mock.aembed_query = AsyncMock(return_value=[0.1] * TEST_DIMENSION)
    mock.embed_query.return_value = [0.1] * TEST_DIMENSION
    return mock


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Fixture to set environment variables for testing."""
    env_vars = {
        "ENVIRONMENT": "development",
        "OPENAI_API_KEY": "sk-test-key",
        "EMBEDDING_MODEL": "text-embedding-3-small",
        "EMBEDDING_DIMENSION": "1536",
        "DATABASE_URL": "mongodb://db.internal:27017",
        "DATABASE_NAME": "nfa",
        "DATABASE_COLLECTION": "knowledges",
        "LOG_LEVEL": "DEBUG",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        yield env_vars


@pytest.fixture
def sample_text_file(tmp_path: Path) -> Path:
    """Create a plain-text file with three paragraphs."""
    path = tmp_path / "knowledge.txt"
    path.write_text(
        "The first paragraph talks about agents.\n\n"
        "The second paragraph talks about knowledge.\n  \n\n"
        "The third paragraph closes the file.\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Reset logging configuration between tests."""
    from src.utils.logging import clear_correlation_id

    clear_correlation_id()
    yield
    clear_correlation_id()


@pytest.fixture(autouse=True)
def reset_shared_clients() -> Generator[None, None, None]:
    """Drop cached database clients between tests."""
    from src.core.database import reset_database_clients

    reset_database_clients()
    yield
    reset_database_clients()


# Markers for test categorization
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line("markers", "slow: Slow tests")
