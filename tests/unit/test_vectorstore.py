"""
Tests for the MongoDB knowledge store.

Uses pytest with an in-memory stand-in for the pymongo collection.
"""

from unittest.mock import MagicMock, patch

import pytest
from pymongo.errors import OperationFailure, PyMongoError

from src.config.settings import MongoSettings
from src.core.vectorstore import KNOWLEDGE_INDEXES, KnowledgeStore, get_knowledge_store
from src.ingestion.models import KnowledgeRecord, RecordMetadata
from src.utils.exceptions import StoreError, StoreWriteError


def make_record(content: str = "text", uid: str | None = None, index: int = 0) -> KnowledgeRecord:
    """Create a small knowledge record."""
    return KnowledgeRecord(
        uid=uid,
        content=content,
        embedding=[0.1] * 8,
        metadata=RecordMetadata(index=index, embedding_model="test-model", embedding_dimension=8),
    )


class TestKnowledgeStore:
    """Tests for KnowledgeStore class."""

    def test_initialization(self, mock_database: MagicMock) -> None:
        """Test KnowledgeStore initialization does not touch the database."""
        store = KnowledgeStore(mock_database, "test_db", "test_knowledges")

        assert store.database is mock_database
        assert store.database_name == "test_db"
        assert store.collection_name == "test_knowledges"
        assert store._collection is None
        mock_database.get_collection.assert_not_called()

    def test_collection_property_bootstraps_indexes(
        self,
        knowledge_store: KnowledgeStore,
        mock_database: MagicMock,
        in_memory_collection,
    ) -> None:
        """Test first collection access creates all four indexes."""
        collection = knowledge_store.collection

        assert collection is in_memory_collection
        mock_database.get_collection.assert_called_once_with("test_db", "test_knowledges")
        names = [call["name"] for call in in_memory_collection.create_index_calls]
        assert names == ["uuid_1", "uid_1", "created_at_-1", "uid_1_created_at_-1"]

    def test_only_uuid_index_is_unique(self, knowledge_store, in_memory_collection) -> None:
        knowledge_store.collection

        unique = {c["name"]: c["unique"] for c in in_memory_collection.create_index_calls}
        assert unique == {
            "uuid_1": True,
            "uid_1": False,
            "created_at_-1": False,
            "uid_1_created_at_-1": False,
        }

    def test_collection_is_cached(self, knowledge_store, mock_database) -> None:
        first = knowledge_store.collection
        second = knowledge_store.collection

        assert first is second
        mock_database.get_collection.assert_called_once()

    def test_ensure_indexes_is_idempotent(self, knowledge_store, in_memory_collection) -> None:
        """Test repeated bootstraps create nothing new."""
        first = knowledge_store.ensure_indexes(in_memory_collection)
        second = knowledge_store.ensure_indexes(in_memory_collection)

        assert first == [name for name, _, _ in KNOWLEDGE_INDEXES]
        assert second == []
        assert len(in_memory_collection.create_index_calls) == 4

    def test_ensure_indexes_skips_existing(self, knowledge_store, in_memory_collection) -> None:
        in_memory_collection.index_names = ["_id_", "uuid_1", "uid_1"]

        created = knowledge_store.ensure_indexes(in_memory_collection)

        assert created == ["created_at_-1", "uid_1_created_at_-1"]

    def test_index_creation_failure_is_not_raised(self, knowledge_store, in_memory_collection) -> None:
        """Test a failing index is logged and the others are still created."""
        original = in_memory_collection.create_index

        def flaky_create_index(keys, name, unique=False):
            if name == "uid_1":
                raise OperationFailure("index build failed")
            return original(keys, name=name, unique=unique)

        in_memory_collection.create_index = flaky_create_index

        created = knowledge_store.ensure_indexes(in_memory_collection)

        assert created == ["uuid_1", "created_at_-1", "uid_1_created_at_-1"]

    def test_index_listing_failure_is_not_raised(self, knowledge_store) -> None:
        collection = MagicMock()
        collection.list_indexes.side_effect = PyMongoError("not authorized")

        assert knowledge_store.ensure_indexes(collection) == []
        collection.create_index.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_many(self, knowledge_store, in_memory_collection) -> None:
        records = [make_record(f"unit {i}", index=i) for i in range(3)]

        inserted = await knowledge_store.insert_many(records)

        assert inserted == 3
        assert len(in_memory_collection.insert_calls) == 1
        assert [d["content"] for d in in_memory_collection.documents] == ["unit 0", "unit 1", "unit 2"]

    @pytest.mark.asyncio
    async def test_insert_many_empty(self, knowledge_store, in_memory_collection) -> None:
        assert await knowledge_store.insert_many([]) == 0
        assert in_memory_collection.insert_calls == []

    @pytest.mark.asyncio
    async def test_insert_many_is_unordered(self, knowledge_store) -> None:
        collection = MagicMock()
        collection.list_indexes.return_value = []
        collection.insert_many.return_value = MagicMock(inserted_ids=["a"])
        knowledge_store._collection = collection

        await knowledge_store.insert_many([make_record()])

        assert collection.insert_many.call_args.kwargs["ordered"] is False

    @pytest.mark.asyncio
    async def test_insert_many_partial_failure(self, knowledge_store, in_memory_collection) -> None:
        """Test a uuid collision keeps the sibling records."""
        existing = make_record("already stored")
        await knowledge_store.insert_many([existing])

        inserted = await knowledge_store.insert_many(
            [make_record("new one"), existing, make_record("new two")]
        )

        assert inserted == 2
        assert knowledge_store.count() == 3

    @pytest.mark.asyncio
    async def test_insert_many_failure_raises(self, knowledge_store) -> None:
        collection = MagicMock()
        collection.insert_many.side_effect = PyMongoError("connection reset")
        knowledge_store._collection = collection

        with pytest.raises(StoreWriteError) as exc_info:
            await knowledge_store.insert_many([make_record()])

        assert exc_info.value.details["count"] == 1
        assert isinstance(exc_info.value.cause, PyMongoError)

    @pytest.mark.asyncio
    async def test_documents_omit_unset_uid(self, knowledge_store, in_memory_collection) -> None:
        await knowledge_store.insert_many([make_record("anonymous"), make_record("owned", uid="u1")])

        anonymous, owned = in_memory_collection.documents
        assert "uid" not in anonymous
        assert owned["uid"] == "u1"

    @pytest.mark.asyncio
    async def test_delete_by_uid(self, knowledge_store) -> None:
        """Test cleanup removes only the owner's records and is repeatable."""
        await knowledge_store.insert_many(
            [make_record("a", uid="u1"), make_record("b", uid="u1"), make_record("c", uid="u2")]
        )

        assert await knowledge_store.delete_by_uid("u1") == 2
        assert await knowledge_store.delete_by_uid("u1") == 0
        assert knowledge_store.count("u1") == 0
        assert knowledge_store.count("u2") == 1

    @pytest.mark.asyncio
    async def test_delete_by_uid_failure(self, knowledge_store) -> None:
        collection = MagicMock()
        collection.delete_many.side_effect = PyMongoError("timeout")
        knowledge_store._collection = collection

        with pytest.raises(StoreError):
            await knowledge_store.delete_by_uid("u1")

    @pytest.mark.asyncio
    async def test_count(self, knowledge_store) -> None:
        await knowledge_store.insert_many([make_record("a", uid="u1"), make_record("b")])

        assert knowledge_store.count() == 2
        assert knowledge_store.count("u1") == 1
        assert knowledge_store.count("nobody") == 0

    @pytest.mark.asyncio
    async def test_health_check(self, knowledge_store, mock_database) -> None:
        assert await knowledge_store.health_check() is True

        mock_database.health_check.return_value = False
        assert await knowledge_store.health_check() is False


class TestGetKnowledgeStore:
    """Tests for get_knowledge_store function."""

    def test_with_settings_and_database(self, mock_database) -> None:
        settings = MongoSettings(name="kb", collection="facts")

        store = get_knowledge_store(settings, mock_database)

        assert store.database is mock_database
        assert store.database_name == "kb"
        assert store.collection_name == "facts"

    def test_uses_shared_database_client(self) -> None:
        settings = MongoSettings(url="mongodb://db.internal:27017")

        with patch("src.core.vectorstore.get_database_client") as mock_get_client:
            store = get_knowledge_store(settings)

        mock_get_client.assert_called_once_with(settings)
        assert store.database is mock_get_client.return_value

    def test_stores_share_one_client_per_settings(self) -> None:
        settings = MongoSettings(url="mongodb://db.internal:27017")

        first = get_knowledge_store(settings)
        second = get_knowledge_store(MongoSettings(url="mongodb://db.internal:27017"))
        other = get_knowledge_store(MongoSettings(url="mongodb://db.internal:27017", name="other_db"))

        assert first.database is second.database
        assert other.database is not first.database

    def test_without_settings(self) -> None:
        with patch("src.config.settings.get_settings") as mock_get_settings:
            mock_get_settings.return_value.database = MongoSettings(name="env_db")

            store = get_knowledge_store(database=MagicMock())

        assert store.database_name == "env_db"
