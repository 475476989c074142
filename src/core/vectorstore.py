"""
MongoDB knowledge store for embedded text units.

This module provides a manager class for one knowledge collection:
- Lazy collection access with idempotent index bootstrap
- Unordered bulk insertion of knowledge records
- Owner-scoped bulk cleanup
- Counting and health checks
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import BulkWriteError, PyMongoError

from src.config.settings import MongoSettings
from src.core.database import DatabaseClient, get_database_client
from src.utils.exceptions import IndexCreationError, StoreError, StoreWriteError
from src.utils.logging import LoggerMixin, get_logger

if TYPE_CHECKING:
    from src.ingestion.models import KnowledgeRecord

logger = get_logger(__name__)

# (index name, key spec, unique)
KNOWLEDGE_INDEXES: tuple[tuple[str, list[tuple[str, int]], bool], ...] = (
    ("uuid_1", [("uuid", ASCENDING)], True),
    ("uid_1", [("uid", ASCENDING)], False),
    ("created_at_-1", [("created_at", DESCENDING)], False),
    ("uid_1_created_at_-1", [("uid", ASCENDING), ("created_at", DESCENDING)], False),
)


class KnowledgeStore(LoggerMixin):
    """
    Manager for a MongoDB collection of knowledge records.

    The store never opens or closes the shared :class:`DatabaseClient`
    itself beyond lazily creating its pooled connection on first use.

    Args:
        database: Shared database client.
        database_name: Database holding the collection.
        collection_name: Knowledge collection name.

    Example:
        >>> db = DatabaseClient(MongoSettings())
        >>> store = KnowledgeStore(db, "nfa", "knowledges")
        >>> await store.insert_many(records)
    """

    def __init__(
        self,
        database: DatabaseClient,
        database_name: str = "nfa",
        collection_name: str = "knowledges",
    ) -> None:
        self.database = database
        self.database_name = database_name
        self._collection_name = collection_name
        self._collection: Collection | None = None

    @property
    def collection_name(self) -> str:
        """
        Get the collection name.

        Returns:
            The name of the MongoDB collection.
        """
        return self._collection_name

    @property
    def collection(self) -> Collection:
        """
        Get the knowledge collection, ensuring its indexes on first access.

        Returns:
            MongoDB collection instance.
        """
        if self._collection is None:
            collection = self.database.get_collection(self.database_name, self._collection_name)
            self.ensure_indexes(collection)
            self._collection = collection
            self.logger.info(
                "collection_ready",
                database=self.database_name,
                collection=self._collection_name,
            )
        return self._collection

    def ensure_indexes(self, collection: Collection) -> list[str]:
        """
        Create any missing knowledge indexes.

        Existing index names are checked first, so repeated calls are
        idempotent. Failures are logged as warnings and never raised.

        Returns:
            Names of the indexes created by this call.
        """
        try:
            existing = {index["name"] for index in collection.list_indexes()}
        except PyMongoError as e:
            self.logger.warning(
                "index_listing_failed",
                collection=self._collection_name,
                error=str(e),
            )
            return []

        created: list[str] = []
        for name, keys, unique in KNOWLEDGE_INDEXES:
            if name in existing:
                continue
            try:
                self._create_index(collection, name, keys, unique)
            except IndexCreationError as e:
                self.logger.warning(
                    "index_creation_failed",
                    index=name,
                    collection=self._collection_name,
                    error=str(e.cause or e),
                )
                continue
            created.append(name)

        if created:
            self.logger.info("indexes_created", indexes=created, collection=self._collection_name)
        return created

    @staticmethod
    def _create_index(
        collection: Collection,
        name: str,
        keys: list[tuple[str, int]],
        unique: bool,
    ) -> None:
        try:
            collection.create_index(keys, name=name, unique=unique)
        except PyMongoError as e:
            raise IndexCreationError(
                f"Could not create index {name}",
                details={"index": name, "unique": unique},
                cause=e,
            ) from e

    async def insert_many(self, records: Sequence[KnowledgeRecord]) -> int:
        """
        Insert records with unordered semantics.

        A failing record (for example a ``uuid`` collision) does not stop its
        siblings from being inserted; such failures are logged and the
        remaining records are kept.

        Args:
            records: Knowledge records to persist.

        Returns:
            Number of records the server reports as inserted.

        Raises:
            StoreWriteError: If the write fails as a whole.
        """
        if not records:
            return 0

        documents = [record.to_document() for record in records]
        self.logger.debug("inserting_records", count=len(documents))

        try:
            result = self.collection.insert_many(documents, ordered=False)
        except BulkWriteError as e:
            details: dict[str, Any] = e.details or {}
            inserted = int(details.get("nInserted", 0))
            self.logger.warning(
                "bulk_insert_partial_failure",
                attempted=len(documents),
                inserted=inserted,
                failed=len(details.get("writeErrors", [])),
            )
            return inserted
        except PyMongoError as e:
            self.logger.error(
                "bulk_insert_failed",
                error=str(e),
                count=len(documents),
                exc_info=True,
            )
            raise StoreWriteError(
                "Failed to insert knowledge records",
                details={"count": len(documents), "collection": self._collection_name},
                cause=e,
            ) from e

        inserted = len(result.inserted_ids)
        self.logger.info("records_inserted", count=inserted)
        return inserted

    async def delete_by_uid(self, uid: str) -> int:
        """
        Delete every record owned by ``uid``.

        Args:
            uid: Owner scope to clear.

        Returns:
            Number of deleted records (0 when nothing matched).
        """
        self.logger.info("deleting_owner_records", uid=uid)

        try:
            result = self.collection.delete_many({"uid": uid})
        except PyMongoError as e:
            self.logger.error("delete_owner_records_failed", uid=uid, error=str(e), exc_info=True)
            raise StoreError(
                "Failed to delete knowledge records",
                details={"uid": uid},
                cause=e,
            ) from e

        self.logger.info("owner_records_deleted", uid=uid, count=result.deleted_count)
        return result.deleted_count

    def count(self, uid: str | None = None) -> int:
        """
        Count records, optionally restricted to one owner.

        Returns:
            Record count.
        """
        query = {"uid": uid} if uid is not None else {}
        count = self.collection.count_documents(query)
        self.logger.info("collection_count", count=count, uid=uid)
        return count

    async def health_check(self) -> bool:
        """
        Check store connection health.

        Returns:
            True if healthy, False otherwise.
        """
        return self.database.health_check()


def get_knowledge_store(
    settings: MongoSettings | None = None,
    database: DatabaseClient | None = None,
) -> KnowledgeStore:
    """
    Convenience function to get a knowledge store.

    Args:
        settings: Optional MongoDB settings. If None, loads from environment.
        database: Optional client. If None, reuses the shared client for settings.

    Returns:
        KnowledgeStore instance.

    Example:
        >>> store = get_knowledge_store()
        >>> store.count()
    """
    if settings is None:
        from src.config.settings import get_settings

        settings = get_settings().database

    if database is None:
        database = get_database_client(settings)

    logger.info(
        "knowledge_store_created",
        database=settings.name,
        collection=settings.collection,
    )
    return KnowledgeStore(database, settings.name, settings.collection)
