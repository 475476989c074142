"""
MongoDB client lifecycle for the knowledge store.

A single :class:`DatabaseClient` owns one pooled ``MongoClient``. It is
injected into every :class:`KnowledgeStore` that needs it, connected lazily
on first use, and closed only by the caller. :func:`get_database_client`
hands out one shared instance per distinct configuration.
"""

from functools import lru_cache
from types import TracebackType
from typing import Any

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError
from pymongo.write_concern import WriteConcern

from src.config.settings import MongoSettings
from src.utils.exceptions import MissingConfigurationError, StoreConnectionError
from src.utils.logging import LoggerMixin


class DatabaseClient(LoggerMixin):
    """
    Explicit, shareable MongoDB connection.

    Args:
        settings: MongoDB configuration settings.

    Example:
        >>> with DatabaseClient(MongoSettings()) as db:
        ...     collection = db.get_collection("nfa", "knowledges")
    """

    def __init__(self, settings: MongoSettings) -> None:
        if not settings.url:
            raise MissingConfigurationError(
                "DATABASE_URL not configured",
                details={"setting": "DATABASE_URL"},
            )

        self.settings = settings
        self._client: MongoClient | None = None

    @property
    def is_connected(self) -> bool:
        """Whether the underlying client has been created."""
        return self._client is not None

    @property
    def client(self) -> MongoClient:
        """
        Get or create the pooled MongoClient.

        Raises:
            StoreConnectionError: If the client cannot be created.
        """
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def connection_options(self) -> dict[str, Any]:
        """Pool, timeout and durability options tuned for bulk writes."""
        compressors = [c.strip() for c in self.settings.compressors.split(",") if c.strip()]
        return {
            "minPoolSize": self.settings.min_pool_size,
            "maxPoolSize": self.settings.max_pool_size,
            "maxIdleTimeMS": self.settings.max_idle_time_ms,
            "connectTimeoutMS": self.settings.connect_timeout_ms,
            "socketTimeoutMS": self.settings.socket_timeout_ms,
            "serverSelectionTimeoutMS": self.settings.server_selection_timeout_ms,
            "retryWrites": True,
            "retryReads": True,
            "compressors": compressors,
            "w": "majority",
            "journal": True,
        }

    def _create_client(self) -> MongoClient:
        options = self.connection_options()
        try:
            client: MongoClient = MongoClient(self.settings.url, **options)
        except (PyMongoError, ValueError) as e:
            self.logger.error("mongodb_client_creation_failed", error=str(e), exc_info=True)
            raise StoreConnectionError(
                "Failed to create MongoDB client",
                cause=e,
            ) from e

        self.logger.info(
            "mongodb_client_created",
            min_pool_size=options["minPoolSize"],
            max_pool_size=options["maxPoolSize"],
        )
        return client

    def connect(self) -> None:
        """
        Force client creation and verify the server answers a ping.

        Raises:
            StoreConnectionError: If the server cannot be reached.
        """
        try:
            self.client.admin.command("ping")
        except PyMongoError as e:
            self.logger.error("mongodb_connection_failed", error=str(e), exc_info=True)
            raise StoreConnectionError(
                "Failed to connect to MongoDB",
                details={"database": self.settings.name},
                cause=e,
            ) from e
        self.logger.info("mongodb_connected", database=self.settings.name)

    def health_check(self) -> bool:
        """
        Check MongoDB connection health.

        Returns:
            True if healthy, False otherwise.
        """
        try:
            self.client.admin.command("ping")
            self.logger.info("health_check", healthy=True)
            return True
        except (PyMongoError, StoreConnectionError) as e:
            self.logger.error("health_check_failed", error=str(e))
            return False

    def get_database(self, name: str | None = None) -> Database:
        """Return a database handle (defaults to ``settings.name``)."""
        return self.client.get_database(
            name or self.settings.name,
            write_concern=WriteConcern(w="majority", j=True),
        )

    def get_collection(self, database: str | None, collection: str) -> Collection:
        """Return a collection handle within ``database``."""
        return self.get_database(database)[collection]

    def close(self) -> None:
        """Close the pooled client; a later access reconnects."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self.logger.info("mongodb_disconnected")

    def __enter__(self) -> "DatabaseClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


@lru_cache
def _shared_client(settings: MongoSettings) -> DatabaseClient:
    return DatabaseClient(settings)


def get_database_client(settings: MongoSettings | None = None) -> DatabaseClient:
    """
    Get the shared client for ``settings``.

    One client (and one connection pool) exists per distinct configuration,
    so every store and pipeline built from equal settings reuses it. Callers
    own its lifecycle and close it with :meth:`DatabaseClient.close`; a
    closed client reconnects on next use.

    Args:
        settings: Optional MongoDB settings. If None, loads from environment.

    Example:
        >>> db = get_database_client()
        >>> db is get_database_client()
        True
    """
    if settings is None:
        from src.config.settings import get_settings

        settings = get_settings().database

    return _shared_client(settings)


def reset_database_clients() -> None:
    """Forget the shared clients so the next lookup builds fresh ones."""
    _shared_client.cache_clear()
