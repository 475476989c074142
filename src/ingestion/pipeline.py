"""
Ingestion pipeline for the knowledge store.

This module orchestrates the ingestion workflow:
1. Validate input and split it into text units (paragraphs or sliding-window chunks)
2. Generate one embedding per unit, strictly in order
3. Build knowledge records and buffer them
4. Bulk-insert the buffer into the knowledge store
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Literal, Sequence

from langchain_core.embeddings import Embeddings

from src.core.embeddings import get_embeddings
from src.core.vectorstore import KnowledgeStore, get_knowledge_store
from src.ingestion.chunker import SentenceChunker
from src.ingestion.loader import TextFileLoader
from src.ingestion.models import KnowledgeRecord, RecordMetadata
from src.utils.exceptions import (
    EmbeddingDimensionError,
    EmbeddingGenerationError,
    IngestError,
    InvalidConfigurationError,
)
from src.utils.logging import LoggerMixin, get_correlation_id, set_correlation_id, setup_logging

if TYPE_CHECKING:
    from src.config.settings import Settings

Granularity = Literal["paragraph", "sliding_window"]

PROGRESS_LOG_INTERVAL = 10


@dataclass
class IngestionResult:
    """
    Result of one ingestion call.

    Attributes:
        success: Whether the call completed. Skipped units do not make it fail.
        source: Name of the ingested source (file path or caller label).
        num_units: Number of units received.
        num_valid_units: Units left after dropping empty ones.
        num_processed: Units embedded and buffered for storage.
        num_failed: Units skipped because their embedding failed.
        num_batches: Bulk inserts issued.
        num_stored: Records the store reported as inserted.
        error: Error message if the call failed (None if successful).
    """
    success: bool
    source: str
    num_units: int = 0
    num_valid_units: int = 0
    num_processed: int = 0
    num_failed: int = 0
    num_batches: int = 0
    num_stored: int = 0
    error: str | None = None

    def __str__(self) -> str:
        """Human-readable string representation."""
        if self.success:
            return (
                f"✓ {self.source}: "
                f"{self.num_valid_units} units → "
                f"{self.num_processed} embedded → "
                f"{self.num_stored} stored"
            )
        else:
            return f"✗ {self.source}: {self.error}"


@dataclass
class TextSource:
    """Named, already-extracted text handed to :meth:`IngestionPipeline.build_from_sources`."""
    name: str
    text: str


@dataclass
class OwnerRefreshResult:
    """Outcome of replacing all knowledge of one owner."""
    uid: str
    deleted: int
    results: List[IngestionResult] = field(default_factory=list)


class IngestionPipeline(LoggerMixin):
    """
    Embedding ingestion pipeline.

    Units are processed strictly sequentially: the embedding request for a
    unit is only issued once the previous unit has been buffered. A failure
    while embedding one unit is logged and that unit is skipped.

    Args:
        embeddings: Embedding collaborator (LangChain ``Embeddings``).
        store: Knowledge store receiving the records.
        embedding_model: Identifier recorded with every record.
        embedding_dimension: Required length of every embedding vector.
        uid: Optional owner scope stamped on every record.
        granularity: ``"paragraph"`` or ``"sliding_window"`` text units.
        chunker: Chunker used for ``"sliding_window"`` granularity.
        batch_size: Records buffered before each bulk insert.
        loader: Loader used by :meth:`build_from_file`.

    Example:
        >>> pipeline = IngestionPipeline(embeddings, store, uid="owner-1")
        >>> result = await pipeline.build_from_texts(["First paragraph.", "Second."])
        >>> print(result)
        ✓ texts: 2 units → 2 embedded → 2 stored
    """

    def __init__(
        self,
        embeddings: Embeddings,
        store: KnowledgeStore,
        embedding_model: str = "text-embedding-3-small",
        embedding_dimension: int = 1536,
        uid: str | None = None,
        granularity: Granularity = "paragraph",
        chunker: SentenceChunker | None = None,
        batch_size: int = 100,
        loader: TextFileLoader | None = None,
    ) -> None:
        if embedding_dimension < 1:
            raise InvalidConfigurationError(
                "embedding_dimension must be positive",
                details={"embedding_dimension": embedding_dimension},
            )
        if batch_size < 1:
            raise InvalidConfigurationError(
                "batch_size must be positive",
                details={"batch_size": batch_size},
            )
        if granularity not in ("paragraph", "sliding_window"):
            raise InvalidConfigurationError(
                f"Unsupported chunk granularity: {granularity}",
                details={"granularity": granularity},
            )

        self.embeddings = embeddings
        self.store = store
        self.embedding_model = embedding_model
        self.embedding_dimension = embedding_dimension
        self.uid = uid
        self.granularity = granularity
        self.chunker = chunker or SentenceChunker()
        self.batch_size = batch_size
        self.loader = loader or TextFileLoader()

        self.logger.info(
            "ingestion_pipeline_initialized",
            collection=store.collection_name,
            embedding_model=embedding_model,
            embedding_dimension=embedding_dimension,
            granularity=granularity,
            batch_size=batch_size,
            has_uid=uid is not None,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        **overrides: Any,
    ) -> "IngestionPipeline":
        """
        Build a pipeline and its collaborators from application settings.

        Logging is configured from ``settings.logging`` first; ``DEBUG=true``
        forces the DEBUG level.

        Args:
            settings: Optional :class:`Settings`. If None, loads from environment.
            **overrides: Constructor arguments replacing the settings-derived ones
                (``uid``, ``embeddings``, ``store``, ``database``, ...).

        Raises:
            ConfigurationError: If a required endpoint or credential is missing.
        """
        if settings is None:
            from src.config.settings import get_settings

            settings = get_settings()

        setup_logging(
            log_level="DEBUG" if settings.logging.debug else settings.logging.log_level,
            log_format=settings.logging.log_format,
            app_name=settings.app_name,
        )

        database = overrides.pop("database", None)
        embeddings = overrides.pop("embeddings", None) or get_embeddings(settings.embedding)
        store = overrides.pop("store", None) or get_knowledge_store(settings.database, database)
        chunker = overrides.pop("chunker", None) or SentenceChunker(
            max_chunk_size=settings.chunking.max_chunk_size,
            overlap_size=settings.chunking.chunk_overlap,
        )

        options: dict[str, Any] = {
            "embedding_model": settings.embedding.embedding_model,
            "embedding_dimension": settings.embedding.embedding_dimension,
            "granularity": settings.chunking.chunk_granularity,
            "batch_size": settings.chunking.ingest_batch_size,
        }
        options.update(overrides)
        return cls(embeddings=embeddings, store=store, chunker=chunker, **options)

    @classmethod
    async def create_from_file(
        cls,
        file_path: str | Path,
        settings: Settings | None = None,
        **overrides: Any,
    ) -> "IngestionPipeline":
        """
        Create a pipeline and ingest one file in a single step.

        Returns:
            The pipeline used, for further calls.
        """
        pipeline = cls.from_settings(settings, **overrides)
        await pipeline.build_from_file(file_path)
        return pipeline

    def split_units(self, text: str) -> List[str]:
        """
        Split raw text into the units fed to the embedding service.

        Paragraph granularity yields one unit per paragraph; sliding-window
        granularity runs the paragraphs through the chunker. Both use the
        chunker's paragraph tokenizer.
        """
        if self.granularity == "sliding_window":
            return self.chunker.chunk(text)
        return self.chunker.paragraph_tokenizer(text)

    async def build_from_texts(
        self,
        texts: Sequence[str],
        show_progress: bool = True,
        source: str = "texts",
    ) -> IngestionResult:
        """
        Embed and store a sequence of text units.

        Empty and whitespace-only units are dropped first. Each remaining unit
        is embedded in order; on success a record is buffered and the buffer
        is flushed every ``batch_size`` records and once at the end.

        Args:
            texts: Text units in order.
            show_progress: Log progress every few processed units.
            source: Label used in logs and in the result.

        Returns:
            IngestionResult with counts for this call.

        Raises:
            StoreWriteError: If a bulk insert fails as a whole.
        """
        if get_correlation_id() is None:
            set_correlation_id()

        valid_texts = [text for text in texts if text.strip()]

        self.logger.info(
            "build_from_texts_started",
            source=source,
            num_units=len(texts),
            num_valid_units=len(valid_texts),
        )

        result = IngestionResult(
            success=True,
            source=source,
            num_units=len(texts),
            num_valid_units=len(valid_texts),
        )
        buffer: List[KnowledgeRecord] = []

        for index, text in enumerate(valid_texts):
            try:
                record = await self._embed_unit(index, text)
            except IngestError as e:
                result.num_failed += 1
                self.logger.error(
                    "unit_processing_failed",
                    source=source,
                    index=index,
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=True,
                )
                continue

            buffer.append(record)
            result.num_processed += 1

            if show_progress and result.num_processed % PROGRESS_LOG_INTERVAL == 0:
                self.logger.info(
                    "ingestion_progress",
                    source=source,
                    processed=result.num_processed,
                    total=len(valid_texts),
                )

            if len(buffer) >= self.batch_size:
                await self._flush(buffer, result)
                buffer = []

        if buffer:
            await self._flush(buffer, result)

        self.logger.info(
            "build_from_texts_complete",
            source=source,
            num_processed=result.num_processed,
            num_failed=result.num_failed,
            num_batches=result.num_batches,
            num_stored=result.num_stored,
        )
        return result

    async def build_from_text(
        self,
        text: str,
        show_progress: bool = True,
        source: str = "text_input",
    ) -> IngestionResult:
        """
        Split raw text into units per the configured granularity and ingest them.

        Example:
            >>> result = await pipeline.build_from_text(open("notes.txt").read())
        """
        units = self.split_units(text)
        self.logger.debug(
            "text_split",
            source=source,
            granularity=self.granularity,
            num_units=len(units),
        )
        return await self.build_from_texts(units, show_progress=show_progress, source=source)

    async def build_from_file(
        self,
        file_path: str | Path,
        show_progress: bool = True,
    ) -> IngestionResult:
        """
        Read a plain-text file and ingest it.

        Args:
            file_path: Path to the file.
            show_progress: Log progress every few processed units.

        Raises:
            DocumentLoadError: If the file is missing, unsupported or undecodable.
                Nothing has been written to the store in that case.
        """
        path = Path(file_path)
        self.logger.info("build_from_file_started", file_path=str(path))

        text = self.loader.load(path)
        return await self.build_from_text(text, show_progress=show_progress, source=str(path))

    async def build_from_sources(
        self,
        sources: Sequence[TextSource],
        show_progress: bool = False,
    ) -> List[IngestionResult]:
        """
        Ingest several named texts, isolating failures per source.

        A source whose ingestion raises is reported as a failed result and
        the remaining sources are still processed.

        Returns:
            One IngestionResult per source, in input order.
        """
        results: List[IngestionResult] = []

        for source in sources:
            try:
                result = await self.build_from_text(
                    source.text,
                    show_progress=show_progress,
                    source=source.name,
                )
            except IngestError as e:
                self.logger.error(
                    "source_ingestion_failed",
                    source=source.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                result = IngestionResult(success=False, source=source.name, error=str(e))
            results.append(result)

        successful = sum(1 for r in results if r.success)
        self.logger.info(
            "sources_ingestion_complete",
            total_sources=len(results),
            successful=successful,
            failed=len(results) - successful,
            total_stored=sum(r.num_stored for r in results),
        )
        return results

    async def replace_owner_knowledge(
        self,
        uid: str,
        sources: Sequence[TextSource],
        show_progress: bool = False,
    ) -> OwnerRefreshResult:
        """
        Remove everything owned by ``uid`` and ingest ``sources`` in its place.

        The pipeline must be scoped to the same ``uid``. Cleanup and the
        following build are not atomic.

        Raises:
            InvalidConfigurationError: If the pipeline is scoped to another owner.
        """
        if self.uid != uid:
            raise InvalidConfigurationError(
                "Pipeline owner scope does not match the owner being refreshed",
                details={"pipeline_uid": self.uid, "uid": uid},
            )

        deleted = await self.cleanup_by_uid(uid)
        results = await self.build_from_sources(sources, show_progress=show_progress)
        return OwnerRefreshResult(uid=uid, deleted=deleted, results=results)

    async def cleanup_by_uid(self, uid: str) -> int:
        """
        Delete every record owned by ``uid``.

        Returns:
            Number of records removed; 0 on repeated calls.
        """
        deleted = await self.store.delete_by_uid(uid)
        self.logger.info("owner_cleanup_complete", uid=uid, deleted=deleted)
        return deleted

    async def _embed_unit(self, index: int, text: str) -> KnowledgeRecord:
        try:
            vector = await self.embeddings.aembed_query(text)
        except Exception as e:
            raise EmbeddingGenerationError(
                "Embedding request failed",
                details={"index": index, "model": self.embedding_model},
                cause=e,
            ) from e

        if len(vector) != self.embedding_dimension:
            raise EmbeddingDimensionError(
                "Embedding service returned a vector of unexpected length",
                details={
                    "expected": self.embedding_dimension,
                    "received": len(vector),
                    "model": self.embedding_model,
                },
            )

        return KnowledgeRecord(
            uid=self.uid,
            content=text,
            embedding=vector,
            metadata=RecordMetadata(
                index=index,
                embedding_model=self.embedding_model,
                embedding_dimension=self.embedding_dimension,
            ),
        )

    async def _flush(self, buffer: List[KnowledgeRecord], result: IngestionResult) -> None:
        result.num_stored += await self.store.insert_many(buffer)
        result.num_batches += 1
