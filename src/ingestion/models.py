"""
Persisted knowledge record models.

A :class:`KnowledgeRecord` is the only thing the ingestion pipeline writes:
one text unit, its embedding and provenance metadata. Records are never
mutated after construction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecordMetadata(BaseModel):
    """Provenance stored alongside each record."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Position within the originating batch call")
    embedding_model: str = Field(..., min_length=1, description="Embedding model identifier")
    embedding_dimension: int = Field(..., ge=1, description="Length of the embedding vector")


class KnowledgeRecord(BaseModel):
    """
    One persisted text unit with its embedding.

    Attributes:
        uuid: Globally unique record identifier.
        uid: Optional owner scope partitioning records by caller.
        content: Original text of the unit.
        embedding: Embedding vector; its length equals ``metadata.embedding_dimension``.
        created_at: UTC creation time.
        metadata: Provenance metadata.
    """

    model_config = ConfigDict(frozen=True)

    uuid: str = Field(default_factory=lambda: str(uuid4()))
    uid: str | None = None
    content: str = Field(..., min_length=1)
    embedding: list[float]
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: RecordMetadata

    @model_validator(mode="after")
    def validate_embedding_length(self) -> "KnowledgeRecord":
        """Ensure the vector length matches the declared dimension."""
        if len(self.embedding) != self.metadata.embedding_dimension:
            raise ValueError(
                f"embedding has {len(self.embedding)} values, "
                f"expected {self.metadata.embedding_dimension}"
            )
        return self

    def to_document(self) -> dict[str, Any]:
        """Return the MongoDB document, omitting ``uid`` when unset."""
        return self.model_dump(exclude_none=True)
