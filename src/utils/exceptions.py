"""
Custom exception hierarchy for the knowledge ingestion system.

This module defines the exceptions raised while loading text, generating
embeddings and persisting knowledge records. Configuration and input errors
are fatal for a call; per-item embedding errors are recovered by the
ingestion pipeline.
"""

from typing import Any, Dict, Optional


class IngestError(Exception):
    """
    Base exception for all ingestion errors.

    All custom exceptions in the system inherit from this base class,
    so callers can catch every ingestion-related error at once.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        cause: Optional underlying exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize ingestion exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def __repr__(self) -> str:
        """Return detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )


# =============================================================================
# Document Ingestion Errors
# =============================================================================

class DocumentIngestionError(IngestError):
    """
    Error during document ingestion process.

    Raised when there are issues loading or preparing text for the
    ingestion pipeline.
    """
    pass


class DocumentLoadError(DocumentIngestionError):
    """
    Error loading a document from file.

    Raised when the input path does not exist or is not a regular file.
    Nothing has been written to the store when this is raised.
    """
    pass


class UnsupportedDocumentError(DocumentLoadError):
    """
    Input format is not plain text.

    Binary formats (PDF, DOCX, ...) must be extracted upstream.
    """
    pass


class DocumentParseError(DocumentLoadError):
    """
    Error decoding document content.

    Raised when file bytes cannot be decoded as text.
    """
    pass


# =============================================================================
# Embedding Errors
# =============================================================================

class EmbeddingError(IngestError):
    """
    Error with embedding generation.

    Raised for issues with creating embeddings from text.
    """
    pass


class EmbeddingGenerationError(EmbeddingError):
    """
    Error during embedding generation for a single unit.

    The ingestion pipeline skips the unit and continues.
    """
    pass


class EmbeddingDimensionError(EmbeddingGenerationError):
    """
    Embedding service returned a vector of the wrong length.
    """
    pass


# =============================================================================
# Store Errors
# =============================================================================

class StoreError(IngestError):
    """
    Error with document store operations.
    """
    pass


class StoreConnectionError(StoreError):
    """
    Error connecting to the document store.

    Raised when the MongoDB server cannot be reached.
    """
    pass


class StoreWriteError(StoreError):
    """
    Error writing records to the document store.
    """
    pass


class IndexCreationError(StoreError):
    """
    Error creating a collection index.

    Only ever logged; a collection without its indexes is still usable.
    """
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(IngestError):
    """
    Error in system configuration.

    Raised when configuration is invalid, missing, or inconsistent.
    """
    pass


class MissingConfigurationError(ConfigurationError):
    """
    Required configuration value is missing.

    Raised when a required endpoint or credential is not provided.
    """
    pass


class InvalidConfigurationError(ConfigurationError):
    """
    Configuration value is invalid.

    Raised when a configuration parameter has an invalid value.
    """
    pass


__all__ = [
    # Base exception
    "IngestError",
    # Document ingestion
    "DocumentIngestionError",
    "DocumentLoadError",
    "UnsupportedDocumentError",
    "DocumentParseError",
    # Embeddings
    "EmbeddingError",
    "EmbeddingGenerationError",
    "EmbeddingDimensionError",
    # Store
    "StoreError",
    "StoreConnectionError",
    "StoreWriteError",
    "IndexCreationError",
    # Configuration
    "ConfigurationError",
    "MissingConfigurationError",
    "InvalidConfigurationError",
]
