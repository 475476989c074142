"""
Configuration settings for the knowledge ingestion service.

This module uses Pydantic Settings to manage configuration from environment
variables and .env files with validation and type safety.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingSettings(BaseSettings):
    """Embedding model configuration."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="OpenAI API key",
    )
    embedding_provider: Literal["openai", "huggingface", "ollama"] = Field(
        default="openai",
        description="Embedding provider",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    embedding_dimension: int = Field(
        default=1536,
        ge=1,
        le=8192,
        description="Length of every stored embedding vector",
    )
    embedding_request_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds for the embedding client",
    )
    huggingface_embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="HuggingFace embedding model",
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama base URL for embeddings",
    )


class MongoSettings(BaseSettings):
    """MongoDB knowledge store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    url: str = Field(
        default="mongodb://localhost:27017/nfa-xyz",
        description="MongoDB connection string",
    )
    name: str = Field(
        default="nfa",
        description="Database name",
    )
    collection: str = Field(
        default="knowledges",
        description="Collection holding knowledge records",
    )
    min_pool_size: int = Field(default=5, ge=0, description="Minimum pooled connections")
    max_pool_size: int = Field(default=50, ge=1, description="Maximum pooled connections")
    max_idle_time_ms: int = Field(default=30000, ge=0, description="Idle connection lifetime")
    connect_timeout_ms: int = Field(default=10000, ge=0, description="Connection timeout")
    socket_timeout_ms: int = Field(default=45000, ge=0, description="Socket timeout")
    server_selection_timeout_ms: int = Field(
        default=10000,
        ge=0,
        description="Server selection timeout",
    )
    compressors: str = Field(
        default="zlib",
        description="Wire compressors (comma-separated)",
    )

    @model_validator(mode="after")
    def validate_pool_bounds(self) -> "MongoSettings":
        """Ensure the pool minimum does not exceed its maximum."""
        if self.min_pool_size > self.max_pool_size:
            raise ValueError("min_pool_size must not exceed max_pool_size")
        return self


class ChunkingSettings(BaseSettings):
    """Text unit and batching configuration."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_chunk_size: int = Field(
        default=120,
        ge=1,
        le=100000,
        description="Sliding-window chunk size in characters",
    )
    chunk_overlap: int = Field(
        default=30,
        ge=0,
        le=100000,
        description="Sliding-window overlap in characters",
    )
    chunk_granularity: Literal["paragraph", "sliding_window"] = Field(
        default="paragraph",
        description="Unit fed to the embedding service",
    )
    ingest_batch_size: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Records buffered before each bulk insert",
    )

    @model_validator(mode="after")
    def validate_overlap_less_than_size(self) -> "ChunkingSettings":
        """Ensure overlap is less than chunk size."""
        if self.chunk_overlap >= self.max_chunk_size:
            raise ValueError("chunk_overlap must be less than max_chunk_size")
        return self


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log format",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(
        default="knowledge-ingest",
        description="Application name",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )

    # Nested settings
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    database: MongoSettings = Field(default_factory=MongoSettings)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def validate_api_key_for_openai(self) -> "Settings":
        """Ensure OpenAI API key is provided when using OpenAI provider."""
        if self.embedding.embedding_provider == "openai":
            api_key = self.embedding.openai_api_key.get_secret_value()
            if not api_key:
                # Allow empty key outside production so tests can inject mocks
                if self.environment == "production":
                    raise ValueError(
                        "OPENAI_API_KEY is required when using OpenAI embeddings in production"
                    )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached after first load. Call `get_settings.cache_clear()`
        to reload settings from environment.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings from environment.

    Returns:
        Settings: Fresh application settings instance.
    """
    get_settings.cache_clear()
    return get_settings()
