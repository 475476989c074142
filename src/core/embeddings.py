"""
Embeddings factory for the knowledge ingestion service.

This module provides a factory pattern for creating embedding model instances
supporting multiple providers (OpenAI, HuggingFace, Ollama). Only the OpenAI
provider honours a requested output dimension; the others must be configured
with a dimension matching the model they serve.
"""

from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from src.config.settings import EmbeddingSettings
from src.utils.exceptions import InvalidConfigurationError, MissingConfigurationError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class EmbeddingsFactory:
    """Factory class for creating embedding model instances."""

    @staticmethod
    def create(settings: EmbeddingSettings, api_key: str | None = None) -> Embeddings:
        """
        Create an embeddings instance based on provider settings.

        Args:
            settings: Embedding configuration settings.
            api_key: Optional API key overriding ``settings.openai_api_key``.

        Returns:
            A LangChain Embeddings instance.

        Raises:
            MissingConfigurationError: If the OpenAI key is missing.
            InvalidConfigurationError: If the provider is not supported.

        Example:
            >>> settings = EmbeddingSettings(embedding_provider="openai")
            >>> embeddings = EmbeddingsFactory.create(settings, api_key="sk-...")
        """
        logger.info(
            "creating_embeddings",
            provider=settings.embedding_provider,
            model=settings.embedding_model,
            dimension=settings.embedding_dimension,
        )

        if settings.embedding_provider == "openai":
            key = api_key or settings.openai_api_key.get_secret_value()
            if not key:
                raise MissingConfigurationError(
                    "OpenAI API key is required for OpenAI embeddings",
                    details={"setting": "OPENAI_API_KEY"},
                )
            return EmbeddingsFactory.create_openai(
                api_key=key,
                model=settings.embedding_model,
                dimensions=settings.embedding_dimension,
                timeout=settings.embedding_request_timeout,
            )
        elif settings.embedding_provider == "huggingface":
            return EmbeddingsFactory.create_huggingface(
                model_name=settings.huggingface_embedding_model,
            )
        elif settings.embedding_provider == "ollama":
            return EmbeddingsFactory.create_ollama(
                model=settings.embedding_model,
                base_url=settings.ollama_base_url,
            )
        else:
            raise InvalidConfigurationError(
                f"Unsupported embedding provider: {settings.embedding_provider}. "
                f"Supported providers: openai, huggingface, ollama"
            )

    @staticmethod
    def create_openai(
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int | None = 1536,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> OpenAIEmbeddings:
        """
        Create an OpenAI embeddings instance.

        Args:
            api_key: OpenAI API key.
            model: Embedding model name.
            dimensions: Requested vector length (text-embedding-3 models only).
            timeout: Optional request timeout in seconds.
            **kwargs: Additional arguments passed to OpenAIEmbeddings.

        Returns:
            OpenAIEmbeddings instance.
        """
        logger.info("creating_openai_embeddings", model=model, dimensions=dimensions)

        return OpenAIEmbeddings(
            api_key=api_key,
            model=model,
            dimensions=dimensions,
            timeout=timeout,
            **kwargs,
        )

    @staticmethod
    def create_huggingface(
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        **kwargs: Any,
    ) -> Embeddings:
        """
        Create a HuggingFace embeddings instance.

        Args:
            model_name: HuggingFace model name.
            **kwargs: Additional arguments passed to HuggingFaceEmbeddings.

        Returns:
            HuggingFaceEmbeddings instance.
        """
        try:
            from langchain_huggingface import HuggingFaceEmbeddings
        except ImportError:
            raise ImportError(
                "langchain-huggingface is not installed. "
                "Install it with: pip install langchain-huggingface"
            )

        logger.info("creating_huggingface_embeddings", model_name=model_name)

        return HuggingFaceEmbeddings(
            model_name=model_name,
            **kwargs,
        )

    @staticmethod
    def create_ollama(
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        **kwargs: Any,
    ) -> Embeddings:
        """
        Create an Ollama embeddings instance.

        Args:
            model: Ollama model name.
            base_url: Ollama server URL.
            **kwargs: Additional arguments passed to OllamaEmbeddings.

        Returns:
            OllamaEmbeddings instance.
        """
        try:
            from langchain_ollama import OllamaEmbeddings
        except ImportError:
            raise ImportError(
                "langchain-ollama is not installed. "
                "Install it with: pip install langchain-ollama"
            )

        logger.info(
            "creating_ollama_embeddings",
            model=model,
            base_url=base_url,
        )

        return OllamaEmbeddings(
            model=model,
            base_url=base_url,
            **kwargs,
        )


def get_embeddings(
    settings: EmbeddingSettings | None = None,
    api_key: str | None = None,
) -> Embeddings:
    """
    Convenience function to get an embeddings instance.

    Args:
        settings: Optional embedding settings. If None, loads from environment.
        api_key: Optional API key for providers that require it.

    Returns:
        A LangChain Embeddings instance.

    Example:
        >>> embeddings = get_embeddings()
        >>> vector = embeddings.embed_query("Hello")
    """
    if settings is None:
        from src.config.settings import get_settings

        settings = get_settings().embedding

    return EmbeddingsFactory.create(settings, api_key=api_key)
