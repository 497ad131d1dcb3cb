"""Embedding Factory for creating Embedding instances based on configuration.

Design Principles:
    - Factory Pattern: Creates the right implementation based on config
    - Configuration-Driven: Provider selection via settings.embedding.provider
    - Fail-Fast: Missing credentials surface here, before any query runs

Usage:
    settings = load_settings()
    embedding = EmbeddingFactory.create(settings)
"""

from typing import Any

from core.settings import Settings
from libs.embedding.base_embedding import (
    BaseEmbedding,
    EmbeddingConfigurationError,
    UnknownEmbeddingProviderError,
)
from libs.embedding.gemini_embedding import GeminiEmbedding
from libs.embedding.local_embedding import FakeEmbedding
from libs.embedding.openai_embedding import OpenAIEmbedding
from libs.provider_registry import ProviderRegistry
from observability.logger import get_logger

logger = get_logger(__name__)


class EmbeddingFactory(ProviderRegistry[BaseEmbedding]):
    """Factory for creating Embedding instances based on configuration."""

    kind = "embedding"
    _providers: dict[str, type[BaseEmbedding]] = {}

    @classmethod
    def create(
        cls,
        settings: Settings,
        **kwargs: Any
    ) -> BaseEmbedding:
        """Create an Embedding instance based on configuration.

        Args:
            settings: Settings object containing embedding configuration
            **kwargs: Overrides for the constructor (e.g., http_client=...)

        Returns:
            BaseEmbedding implementation instance

        Raises:
            UnknownEmbeddingProviderError: If the provider is not registered
            EmbeddingConfigurationError: If configuration is invalid

        Example:
            >>> settings = load_settings()
            >>> embedding = EmbeddingFactory.create(settings)
        """
        embed_config = settings.embedding
        implementation_class = cls.get(
            embed_config.provider,
            unknown_error=lambda msg: UnknownEmbeddingProviderError(
                msg, provider=embed_config.provider
            ),
            missing_error=EmbeddingConfigurationError,
        )

        init_kwargs: dict[str, Any] = {
            "api_key": embed_config.api_key,
            "base_url": embed_config.base_url,
            "model": embed_config.model,
            "dimensions": embed_config.dimensions,
            "timeout": settings.retrieval.timeout,
        }
        init_kwargs.update(kwargs)
        init_kwargs = {k: v for k, v in init_kwargs.items() if v is not None}

        logger.info(
            f"Creating embedding instance: provider={embed_config.provider}, "
            f"model={embed_config.model or 'default'}"
        )

        return implementation_class(**init_kwargs)


EmbeddingFactory.register("openai", OpenAIEmbedding)
EmbeddingFactory.register("gemini", GeminiEmbedding)
EmbeddingFactory.register("fake", FakeEmbedding)
