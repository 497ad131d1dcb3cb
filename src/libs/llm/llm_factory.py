"""LLM Factory for creating generation clients based on configuration.

Design Principles:
    - Factory Pattern: Creates the right implementation based on config
    - Configuration-Driven: Provider selection via settings.llm.provider
    - Fail-Fast: Missing model or credentials surface here, before any query runs

Usage:
    settings = load_settings()
    llm = LLMFactory.create(settings)
"""

from typing import Any

from core.settings import Settings
from libs.llm.base_llm import (
    BaseLLM,
    LLMConfigurationError,
    UnknownLLMProviderError,
)
from libs.llm.gemini_llm import GeminiLLM
from libs.llm.openai_llm import OpenAILLM
from libs.provider_registry import ProviderRegistry
from observability.logger import get_logger

logger = get_logger(__name__)


class LLMFactory(ProviderRegistry[BaseLLM]):
    """Factory for creating LLM instances based on configuration."""

    kind = "llm"
    _providers: dict[str, type[BaseLLM]] = {}

    @classmethod
    def create(
        cls,
        settings: Settings,
        **kwargs: Any
    ) -> BaseLLM:
        """Create an LLM instance based on configuration.

        Sampling defaults come from settings.retrieval; per-call values are
        passed to generate() by the pipeline.

        Args:
            settings: Settings object containing LLM configuration
            **kwargs: Overrides for the constructor (e.g., http_client=...)

        Returns:
            BaseLLM implementation instance

        Raises:
            UnknownLLMProviderError: If the provider is not registered
            LLMConfigurationError: If configuration is invalid
        """
        llm_config = settings.llm
        implementation_class = cls.get(
            llm_config.provider,
            unknown_error=lambda msg: UnknownLLMProviderError(msg, provider=llm_config.provider),
            missing_error=LLMConfigurationError,
        )

        init_kwargs: dict[str, Any] = {
            "api_key": llm_config.api_key,
            "base_url": llm_config.base_url,
            "model": llm_config.model,
            "temperature": settings.retrieval.temperature,
            "max_tokens": settings.retrieval.max_tokens,
            "timeout": settings.retrieval.timeout,
        }
        init_kwargs.update(kwargs)
        init_kwargs = {k: v for k, v in init_kwargs.items() if v is not None}

        logger.info(
            f"Creating LLM instance: provider={llm_config.provider}, model={llm_config.model}"
        )

        return implementation_class(**init_kwargs)


LLMFactory.register("openai", OpenAILLM)
LLMFactory.register("gemini", GeminiLLM)
