"""Runtime provider registry shared by the library factories.

Each factory (embedding, LLM, vector store) keeps its own registry of
provider names to implementation classes. No providers are hardcoded in
the registry itself - modules register their defaults on import.

Usage:
    class EmbeddingFactory(ProviderRegistry[BaseEmbedding]):
        kind = "embedding"
        _providers = {}

    EmbeddingFactory.register("openai", OpenAIEmbedding)
    EmbeddingFactory.get("openai")
"""

from typing import Callable, ClassVar, Generic, TypeVar

from observability.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ProviderRegistry(Generic[T]):
    """Registry of provider name -> implementation class.

    Subclasses must define their own ``_providers`` dict so registries do not
    leak into each other.
    """

    kind: ClassVar[str] = "provider"
    _providers: ClassVar[dict[str, type]] = {}

    @classmethod
    def register(cls, provider_name: str, implementation_class: type[T]) -> None:
        """Register a provider.

        Args:
            provider_name: Provider identifier (e.g., 'openai', 'gemini')
            implementation_class: Class implementing the factory's base interface
        """
        cls._providers[provider_name.lower()] = implementation_class
        logger.info(f"Registered {cls.kind} provider: {provider_name}")

    @classmethod
    def unregister(cls, provider_name: str) -> bool:
        """Unregister a provider.

        Returns:
            True if removed, False if not found
        """
        provider = provider_name.lower()
        if provider in cls._providers:
            del cls._providers[provider]
            logger.info(f"Unregistered {cls.kind} provider: {provider_name}")
            return True
        return False

    @classmethod
    def get_provider_names(cls) -> list[str]:
        """Get list of registered provider names."""
        return list(cls._providers.keys())

    @classmethod
    def has_provider(cls, provider_name: str) -> bool:
        """Check if a provider is registered."""
        return provider_name.lower() in cls._providers

    @classmethod
    def clear(cls) -> None:
        """Clear all registered providers."""
        cls._providers.clear()
        logger.info(f"Cleared all registered {cls.kind} providers")

    @classmethod
    def get(
        cls,
        provider_name: str | None,
        unknown_error: Callable[[str], Exception],
        missing_error: Callable[[str], Exception],
    ) -> type[T]:
        """Look up the implementation class for a provider.

        Args:
            provider_name: Configured provider name
            unknown_error: Builds the exception for an unregistered provider
            missing_error: Builds the exception for an empty provider name

        Returns:
            The registered implementation class
        """
        provider = (provider_name or "").lower()
        if not provider:
            raise missing_error(
                f"{cls.kind.capitalize()} provider is not configured. "
                f"Set '{cls.kind}.provider' in settings.yaml"
            )

        if provider not in cls._providers:
            available = ", ".join(cls._providers.keys())
            if not available:
                available = "(no providers registered - register your own)"
            raise unknown_error(
                f"Unknown {cls.kind} provider: '{provider}'. "
                f"Available providers: {available}"
            )

        return cls._providers[provider]
