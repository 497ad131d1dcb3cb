"""VectorStore Factory for resolving the index implementation from configuration.

The factory returns the implementation class rather than an instance:
indexes are immutable and are created per corpus generation with
``from_entries``.

Usage:
    store_class = VectorStoreFactory.create(settings)
    index = store_class.from_entries(entries)
"""

from core.errors import InternalRetrievalError
from core.settings import Settings
from libs.provider_registry import ProviderRegistry
from libs.vector_store.base_vector_store import (
    BaseVectorStore,
    UnknownVectorStoreProviderError,
)
from libs.vector_store.memory_store import InMemoryVectorStore
from observability.logger import get_logger

logger = get_logger(__name__)


class VectorStoreFactory(ProviderRegistry[BaseVectorStore]):
    """Factory for vector index implementations."""

    kind = "vector_store"
    _providers: dict[str, type[BaseVectorStore]] = {}

    @classmethod
    def create(cls, settings: Settings) -> type[BaseVectorStore]:
        """Resolve the configured vector index class.

        Raises:
            UnknownVectorStoreProviderError: If the provider is not registered
        """
        store_class = cls.get(
            settings.vector_store.provider,
            unknown_error=UnknownVectorStoreProviderError,
            missing_error=InternalRetrievalError,
        )
        logger.info(f"Using vector store: provider={settings.vector_store.provider}")
        return store_class


VectorStoreFactory.register("memory", InMemoryVectorStore)
