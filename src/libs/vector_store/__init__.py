# Vector Store - Vector index interfaces

from libs.vector_store.base_vector_store import (
    BaseVectorStore,
    UnknownVectorStoreProviderError,
)

from libs.vector_store.memory_store import (
    InMemoryVectorStore,
)

__all__ = [
    # Base
    "BaseVectorStore",
    "UnknownVectorStoreProviderError",
    # Implementations
    "InMemoryVectorStore",
]
