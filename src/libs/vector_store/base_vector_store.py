"""Abstract base class for Vector Index providers.

A vector store here is an immutable index generation: it is built once
from a complete sequence of IndexEntry values and then only queried.
Rebuilding means constructing a new instance, so readers holding the old
one keep a consistent view.

Design Principles:
    - Pluggable: Brute-force scan today, an ANN structure later, same interface
    - Immutable: No upsert/delete; build and search are separate steps
    - Deterministic: Equal scores are ordered by ascending sequence index
"""

from abc import ABC, abstractmethod
from typing import Sequence

from core.errors import InputValidationError, InternalRetrievalError
from core.types import IndexEntry, RetrievalResult


class BaseVectorStore(ABC):
    """Abstract base class for vector index providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider.

        Returns:
            Provider identifier (e.g., 'memory')
        """
        ...

    @classmethod
    @abstractmethod
    def from_entries(cls, entries: Sequence[IndexEntry]) -> "BaseVectorStore":
        """Build a new index generation.

        Args:
            entries: Chunks paired with their embeddings, in sequence order

        Returns:
            A fully built, read-only index

        Raises:
            InternalRetrievalError: If entries are inconsistent (duplicate
                identities, mixed dimensions)
        """
        ...

    @abstractmethod
    def search(self, query_vector: Sequence[float], top_k: int) -> list[RetrievalResult]:
        """Return the top_k most similar entries, most relevant first.

        Args:
            query_vector: Embedding of the query
            top_k: Number of results; all entries are returned if fewer exist

        Returns:
            RetrievalResults ranked 1..n with non-increasing scores

        Raises:
            InputValidationError: If top_k <= 0
            InternalRetrievalError: If the query dimension does not match
        """
        ...

    @abstractmethod
    def count(self) -> int:
        """Get the total number of entries in the index."""
        ...

    @property
    @abstractmethod
    def entries(self) -> tuple[IndexEntry, ...]:
        """All entries in sequence order."""
        ...

    def __len__(self) -> int:
        return self.count()

    @staticmethod
    def validate_top_k(top_k: int) -> None:
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
            raise InputValidationError(f"topK must be a positive integer, got {top_k!r}")

    @staticmethod
    def validate_entries(entries: Sequence[IndexEntry]) -> None:
        seen: set[tuple[str, int]] = set()
        dimensions: set[int] = set()
        for entry in entries:
            if entry.key in seen:
                raise InternalRetrievalError(f"Duplicate index entry for chunk {entry.key}")
            seen.add(entry.key)
            dimensions.add(len(entry.vector))
        if len(dimensions) > 1:
            raise InternalRetrievalError(
                f"Index entries have mixed vector dimensions: {sorted(dimensions)}"
            )


class UnknownVectorStoreProviderError(InternalRetrievalError):
    """Raised when an unknown vector store provider is specified."""

    pass
