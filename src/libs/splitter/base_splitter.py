"""Abstract base class for Text Splitters.

This module defines the BaseSplitter interface that all text splitting
implementations must follow. This enables pluggable splitting strategies.

Design Principles:
    - Pluggable: All providers implement this interface
    - Lossless: Results carry offsets and overlaps so the source text can
      be reconstructed from the chunks
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from core.errors import InputValidationError, RagError


@dataclass
class SplitResult:
    """Result from a text splitting operation.

    For every i: text[offsets[i]:offsets[i] + len(chunks[i])] == chunks[i],
    and the first overlaps[i] characters of chunks[i] repeat the end of
    chunks[i - 1].

    Attributes:
        chunks: List of text chunks
        offsets: Start offset of each chunk in the source text
        overlaps: Leading characters of each chunk carried over from the previous one
        metadata: Additional information about the split (e.g., chunk_count)
    """

    chunks: list[str]
    offsets: list[int] = field(default_factory=list)
    overlaps: list[int] = field(default_factory=list)
    metadata: dict[str, Any] | None = None

    def reconstruct(self) -> str:
        """Rebuild the source text by dropping each chunk's leading overlap."""
        return "".join(
            chunk[overlap:] for chunk, overlap in zip(self.chunks, self.overlaps)
        )

    def __repr__(self) -> str:
        return f"SplitResult(chunks={len(self.chunks)}, metadata={self.metadata})"


class BaseSplitter(ABC):
    """Abstract base class for text splitters.

    All splitting implementations must inherit from this class and
    implement the split_text() method.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider.

        Returns:
            Provider identifier (e.g., 'recursive')
        """
        ...

    @abstractmethod
    def split_text(self, text: str, **kwargs: Any) -> SplitResult:
        """Split a single text into chunks.

        Args:
            text: The text to split
            **kwargs: Additional provider-specific arguments
                - chunk_size: Maximum size of each chunk
                - chunk_overlap: Overlap between consecutive chunks
                - trace: Tracing context for observability

        Returns:
            SplitResult containing chunks, offsets and overlaps

        Raises:
            SplitterError: If splitting fails
        """
        ...

    def split_documents(
        self,
        documents: list[str],
        **kwargs: Any
    ) -> list[SplitResult]:
        """Split multiple documents.

        Args:
            documents: List of documents to split
            **kwargs: Passed through to split_text

        Returns:
            List of SplitResult for each document
        """
        return [self.split_text(doc, **kwargs) for doc in documents]


class SplitterError(RagError):
    """Base exception for splitter-related errors."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.details = details or {}


class SplitterConfigurationError(SplitterError, InputValidationError):
    """Raised when splitter configuration is invalid."""

    pass


class UnknownSplitterProviderError(SplitterConfigurationError):
    """Raised when an unknown splitter provider is specified."""

    pass
