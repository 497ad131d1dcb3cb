"""Abstract base class for Embedding providers.

This module defines the BaseEmbedding interface that all embedding
implementations must follow. This enables pluggable embedding providers.

Design Principles:
    - Pluggable: All providers implement this interface
    - Order-Preserving: embed() returns one vector per input, in input order
    - Structured Failures: Providers raise EmbeddingServiceError with a kind tag
"""

import math
from abc import ABC, abstractmethod
from typing import Any

from core.errors import (
    ConfigurationError,
    EmbeddingServiceError,
    ServiceErrorKind,
)
from observability.logger import mask_secret


class EmbeddingResult:
    """Result from an embedding operation.

    Attributes:
        vectors: List of embedding vectors, aligned with the input texts
        usage: Token usage information (if available)
    """

    def __init__(
        self,
        vectors: list[list[float]],
        usage: dict[str, int] | None = None
    ) -> None:
        self.vectors = vectors
        self.usage = usage

    def __repr__(self) -> str:
        return f"EmbeddingResult(vectors={len(self.vectors)}, usage={self.usage})"


class BaseEmbedding(ABC):
    """Abstract base class for embedding providers.

    embed() is the batched form (embedMany); embed_single() embeds one text.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider.

        Returns:
            Provider identifier (e.g., 'openai', 'gemini', 'fake')
        """
        ...

    @property
    def model_name(self) -> str:
        """Return the embedding model identifier used in answer metadata."""
        return getattr(self, "_model", None) or self.provider_name

    @property
    def api_key_masked(self) -> str:
        """Credential rendered for logs and health reports."""
        return mask_secret(getattr(self, "_api_key", None))

    @abstractmethod
    def embed(
        self,
        texts: list[str],
        **kwargs: Any
    ) -> EmbeddingResult:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed
            **kwargs: Additional provider-specific arguments
                - timeout: Per-call timeout in seconds
                - trace: Tracing context for observability

        Returns:
            EmbeddingResult with one vector per text, in input order

        Raises:
            EmbeddingServiceError: If embedding fails
        """
        ...

    def embed_single(self, text: str, **kwargs: Any) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Single text string to embed
            **kwargs: Passed through to embed()

        Returns:
            Single embedding vector

        Raises:
            EmbeddingServiceError: If embedding fails
        """
        result = self.embed([text], **kwargs)
        return result.vectors[0]

    def _check_vectors(
        self,
        vectors: list[Any],
        expected_count: int,
        details: dict[str, Any] | None = None,
    ) -> list[list[float]]:
        """Validate a provider response and coerce it to float lists.

        Raises:
            EmbeddingServiceError: MALFORMED_RESPONSE if the count is wrong,
                a vector is empty or non-numeric, or dimensions disagree.
        """
        if len(vectors) != expected_count:
            raise EmbeddingServiceError(
                f"Embedding service returned {len(vectors)} vectors "
                f"for {expected_count} inputs",
                kind=ServiceErrorKind.MALFORMED_RESPONSE,
                provider=self.provider_name,
                details=details,
            )

        checked: list[list[float]] = []
        for vector in vectors:
            try:
                values = [float(x) for x in vector]
            except (TypeError, ValueError) as e:
                raise EmbeddingServiceError(
                    f"Embedding service returned a non-numeric vector: {e}",
                    kind=ServiceErrorKind.MALFORMED_RESPONSE,
                    provider=self.provider_name,
                    details=details,
                ) from e
            if not values or not all(math.isfinite(x) for x in values):
                raise EmbeddingServiceError(
                    "Embedding service returned an empty or non-finite vector",
                    kind=ServiceErrorKind.MALFORMED_RESPONSE,
                    provider=self.provider_name,
                    details=details,
                )
            checked.append(values)

        if len({len(v) for v in checked}) > 1:
            raise EmbeddingServiceError(
                "Embedding service returned vectors of different dimensions",
                kind=ServiceErrorKind.MALFORMED_RESPONSE,
                provider=self.provider_name,
                details=details,
            )
        return checked


class EmbeddingConfigurationError(ConfigurationError):
    """Raised when embedding configuration is invalid (e.g. missing API key)."""

    pass


class UnknownEmbeddingProviderError(EmbeddingConfigurationError):
    """Raised when an unknown embedding provider is specified."""

    pass
