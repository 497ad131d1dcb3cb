"""OpenAI Embedding implementation.

This module provides the OpenAI embedding client that follows the
BaseEmbedding interface. It is compatible with any provider that uses the
OpenAI embeddings format.

Design Principles:
    - OpenAI-compatible: Follows OpenAI embeddings API conventions
    - Observable: trace parameter for tracing integration
    - Tagged Failures: HTTP failures become EmbeddingServiceError with a kind
"""

import os
from typing import Any

import httpx

from core.errors import EmbeddingServiceError
from core.trace.trace_context import TraceContext
from libs.embedding.base_embedding import (
    BaseEmbedding,
    EmbeddingConfigurationError,
    EmbeddingResult,
)
from libs.http_errors import (
    malformed_response,
    read_json,
    service_error_from_request,
    service_error_from_status,
)
from observability.logger import get_logger

logger = get_logger(__name__)


class OpenAIEmbedding(BaseEmbedding):
    """OpenAI Embedding implementation.

    Attributes:
        api_key: OpenAI API key
        base_url: Base URL for the API endpoint
        model: Model name to use
        dimensions: Embedding dimensions (if supported by model)
        timeout: Default request timeout in seconds
        http_client: Optional HTTP client for custom configuration

    Example:
        >>> embedding = OpenAIEmbedding(api_key="sk-...")
        >>> result = embedding.embed(["Hello world"])
        >>> print(result.vectors[0][:5])
    """

    DEFAULT_MODEL = "text-embedding-3-small"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    API_KEY_ENV = "OPENAI_API_KEY"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        dimensions: int | None = None,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the OpenAI Embedding.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY env var.
            base_url: Base URL for the API. Defaults to OpenAI's official API.
            model: Model name. Defaults to text-embedding-3-small.
            dimensions: Embedding dimensions. Optional for compatible models.
            timeout: Default request timeout in seconds.
            http_client: Optional pre-configured HTTP client.

        Raises:
            EmbeddingConfigurationError: If API key is not configured.
        """
        self._api_key = api_key or os.getenv(self.API_KEY_ENV)
        self._base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._model = model or self.DEFAULT_MODEL
        self._dimensions = dimensions
        self._timeout = timeout
        self._http_client = http_client

        if not self._api_key:
            raise EmbeddingConfigurationError(
                "OpenAI API key is not configured. Set 'embedding.api_key' in "
                f"settings or the {self.API_KEY_ENV} env var.",
                provider="openai"
            )

    @property
    def provider_name(self) -> str:
        """Return the name of this provider.

        Returns:
            Provider identifier: 'openai'
        """
        return "openai"

    def _build_request_payload(self, texts: list[str]) -> dict[str, Any]:
        """Build the request payload for OpenAI embeddings API."""
        payload: dict[str, Any] = {
            "input": texts,
            "model": self._model,
        }
        if self._dimensions is not None:
            payload["dimensions"] = self._dimensions
        return payload

    def _parse_response(
        self,
        response_data: dict[str, Any],
        expected_count: int,
    ) -> EmbeddingResult:
        """Parse OpenAI API response into EmbeddingResult.

        The API may return items out of order; they are sorted by 'index'.
        """
        data = response_data.get("data")
        if not isinstance(data, list) or not data:
            raise malformed_response(
                EmbeddingServiceError, self.provider_name, "missing 'data'", response_data
            )

        try:
            items = sorted(data, key=lambda item: item.get("index", 0))
            raw_vectors = [item["embedding"] for item in items]
        except (AttributeError, KeyError, TypeError) as e:
            raise malformed_response(
                EmbeddingServiceError, self.provider_name, f"bad item ({e})", response_data
            ) from e

        vectors = self._check_vectors(raw_vectors, expected_count)

        usage = response_data.get("usage") or {}
        usage_info: dict[str, int] | None = None
        if usage:
            usage_info = {
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            }

        return EmbeddingResult(vectors=vectors, usage=usage_info)

    def embed(
        self,
        texts: list[str],
        trace: TraceContext | None = None,
        timeout: float | None = None,
        **kwargs: Any
    ) -> EmbeddingResult:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed.
            trace: Tracing context for observability.
            timeout: Per-call timeout in seconds (defaults to the client's).

        Returns:
            EmbeddingResult containing one vector per text, in order.

        Raises:
            EmbeddingServiceError: If embedding fails.
        """
        if not texts:
            return EmbeddingResult(vectors=[])

        logger.info(
            f"OpenAI embedding request: model={self._model}, "
            f"text_count={len(texts)}"
        )

        if trace:
            trace.record_stage(
                "embedding_request",
                {
                    "provider": self.provider_name,
                    "model": self._model,
                    "text_count": len(texts)
                }
            )

        payload = self._build_request_payload(texts)
        url = f"{self._base_url}/embeddings"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        client = self._http_client or httpx.Client(timeout=self._timeout)

        try:
            response = client.post(
                url, headers=headers, json=payload, timeout=timeout or self._timeout
            )
            response.raise_for_status()
            result = self._parse_response(
                read_json(response, EmbeddingServiceError, self.provider_name),
                expected_count=len(texts),
            )
        except httpx.HTTPStatusError as e:
            raise service_error_from_status(e, EmbeddingServiceError, self.provider_name) from e
        except httpx.RequestError as e:
            raise service_error_from_request(
                e, EmbeddingServiceError, self.provider_name, url
            ) from e
        finally:
            if self._http_client is None:
                client.close()

        logger.info(
            f"OpenAI embedding response: vector_count={len(result.vectors)}, "
            f"dimensions={len(result.vectors[0])}"
        )

        if trace:
            trace.record_stage(
                "embedding_response",
                {
                    "vector_count": len(result.vectors),
                    "tokens": result.usage
                }
            )

        return result

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"OpenAIEmbedding(provider={self.provider_name}, "
            f"model={self._model}, "
            f"api_key={self.api_key_masked})"
        )
