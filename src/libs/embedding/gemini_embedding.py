"""Google Gemini Embedding implementation.

Calls the Generative Language REST API (batchEmbedContents) through httpx.

Example:
    >>> embedding = GeminiEmbedding(api_key="...")
    >>> vector = embedding.embed_single("What is INSAT-3D?")
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

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiEmbedding(BaseEmbedding):
    """Gemini embeddings over the REST API.

    Attributes:
        api_key: Google AI Studio API key
        base_url: API root (defaults to the public v1beta endpoint)
        model: Embedding model name, without the 'models/' prefix
        timeout: Default request timeout in seconds
    """

    DEFAULT_MODEL = "embedding-001"
    API_KEY_ENV = "GEMINI_API_KEY"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        dimensions: int | None = None,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the Gemini Embedding.

        Raises:
            EmbeddingConfigurationError: If the API key is not configured.
        """
        self._api_key = api_key or os.getenv(self.API_KEY_ENV)
        self._base_url = (base_url or DEFAULT_GEMINI_BASE_URL).rstrip("/")
        self._model = (model or self.DEFAULT_MODEL).removeprefix("models/")
        self._dimensions = dimensions
        self._timeout = timeout
        self._http_client = http_client

        if not self._api_key:
            raise EmbeddingConfigurationError(
                "Gemini API key is not configured. Set 'embedding.api_key' in "
                f"settings or the {self.API_KEY_ENV} env var.",
                provider="gemini"
            )

    @property
    def provider_name(self) -> str:
        return "gemini"

    def _build_request_payload(self, texts: list[str]) -> dict[str, Any]:
        requests = []
        for text in texts:
            request: dict[str, Any] = {
                "model": f"models/{self._model}",
                "content": {"parts": [{"text": text}]},
            }
            if self._dimensions is not None:
                request["outputDimensionality"] = self._dimensions
            requests.append(request)
        return {"requests": requests}

    def _parse_response(
        self,
        response_data: dict[str, Any],
        expected_count: int,
    ) -> EmbeddingResult:
        embeddings = response_data.get("embeddings")
        if not isinstance(embeddings, list):
            raise malformed_response(
                EmbeddingServiceError, self.provider_name, "missing 'embeddings'", response_data
            )
        try:
            raw_vectors = [item["values"] for item in embeddings]
        except (KeyError, TypeError) as e:
            raise malformed_response(
                EmbeddingServiceError, self.provider_name, f"bad item ({e})", response_data
            ) from e

        return EmbeddingResult(vectors=self._check_vectors(raw_vectors, expected_count))

    def embed(
        self,
        texts: list[str],
        trace: TraceContext | None = None,
        timeout: float | None = None,
        **kwargs: Any
    ) -> EmbeddingResult:
        """Generate embeddings for a list of texts.

        Raises:
            EmbeddingServiceError: If embedding fails.
        """
        if not texts:
            return EmbeddingResult(vectors=[])

        logger.info(
            f"Gemini embedding request: model={self._model}, text_count={len(texts)}"
        )
        if trace:
            trace.record_stage(
                "embedding_request",
                {"provider": self.provider_name, "model": self._model, "text_count": len(texts)},
            )

        url = f"{self._base_url}/models/{self._model}:batchEmbedContents"
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }
        client = self._http_client or httpx.Client(timeout=self._timeout)

        try:
            response = client.post(
                url,
                headers=headers,
                json=self._build_request_payload(texts),
                timeout=timeout or self._timeout,
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

        logger.info(f"Gemini embedding response: vector_count={len(result.vectors)}")
        if trace:
            trace.record_stage("embedding_response", {"vector_count": len(result.vectors)})

        return result

    def __repr__(self) -> str:
        return (
            f"GeminiEmbedding(provider={self.provider_name}, "
            f"model={self._model}, api_key={self.api_key_masked})"
        )
