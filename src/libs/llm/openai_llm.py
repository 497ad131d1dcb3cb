"""OpenAI-compatible LLM implementation.

This module provides the OpenAI generation client that follows the BaseLLM
interface. It supports OpenAI's chat completions API and any provider that
uses the same format (DeepSeek, local servers, proxies, ...).

Design Principles:
    - OpenAI-compatible: Follows OpenAI API conventions
    - Observable: trace parameter for tracing integration
    - Tagged Failures: HTTP failures become GenerationServiceError with a kind
"""

import os
from typing import Any

import httpx

from core.errors import GenerationServiceError
from core.trace.trace_context import TraceContext
from libs.http_errors import (
    malformed_response,
    read_json,
    service_error_from_request,
    service_error_from_status,
)
from libs.llm.base_llm import (
    BaseLLM,
    ChatMessage,
    LLMConfigurationError,
    LLMResponse,
)
from observability.logger import get_logger

logger = get_logger(__name__)


class OpenAILLM(BaseLLM):
    """OpenAI LLM implementation.

    Attributes:
        api_key: OpenAI API key
        base_url: Base URL for the API endpoint
        model: Model name to use
        temperature: Default sampling temperature
        max_tokens: Default maximum tokens to generate
        timeout: Default request timeout in seconds
        http_client: Optional HTTP client for custom configuration

    Example:
        >>> llm = OpenAILLM(api_key="sk-...", model="gpt-4o-mini")
        >>> llm.generate("Hello", temperature=0.3, max_tokens=100)
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    API_KEY_ENV = "OPENAI_API_KEY"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the OpenAI LLM.

        Raises:
            LLMConfigurationError: If the model or API key is not configured.
        """
        self._api_key = api_key or os.getenv(self.API_KEY_ENV)
        self._base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._http_client = http_client

        if not self._model:
            raise LLMConfigurationError(
                "OpenAI model is not configured. Set 'llm.model' in settings or pass it directly.",
                provider="openai"
            )
        if not self._api_key:
            raise LLMConfigurationError(
                "OpenAI API key is not configured. Set 'llm.api_key' in settings "
                f"or the {self.API_KEY_ENV} env var.",
                provider="openai"
            )

    @property
    def provider_name(self) -> str:
        """Return the name of this provider.

        Returns:
            Provider identifier: 'openai'
        """
        return "openai"

    def _build_request_payload(
        self,
        messages: list[ChatMessage],
        **kwargs: Any
    ) -> dict[str, Any]:
        """Build the request payload for OpenAI chat completions API."""
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "temperature": kwargs.get("temperature", self._temperature),
            "max_tokens": kwargs.get("max_tokens", self._max_tokens),
        }

        for optional in ("top_p", "presence_penalty", "frequency_penalty"):
            if optional in kwargs:
                payload[optional] = kwargs[optional]

        return payload

    def _parse_response(self, response_data: dict[str, Any]) -> LLMResponse:
        """Parse OpenAI API response into LLMResponse."""
        choices = response_data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise malformed_response(
                GenerationServiceError, self.provider_name, "missing 'choices'", response_data
            )

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise malformed_response(
                GenerationServiceError, self.provider_name, "missing 'message'", response_data
            )

        usage = response_data.get("usage") or {}
        return LLMResponse(
            content=message.get("content") or "",
            raw_response=response_data,
            usage={
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
        )

    def chat(
        self,
        messages: list[ChatMessage],
        trace: TraceContext | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Send a chat request to OpenAI.

        Args:
            messages: List of chat messages in conversation order.
            trace: Tracing context for observability.
            **kwargs: temperature, max_tokens, timeout, top_p, ...

        Returns:
            LLMResponse containing the generated text.

        Raises:
            GenerationServiceError: If the request fails.
        """
        if not messages:
            raise ValueError("No messages provided to chat")

        logger.info(
            f"OpenAI chat request: model={self._model}, "
            f"message_count={len(messages)}"
        )
        if trace:
            trace.record_stage(
                "llm_request",
                {
                    "provider": self.provider_name,
                    "model": self._model,
                    "message_count": len(messages)
                }
            )

        payload = self._build_request_payload(messages, **kwargs)
        url = f"{self._base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        client = self._http_client or httpx.Client(timeout=self._timeout)

        try:
            response = client.post(
                url,
                headers=headers,
                json=payload,
                timeout=kwargs.get("timeout") or self._timeout,
            )
            response.raise_for_status()
            result = self._parse_response(
                read_json(response, GenerationServiceError, self.provider_name)
            )
        except httpx.HTTPStatusError as e:
            raise service_error_from_status(e, GenerationServiceError, self.provider_name) from e
        except httpx.RequestError as e:
            raise service_error_from_request(
                e, GenerationServiceError, self.provider_name, url
            ) from e
        finally:
            if self._http_client is None:
                client.close()

        logger.info(
            f"OpenAI chat response: content_length={len(result.content)}, "
            f"tokens={result.usage}"
        )
        if trace:
            trace.record_stage(
                "llm_response",
                {"content_length": len(result.content), "tokens": result.usage}
            )

        return result

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"OpenAILLM(provider={self.provider_name}, "
            f"model={self._model}, "
            f"temperature={self._temperature})"
        )
