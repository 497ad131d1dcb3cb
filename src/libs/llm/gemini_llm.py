"""Google Gemini LLM implementation.

Calls the Generative Language REST API (generateContent) through httpx.
System messages become the request's systemInstruction; assistant turns
are sent with Gemini's 'model' role.
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

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiLLM(BaseLLM):
    """Gemini generation client.

    Example:
        >>> llm = GeminiLLM(api_key="...", model="gemini-1.5-flash")
        >>> llm.generate("What is INSAT-3D?", temperature=0.7, max_tokens=1000)
    """

    DEFAULT_MODEL = "gemini-1.5-flash"
    API_KEY_ENV = "GEMINI_API_KEY"

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
        """Initialize the Gemini LLM.

        Raises:
            LLMConfigurationError: If the API key is not configured.
        """
        self._api_key = api_key or os.getenv(self.API_KEY_ENV)
        self._base_url = (base_url or DEFAULT_GEMINI_BASE_URL).rstrip("/")
        self._model = (model or self.DEFAULT_MODEL).removeprefix("models/")
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._http_client = http_client

        if not self._api_key:
            raise LLMConfigurationError(
                "Gemini API key is not configured. Set 'llm.api_key' in settings "
                f"or the {self.API_KEY_ENV} env var.",
                provider="gemini"
            )

    @property
    def provider_name(self) -> str:
        return "gemini"

    def _build_request_payload(
        self,
        messages: list[ChatMessage],
        **kwargs: Any
    ) -> dict[str, Any]:
        system_parts = [{"text": m.content} for m in messages if m.role == "system"]
        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": m.content}],
            }
            for m in messages
            if m.role != "system"
        ]

        payload: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": kwargs.get("temperature", self._temperature),
                "maxOutputTokens": kwargs.get("max_tokens", self._max_tokens),
            },
        }
        if system_parts:
            payload["systemInstruction"] = {"parts": system_parts}
        return payload

    def _parse_response(self, response_data: dict[str, Any]) -> LLMResponse:
        """Parse a generateContent response.

        A response without candidates (e.g. blocked by safety filters) parses
        to empty content; generate() turns that into EMPTY_RESPONSE.
        """
        candidates = response_data.get("candidates") or []
        if not isinstance(candidates, list):
            raise malformed_response(
                GenerationServiceError, self.provider_name, "bad 'candidates'", response_data
            )

        text = ""
        if candidates:
            try:
                parts = (candidates[0].get("content") or {}).get("parts") or []
                text = "".join(part.get("text", "") for part in parts)
            except AttributeError as e:
                raise malformed_response(
                    GenerationServiceError, self.provider_name, f"bad candidate ({e})", response_data
                ) from e

        usage = response_data.get("usageMetadata") or {}
        return LLMResponse(
            content=text,
            raw_response=response_data,
            usage={
                "prompt_tokens": usage.get("promptTokenCount", 0),
                "completion_tokens": usage.get("candidatesTokenCount", 0),
                "total_tokens": usage.get("totalTokenCount", 0),
            },
        )

    def chat(
        self,
        messages: list[ChatMessage],
        trace: TraceContext | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Send a generateContent request.

        Raises:
            GenerationServiceError: If the request fails.
        """
        if not messages:
            raise ValueError("No messages provided to chat")

        logger.info(
            f"Gemini chat request: model={self._model}, message_count={len(messages)}"
        )
        if trace:
            trace.record_stage(
                "llm_request",
                {"provider": self.provider_name, "model": self._model, "message_count": len(messages)},
            )

        url = f"{self._base_url}/models/{self._model}:generateContent"
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }
        client = self._http_client or httpx.Client(timeout=self._timeout)

        try:
            response = client.post(
                url,
                headers=headers,
                json=self._build_request_payload(messages, **kwargs),
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
            f"Gemini chat response: content_length={len(result.content)}, tokens={result.usage}"
        )
        if trace:
            trace.record_stage(
                "llm_response",
                {"content_length": len(result.content), "tokens": result.usage},
            )

        return result

    def __repr__(self) -> str:
        return (
            f"GeminiLLM(provider={self.provider_name}, model={self._model}, "
            f"api_key={self.api_key_masked})"
        )
