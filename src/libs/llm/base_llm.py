"""Abstract base class for LLM providers.

This module defines the BaseLLM interface that all generation clients
must follow. This enables pluggable LLM providers (OpenAI, Gemini, ...).

Design Principles:
    - Pluggable: All providers implement chat()
    - Single-Prompt Entry: generate() wraps chat() for the RAG pipeline
    - Strict Output: An empty completion is a failure, never an empty answer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from core.errors import (
    ConfigurationError,
    GenerationServiceError,
    ServiceErrorKind,
)
from core.trace.trace_context import TraceContext
from observability.logger import mask_secret


@dataclass
class LLMResponse:
    """Response from an LLM chat completion.

    Attributes:
        content: The text content of the response
        raw_response: The raw response from the provider (if available)
        usage: Token usage information (if available)
    """
    content: str
    raw_response: Any | None = None
    usage: dict[str, int] | None = None


@dataclass
class ChatMessage:
    """A single message in a chat conversation.

    Attributes:
        role: Message role (user, assistant, system)
        content: Message content
    """
    role: str  # "user", "assistant", "system"
    content: str


class BaseLLM(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider.

        Returns:
            Provider identifier (e.g., 'openai', 'gemini')
        """
        ...

    @property
    def model_name(self) -> str:
        """Return the model identifier used in answer metadata."""
        return getattr(self, "_model", None) or self.provider_name

    @property
    def api_key_masked(self) -> str:
        """Credential rendered for logs and health reports."""
        return mask_secret(getattr(self, "_api_key", None))

    @abstractmethod
    def chat(
        self,
        messages: list[ChatMessage],
        trace: TraceContext | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Send a chat request to the LLM.

        Args:
            messages: List of chat messages in conversation order
            trace: Tracing context for observability
            **kwargs: Additional provider-specific arguments
                - temperature: Sampling temperature (0.0-1.0)
                - max_tokens: Maximum tokens to generate
                - timeout: Per-call timeout in seconds

        Returns:
            LLMResponse containing the generated text

        Raises:
            GenerationServiceError: If the request fails
        """
        ...

    def generate(
        self,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        trace: TraceContext | None = None,
        **kwargs: Any
    ) -> str:
        """Generate text for a single prompt.

        Args:
            prompt: The fully assembled prompt
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens to generate
            trace: Tracing context for observability
            **kwargs: Passed through to chat() (e.g. timeout)

        Returns:
            The generated text, never empty

        Raises:
            GenerationServiceError: On service failure, or EMPTY_RESPONSE
                when the model returns no text
        """
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        response = self.chat(
            [ChatMessage(role="user", content=prompt)],
            trace=trace,
            **kwargs
        )

        if not response.content or not response.content.strip():
            raise GenerationServiceError(
                "Generation service returned an empty response",
                kind=ServiceErrorKind.EMPTY_RESPONSE,
                provider=self.provider_name,
                details={"usage": response.usage},
            )
        return response.content


class LLMConfigurationError(ConfigurationError):
    """Raised when LLM configuration is invalid (missing model or API key)."""

    pass


class UnknownLLMProviderError(LLMConfigurationError):
    """Raised when an unknown LLM provider is specified."""

    pass
