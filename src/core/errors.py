"""Error taxonomy for the question-answering pipeline.

Every failure the pipeline can surface is a RagError. External client
boundaries (embedding, generation) attach a ServiceErrorKind tag when they
raise, so the orchestrator classifies failures with a tag switch instead of
inspecting message text. Message inspection survives only as a fallback
adapter for boundaries that raise untagged exceptions.

Design Principles:
    - Structured: Service errors carry kind, provider, code and details
    - User-Safe: Each kind maps to one fixed message for end users
    - Observable: Raw service detail stays on the exception for operators
"""

from enum import Enum
from typing import Any


class ServiceErrorKind(str, Enum):
    """Classification tag attached to external service failures."""

    AUTH = "auth"
    QUOTA = "quota"
    UNAVAILABLE = "unavailable"
    MODEL_UNAVAILABLE = "model_unavailable"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    EMPTY_RESPONSE = "empty_response"
    UNKNOWN = "unknown"


class RagError(Exception):
    """Base exception for all pipeline errors."""

    pass


class InputValidationError(RagError):
    """Raised when a query, knowledge text or config value is invalid."""

    pass


class ConfigurationError(RagError):
    """Raised when required configuration (e.g. a credential) is missing."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class InternalRetrievalError(RagError):
    """Raised on a programming-contract violation inside retrieval."""

    pass


class ServiceError(RagError):
    """Base exception for failures reported by an external service.

    Attributes:
        kind: Classification tag used for user-facing messages
        provider: Provider that raised the error (e.g. 'openai', 'gemini')
        code: HTTP status code, when there was one
        details: Raw detail for operators; never shown to end users
    """

    def __init__(
        self,
        message: str,
        kind: ServiceErrorKind = ServiceErrorKind.UNKNOWN,
        provider: str | None = None,
        code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.code = code
        self.details = details or {}


class EmbeddingServiceError(ServiceError):
    """Raised when the embedding service fails."""

    pass


class GenerationServiceError(ServiceError):
    """Raised when the generation service fails."""

    pass


# Substring markers for the fallback classifier, checked in order.
_MESSAGE_MARKERS: list[tuple[ServiceErrorKind, tuple[str, ...]]] = [
    (
        ServiceErrorKind.AUTH,
        (
            "api_key",
            "api key",
            "authentication",
            "unauthorized",
            "unauthenticated",
            "permission",
            "invalid key",
        ),
    ),
    (
        ServiceErrorKind.QUOTA,
        ("quota", "rate limit", "rate_limit", "resource_exhausted", "too many requests"),
    ),
    (ServiceErrorKind.TIMEOUT, ("timeout", "timed out", "deadline")),
    (ServiceErrorKind.MODEL_UNAVAILABLE, ("model",)),
    (ServiceErrorKind.UNAVAILABLE, ("unavailable", "connection", "connect")),
]

# Kinds whose message markers take precedence over the HTTP status
_STATUS_OVERRIDING_KINDS = (ServiceErrorKind.QUOTA, ServiceErrorKind.TIMEOUT)


def classify_error_message(message: str) -> ServiceErrorKind:
    """Classify a raw error message by substring markers.

    Only used when a boundary cannot attach a structured kind.

    Args:
        message: Raw error text from a service or client library

    Returns:
        The first matching ServiceErrorKind, or UNKNOWN.
    """
    lowered = (message or "").lower()
    for kind, markers in _MESSAGE_MARKERS:
        if any(marker in lowered for marker in markers):
            return kind
    return ServiceErrorKind.UNKNOWN


def kind_from_http_status(status_code: int, message: str = "") -> ServiceErrorKind:
    """Classify an HTTP error response.

    Quota and timeout markers in the message win over the status code:
    providers report exhausted quota as 403 or 5xx as well as 429.

    Args:
        status_code: HTTP status code of the failed response
        message: Error message extracted from the response body

    Returns:
        ServiceErrorKind for the failure.
    """
    lowered = (message or "").lower()
    for kind, markers in _MESSAGE_MARKERS:
        if kind in _STATUS_OVERRIDING_KINDS and any(marker in lowered for marker in markers):
            return kind

    if status_code in (401, 403):
        return ServiceErrorKind.AUTH
    if status_code == 429:
        return ServiceErrorKind.QUOTA
    if status_code == 404:
        return ServiceErrorKind.MODEL_UNAVAILABLE
    if status_code in (408, 504):
        return ServiceErrorKind.TIMEOUT
    if status_code >= 500:
        return ServiceErrorKind.UNAVAILABLE
    # 400 and friends: providers report bad keys and quota here too
    return classify_error_message(message)


def wrap_service_failure(error: Exception, stage: str) -> ServiceError:
    """Convert an arbitrary exception from a service boundary into a ServiceError.

    Args:
        error: The exception raised by the boundary
        stage: 'embedding' or 'generation'

    Returns:
        EmbeddingServiceError or GenerationServiceError. ServiceErrors are
        returned unchanged.
    """
    if isinstance(error, ServiceError):
        return error

    error_class = EmbeddingServiceError if stage == "embedding" else GenerationServiceError
    return error_class(
        str(error),
        kind=classify_error_message(str(error)),
        details={"error_type": type(error).__name__},
    )


GENERIC_ERROR_MESSAGE = "Error: Unable to process your request at the moment"
KNOWLEDGE_BASE_UNAVAILABLE_MESSAGE = "Error: Knowledge base not available"
CONFIGURATION_ERROR_MESSAGE = "Error: AI service API key not configured"

_KIND_MESSAGES: dict[ServiceErrorKind, str] = {
    ServiceErrorKind.AUTH: "Error: Invalid AI service API key configuration",
    ServiceErrorKind.QUOTA: "Error: AI service quota exceeded",
    ServiceErrorKind.MODEL_UNAVAILABLE: "Error: AI model temporarily unavailable",
    ServiceErrorKind.UNAVAILABLE: "Error: AI service temporarily unavailable",
    ServiceErrorKind.TIMEOUT: "Error: AI service did not respond in time, please try again",
    ServiceErrorKind.MALFORMED_RESPONSE: "Error: AI service returned an invalid response",
    ServiceErrorKind.EMPTY_RESPONSE: "Error: AI service returned an empty response",
    ServiceErrorKind.UNKNOWN: GENERIC_ERROR_MESSAGE,
}

# Retrieval-side failures that are not credential or quota related
_EMBEDDING_KIND_MESSAGES: dict[ServiceErrorKind, str] = {
    ServiceErrorKind.UNAVAILABLE: "Error: Knowledge retrieval system unavailable",
    ServiceErrorKind.MALFORMED_RESPONSE: "Error: Knowledge retrieval system unavailable",
    ServiceErrorKind.EMPTY_RESPONSE: "Error: Knowledge retrieval system unavailable",
    ServiceErrorKind.MODEL_UNAVAILABLE: "Error: Knowledge retrieval system unavailable",
}

_KIND_STATUS: dict[ServiceErrorKind, str] = {
    ServiceErrorKind.AUTH: "auth_error",
    ServiceErrorKind.QUOTA: "quota_error",
    ServiceErrorKind.MODEL_UNAVAILABLE: "model_error",
    ServiceErrorKind.TIMEOUT: "timeout_error",
}


def user_message_for(error: Exception) -> str:
    """Return the fixed, user-safe message for an error.

    Validation messages are literal and safe to show. Service errors map to
    one message per kind; the raw service text is never returned.

    Args:
        error: Any exception raised while answering a query

    Returns:
        Human-readable message for the end user.
    """
    if isinstance(error, InputValidationError):
        return str(error)
    if isinstance(error, ConfigurationError):
        return CONFIGURATION_ERROR_MESSAGE
    if isinstance(error, EmbeddingServiceError) and error.kind in _EMBEDDING_KIND_MESSAGES:
        return _EMBEDDING_KIND_MESSAGES[error.kind]
    if isinstance(error, ServiceError):
        return _KIND_MESSAGES[error.kind]
    return GENERIC_ERROR_MESSAGE


def status_for(error: Exception) -> str:
    """Return the request status tag for an error (e.g. 'quota_error')."""
    if isinstance(error, InputValidationError):
        return "validation_error"
    if isinstance(error, ConfigurationError):
        return "config_error"
    if isinstance(error, ServiceError):
        if error.kind in _KIND_STATUS:
            return _KIND_STATUS[error.kind]
        if isinstance(error, EmbeddingServiceError):
            return "rag_error"
    return "system_error"
