"""Translate httpx failures into tagged service errors.

Both the embedding and generation clients talk HTTP through httpx. This
module turns status errors, timeouts and connection failures into the
caller's ServiceError subclass with a ServiceErrorKind attached, so the
orchestrator never has to parse message text.
"""

import json
from typing import Any

import httpx

from core.errors import ServiceError, ServiceErrorKind, kind_from_http_status


def _extract_error_message(response: httpx.Response) -> tuple[str, Any]:
    """Pull the error message out of an OpenAI- or Google-style error body."""
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        return f"HTTP {response.status_code}", None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or error.get("status") or f"HTTP {response.status_code}"
        return str(message), body
    if isinstance(error, str):
        return error, body
    return f"HTTP {response.status_code}", body


def service_error_from_status(
    error: httpx.HTTPStatusError,
    error_class: type[ServiceError],
    provider: str,
) -> ServiceError:
    """Build a tagged service error from an HTTP error response.

    Args:
        error: The raised status error
        error_class: EmbeddingServiceError or GenerationServiceError
        provider: Provider name for the error

    Returns:
        An instance of error_class (the caller raises it)
    """
    status = error.response.status_code
    message, body = _extract_error_message(error.response)
    details: dict[str, Any] = {"status_code": status}
    if body is not None:
        details["response_body"] = body

    return error_class(
        f"{provider} API error: {message}",
        kind=kind_from_http_status(status, message),
        provider=provider,
        code=status,
        details=details,
    )


def service_error_from_request(
    error: httpx.RequestError,
    error_class: type[ServiceError],
    provider: str,
    url: str,
) -> ServiceError:
    """Build a tagged service error from a transport failure.

    Timeouts get their own kind; every other transport failure means the
    service is unreachable.
    """
    kind = (
        ServiceErrorKind.TIMEOUT
        if isinstance(error, httpx.TimeoutException)
        else ServiceErrorKind.UNAVAILABLE
    )
    return error_class(
        f"Failed to reach {provider} API: {error}",
        kind=kind,
        provider=provider,
        details={"url": url, "error": str(error)},
    )


def malformed_response(
    error_class: type[ServiceError],
    provider: str,
    message: str,
    body: Any = None,
) -> ServiceError:
    """Build a MALFORMED_RESPONSE service error."""
    return error_class(
        f"{provider} API returned a malformed response: {message}",
        kind=ServiceErrorKind.MALFORMED_RESPONSE,
        provider=provider,
        details={"response_body": body} if body is not None else {},
    )


def read_json(
    response: httpx.Response,
    error_class: type[ServiceError],
    provider: str,
) -> dict[str, Any]:
    """Decode a JSON object body or raise MALFORMED_RESPONSE."""
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise malformed_response(error_class, provider, f"invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise malformed_response(error_class, provider, "expected a JSON object", data)
    return data
