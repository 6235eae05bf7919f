"""Failure classification: any raw failure in, one ErrorDescriptor out.

``classify`` is the single place where the many incompatible failure
shapes (httpx exceptions, response-bearing errors, plain exceptions,
mappings, bare strings) are turned into the closed ``ErrorKind``
taxonomy. Callers never pattern-match raw shapes themselves.

Rules, in priority order:

1. HTTP status present: 4xx (not 408) → validation, 408/504 → timeout,
   5xx → server.
2. Transport deadline exceeded → timeout.
3. No response at all (refused, DNS, aborted) → network.
4. Message text matches a timeout or network signature.
5. Anything else → unknown.
"""

from __future__ import annotations

import re
import socket
from collections.abc import Mapping
from typing import Any

import httpx

from scrapedash.core.logging import get_logger

from .codes import ErrorKind, RetryAfterHints
from .models import ApiError, ErrorDescriptor

_logger = get_logger("errors")

_TIMEOUT_PATTERN = re.compile(r"\btime[sd]?[\s_-]?out\b|ETIMEDOUT", re.IGNORECASE)
_NETWORK_PATTERN = re.compile(
    r"network|ERR_NETWORK|connection.?(refused|reset|aborted)|name.?resolution",
    re.IGNORECASE,
)

# Payload fields that may carry a server-supplied explanation, in priority order
_PAYLOAD_MESSAGE_KEYS = ("error", "detail")


# =============================================================================
# Public API
# =============================================================================


def classify(raw_failure: object) -> ErrorDescriptor:
    """Map an arbitrary failure value to an ErrorDescriptor.

    Never raises. Already-classified values (``ApiError``,
    ``ErrorDescriptor``) are returned unchanged, so a failure is
    classified exactly once no matter how many layers it crosses.
    """
    try:
        return _classify(raw_failure)
    except Exception:
        _logger.warning(
            "errors.classify_failed",
            failure_type=type(raw_failure).__name__,
            exc_info=True,
        )
        return ErrorDescriptor(kind=ErrorKind.UNKNOWN, message="Unclassifiable failure")


def validation_error(message: str, field: str | None = None) -> ApiError:
    """Build an ApiError for input rejected before any request is made."""
    developer_message = f"{field}: {message}" if field else message
    return ApiError(
        ErrorDescriptor(
            kind=ErrorKind.VALIDATION,
            message=developer_message,
            user_message=message,
        )
    )


def is_api_unavailable(descriptor: ErrorDescriptor) -> bool:
    """True when the service looks entirely down rather than failing a request."""
    if descriptor.kind == ErrorKind.NETWORK:
        return True
    return (
        descriptor.kind == ErrorKind.SERVER
        and descriptor.status_code is not None
        and descriptor.status_code >= 503
    )


_SUGGESTIONS: dict[ErrorKind, list[str]] = {
    ErrorKind.NETWORK: [
        "Check your internet connection",
        "Verify the API server is running",
        "Check if there are any firewall restrictions",
    ],
    ErrorKind.TIMEOUT: [
        "The server may be overloaded - try again in a few minutes",
        "Check your internet connection speed",
        "Try reducing the complexity of your request",
    ],
    ErrorKind.SERVER: [
        "The server is experiencing issues",
        "Try again in a few minutes",
        "Check the service health with `scrapedash health`",
    ],
}

_DEFAULT_SUGGESTIONS = [
    "Check the request parameters",
    "Check the service health with `scrapedash health`",
]


def troubleshooting_suggestions(descriptor: ErrorDescriptor) -> list[str]:
    """Human-readable next steps for a failure kind."""
    suggestions = _SUGGESTIONS.get(descriptor.kind, _DEFAULT_SUGGESTIONS)
    return [*suggestions, "Contact support if the issue persists"]


def format_retry_info(
    attempt: int,
    max_attempts: int,
    next_retry_in: float | None = None,
) -> str:
    """Format retry progress, e.g. ``"Attempt 1/3. Retrying in 2 seconds..."``."""
    if next_retry_in:
        return (
            f"Attempt {attempt}/{max_attempts}. "
            f"Retrying in {next_retry_in:g} seconds..."
        )
    return f"Attempt {attempt}/{max_attempts}"


# =============================================================================
# Classification internals
# =============================================================================


def _classify(raw: object) -> ErrorDescriptor:
    if isinstance(raw, ApiError):
        return raw.descriptor
    if isinstance(raw, ErrorDescriptor):
        return raw

    response = _extract_response(raw)
    if response is not None:
        status, body, headers = response
        descriptor = _classify_status(raw, status, body, headers)
        if descriptor is not None:
            return descriptor

    message = _message_of(raw)

    # TimeoutError is a ConnectionError sibling under OSError; check deadlines first.
    if isinstance(raw, (httpx.TimeoutException, TimeoutError)):
        return ErrorDescriptor(
            kind=ErrorKind.TIMEOUT,
            message=message or "Request timed out",
            retry_after_hint=RetryAfterHints.TIMEOUT_TRANSPORT,
        )
    if isinstance(raw, (httpx.TransportError, ConnectionError, socket.gaierror)):
        return ErrorDescriptor(
            kind=ErrorKind.NETWORK,
            message=message or "No response received",
            retry_after_hint=RetryAfterHints.NETWORK,
        )

    if message and _TIMEOUT_PATTERN.search(message):
        return ErrorDescriptor(
            kind=ErrorKind.TIMEOUT,
            message=message,
            retry_after_hint=RetryAfterHints.TIMEOUT_TRANSPORT,
        )
    if message and _NETWORK_PATTERN.search(message):
        return ErrorDescriptor(
            kind=ErrorKind.NETWORK,
            message=message,
            retry_after_hint=RetryAfterHints.NETWORK,
        )

    return ErrorDescriptor(kind=ErrorKind.UNKNOWN, message=message or "Unknown error")


def _classify_status(
    raw: object,
    status: int,
    body: Any,
    headers: Mapping[str, str] | None,
) -> ErrorDescriptor | None:
    """Classify by HTTP status; None when the status carries no verdict."""
    payload_message = _payload_message(body)
    retry_after = _retry_after_seconds(headers)

    if status in (408, 504):
        return ErrorDescriptor(
            kind=ErrorKind.TIMEOUT,
            message=payload_message or f"HTTP {status}: request timed out",
            status_code=status,
            retry_after_hint=retry_after or RetryAfterHints.TIMEOUT_STATUS,
        )
    if 400 <= status < 500:
        return ErrorDescriptor(
            kind=ErrorKind.VALIDATION,
            message=payload_message or f"HTTP {status}: {_message_of(raw) or 'Validation error'}",
            user_message=payload_message or "",
            status_code=status,
            retry_after_hint=retry_after,
        )
    if 500 <= status < 600:
        return ErrorDescriptor(
            kind=ErrorKind.SERVER,
            message=payload_message or f"HTTP {status}: Server error",
            status_code=status,
            retry_after_hint=retry_after or RetryAfterHints.SERVER,
        )
    return None


def _extract_response(
    raw: object,
) -> tuple[int, Any, Mapping[str, str] | None] | None:
    """Find an HTTP status (plus body and headers) on a failure value."""
    if isinstance(raw, Mapping):
        nested = raw.get("response")
        if nested is not None:
            return _extract_response(nested)
        status = raw.get("status_code", raw.get("status"))
        if isinstance(status, int) and not isinstance(status, bool):
            return status, raw.get("data", raw.get("body")), raw.get("headers")
        return None

    if isinstance(raw, httpx.Response):
        return raw.status_code, _response_body(raw), raw.headers

    if isinstance(raw, BaseException) or hasattr(raw, "response"):
        response = getattr(raw, "response", None)
        if response is None:
            return None
        if isinstance(response, (httpx.Response, Mapping)):
            return _extract_response(response)
        status = getattr(response, "status_code", getattr(response, "status", None))
        if isinstance(status, int) and not isinstance(status, bool):
            body = getattr(response, "data", None)
            if body is None:
                body = _response_body(response)
            return status, body, getattr(response, "headers", None)
    return None


def _response_body(response: Any) -> Any:
    """Decode a response body as JSON, or None when it is not JSON."""
    decode = getattr(response, "json", None)
    if not callable(decode):
        return None
    try:
        return decode()
    except (ValueError, RuntimeError):
        return None


def _payload_message(body: Any) -> str | None:
    """Server-supplied explanation from an ``error``/``detail`` field."""
    if not isinstance(body, Mapping):
        return None
    for key in _PAYLOAD_MESSAGE_KEYS:
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, Mapping):
            inner = value.get("message") or value.get("msg")
            if isinstance(inner, str) and inner.strip():
                return inner.strip()
        if isinstance(value, list):
            # FastAPI-style validation detail: [{"loc": [...], "msg": "..."}]
            parts = [
                item.get("msg") if isinstance(item, Mapping) else item
                for item in value
            ]
            joined = "; ".join(str(p) for p in parts if p)
            if joined:
                return joined
    return None


def _retry_after_seconds(headers: Mapping[str, str] | None) -> int | None:
    if not headers:
        return None
    value = headers.get("retry-after") or headers.get("Retry-After")
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _message_of(raw: object) -> str:
    """First line of whatever text a failure carries."""
    if isinstance(raw, str):
        text = raw
    elif isinstance(raw, BaseException):
        text = str(raw) or type(raw).__name__
    elif isinstance(raw, Mapping):
        text = str(raw.get("message") or "")
    else:
        text = str(getattr(raw, "message", "") or "")
    return text.strip().splitlines()[0] if text.strip() else ""


__all__ = [
    "classify",
    "format_retry_info",
    "is_api_unavailable",
    "troubleshooting_suggestions",
    "validation_error",
]
