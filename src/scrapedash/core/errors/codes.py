"""Error kinds and the per-kind defaults attached to them.

This module provides:
- ErrorKind: the closed failure taxonomy
- RETRYABLE_KINDS: kinds whose failures are transient
- DEFAULT_USER_MESSAGES: human-facing text per kind
- RetryAfterHints: advisory wait times per failure shape

Error Kind Taxonomy
===================

    | Kind       | Retryable | Typical cause                               |
    |------------|-----------|---------------------------------------------|
    | network    | Yes       | connection refused, DNS failure, aborted     |
    | timeout    | Yes       | HTTP 408/504, transport timeout              |
    | server     | Yes       | HTTP 5xx                                     |
    | validation | No        | HTTP 4xx (except 408), bad client-side input |
    | unknown    | No        | anything unrecognized                        |

Client errors mean the request itself is wrong, so retrying unchanged
input cannot help. Network, timeout and server failures are transient.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds. Ordering has no meaning."""

    NETWORK = "network"
    """No response was received (connection refused, DNS, aborted)."""

    TIMEOUT = "timeout"
    """The request exceeded its deadline, or the server reported 408/504."""

    VALIDATION = "validation"
    """The request was rejected as invalid (4xx other than 408)."""

    SERVER = "server"
    """The server failed while handling a valid request (5xx)."""

    UNKNOWN = "unknown"
    """Failure that matched no rule."""


RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.TIMEOUT,
    ErrorKind.SERVER,
})

DEFAULT_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: (
        "Unable to connect to the server. Please check your internet connection."
    ),
    ErrorKind.TIMEOUT: "The request timed out. Please try again.",
    ErrorKind.VALIDATION: "Validation error",
    ErrorKind.SERVER: "A server error occurred. Please try again later.",
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
}


class RetryAfterHints:
    """Advisory wait times (seconds) attached to retryable descriptors.

    Used only when the server did not send a ``Retry-After`` header.
    The retry engine does not consult these; they are for callers that
    offer a manual retry.
    """

    NETWORK: int = 5
    SERVER: int = 10
    TIMEOUT_STATUS: int = 15  # 408 / 504 from the server
    TIMEOUT_TRANSPORT: int = 10  # client-side deadline exceeded


__all__ = [
    "DEFAULT_USER_MESSAGES",
    "ErrorKind",
    "RETRYABLE_KINDS",
    "RetryAfterHints",
]
