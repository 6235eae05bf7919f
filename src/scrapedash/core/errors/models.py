"""Data models for classified failures.

This module provides:
- ErrorDescriptor: the immutable, normalized shape of any failure
- ApiError: the exception that carries a descriptor to callers
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from scrapedash.core.exceptions import ScrapeDashError

from .codes import DEFAULT_USER_MESSAGES, RETRYABLE_KINDS, ErrorKind


@dataclass(frozen=True)
class ErrorDescriptor:
    """Normalized representation of a failure.

    ``retryable`` is not passed in: it is derived from ``kind`` so two
    descriptors of the same kind can never disagree about it.

    Attributes:
        kind: Failure kind from the closed taxonomy.
        message: Developer-facing description, from the underlying cause.
        user_message: Human-facing text, defaults per kind.
        status_code: HTTP status, only when a response was received.
        retry_after_hint: Advisory seconds before a manual retry.
        retryable: Whether the retry engine may attempt the call again.
    """

    kind: ErrorKind
    message: str
    user_message: str = ""
    status_code: int | None = None
    retry_after_hint: int | None = None
    retryable: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "retryable", self.kind in RETRYABLE_KINDS)
        if not self.user_message:
            object.__setattr__(self, "user_message", DEFAULT_USER_MESSAGES[self.kind])

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "user_message": self.user_message,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "retry_after_hint": self.retry_after_hint,
        }


class ApiError(ScrapeDashError):
    """Failure of a remote-service call, carrying its ErrorDescriptor.

    Every failure leaving the request client, the retry engine, or a
    domain service is an ``ApiError``; callers never see raw transport
    exceptions.
    """

    def __init__(self, descriptor: ErrorDescriptor) -> None:
        super().__init__(descriptor.message)
        self.descriptor = descriptor

    @property
    def kind(self) -> ErrorKind:
        return self.descriptor.kind

    @property
    def retryable(self) -> bool:
        return self.descriptor.retryable

    @property
    def status_code(self) -> int | None:
        return self.descriptor.status_code

    @property
    def user_message(self) -> str:
        return self.descriptor.user_message

    def __repr__(self) -> str:
        return (
            f"ApiError(kind={self.kind.value!r}, status_code={self.status_code!r}, "
            f"message={self.descriptor.message!r})"
        )


__all__ = ["ApiError", "ErrorDescriptor"]
