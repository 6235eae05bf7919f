"""Retry policy values shared by the retry engine and the health monitor.

All timing values are in seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from scrapedash.core.errors import RETRYABLE_KINDS, ErrorKind


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration.

    Attributes:
        max_attempts: Total executions allowed, including the first (>= 1).
        base_delay: Delay before the second attempt.
        max_delay: Cap on the un-jittered delay.
        backoff_factor: Multiplier applied per attempt (> 1).
        retry_on: Error kinds this policy is willing to retry. A kind
            outside the transient set is never retried regardless.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    retry_on: frozenset[ErrorKind] = field(default=RETRYABLE_KINDS)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.backoff_factor <= 1:
            raise ValueError("backoff_factor must be > 1")
        object.__setattr__(self, "retry_on", frozenset(ErrorKind(k) for k in self.retry_on))

    def allows(self, kind: ErrorKind) -> bool:
        """Whether failures of ``kind`` are eligible for retry under this policy."""
        return kind in self.retry_on

    def to_dict(self) -> dict[str, object]:
        return {
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "backoff_factor": self.backoff_factor,
            "retry_on": sorted(k.value for k in self.retry_on),
        }


DEFAULT_RETRY_POLICY = RetryPolicy()
"""Process-wide default for data requests: 3 attempts, 1s → 10s."""

HEALTH_CHECK_POLICY = RetryPolicy(max_attempts=2, base_delay=0.25, max_delay=1.0)
"""Liveness checks fail fast instead of hiding behind long backoff."""


__all__ = ["DEFAULT_RETRY_POLICY", "HEALTH_CHECK_POLICY", "RetryPolicy"]
