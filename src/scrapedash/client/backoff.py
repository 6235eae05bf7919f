"""Exponential backoff with additive jitter.

``delay = min(base_delay * backoff_factor ** (attempt - 1), max_delay)``
plus a uniform jitter in ``[0, 0.1 * delay]``. Jitter desynchronizes
many clients retrying against the same outage; because it is additive
the expected delay never decreases as the attempt number grows.
"""

from __future__ import annotations

import random
from collections.abc import Callable

from scrapedash.client.policy import RetryPolicy

JITTER_RATIO = 0.1


def base_delay_for(attempt_number: int, policy: RetryPolicy) -> float:
    """Un-jittered delay in seconds after ``attempt_number`` failed."""
    if attempt_number < 1:
        raise ValueError(f"attempt_number must be >= 1, got {attempt_number}")
    try:
        delay = policy.base_delay * (policy.backoff_factor ** (attempt_number - 1))
    except OverflowError:
        return policy.max_delay
    return min(delay, policy.max_delay)


def compute_delay(
    attempt_number: int,
    policy: RetryPolicy,
    *,
    rng: Callable[[], float] = random.random,
) -> float:
    """Delay in seconds to wait after ``attempt_number`` failed.

    Args:
        attempt_number: The attempt that just failed (1-indexed).
        policy: Retry policy supplying base, cap and factor.
        rng: Source of uniform values in ``[0, 1)``; stub it for a
            deterministic result.

    Returns:
        A delay in ``[baseline, 1.1 * baseline]``, never above
        ``1.1 * policy.max_delay``.
    """
    delay = base_delay_for(attempt_number, policy)
    return delay + rng() * JITTER_RATIO * delay


__all__ = ["JITTER_RATIO", "base_delay_for", "compute_delay"]
