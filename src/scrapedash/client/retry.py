"""Retry engine: run an async operation until it succeeds or retries run out.

Each failure is classified once; the resulting descriptor's
``retryable`` flag (narrowed by ``RetryPolicy.retry_on``) decides
whether another attempt is made. Attempts are strictly sequential and
separated by ``compute_delay``.

Precondition: the operation must be idempotent. The engine cannot see
side effects, so non-idempotent calls such as job creation must not be
wrapped without caller-side deduplication.

Example usage:
    from scrapedash.client.retry import RetryPolicy, run_with_retry

    jobs = await run_with_retry(
        lambda: client.get("/api/v1/jobs"),
        RetryPolicy(max_attempts=5),
        on_retry=lambda attempt: print(f"retrying after attempt {attempt}"),
    )
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, NoReturn, TypeVar

from scrapedash.client.backoff import compute_delay
from scrapedash.client.policy import DEFAULT_RETRY_POLICY, RetryPolicy
from scrapedash.core.errors import ApiError, ErrorDescriptor, classify
from scrapedash.core.logging import get_logger
from scrapedash.utils.tasks import invoke_callback

_logger = get_logger("retry")

T = TypeVar("T")

OnRetry = Callable[[int], Any]
OnExhausted = Callable[[], Any]


@dataclass
class _AttemptState:
    """Progress of one logical retrying call."""

    attempt_number: int = 1
    last_error: ErrorDescriptor | None = None


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    on_retry: OnRetry | None = None,
    on_exhausted: OnExhausted | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Execute ``operation`` up to ``policy.max_attempts`` times.

    Args:
        operation: Zero-argument coroutine function; must be idempotent.
        policy: Retry policy, ``DEFAULT_RETRY_POLICY`` when omitted.
        on_retry: Called with the failed attempt number before each
            backoff sleep. May be a coroutine function.
        on_exhausted: Called once when the attempt limit is reached with
            a still-retryable failure. May be a coroutine function.
        sleep: Suspension function, injectable for tests.
        rng: Jitter source passed to ``compute_delay``.

    Returns:
        The operation's result.

    Raises:
        ApiError: Carrying the descriptor of the last attempt's failure.
    """
    policy = policy or DEFAULT_RETRY_POLICY
    state = _AttemptState()

    while True:
        try:
            return await operation()
        except Exception as exc:
            descriptor = classify(exc)
            state.last_error = descriptor

            if not (descriptor.retryable and policy.allows(descriptor.kind)):
                _logger.debug(
                    "retry.not_retryable",
                    attempt=state.attempt_number,
                    kind=descriptor.kind.value,
                    status_code=descriptor.status_code,
                )
                _raise_final(exc, descriptor)

            if state.attempt_number >= policy.max_attempts:
                _logger.warning(
                    "retry.exhausted",
                    attempts=state.attempt_number,
                    kind=descriptor.kind.value,
                    status_code=descriptor.status_code,
                    message=descriptor.message,
                )
                await invoke_callback(on_exhausted)
                _raise_final(exc, descriptor)

            delay = compute_delay(state.attempt_number, policy, rng=rng)
            _logger.info(
                "retry.scheduled",
                attempt=state.attempt_number,
                max_attempts=policy.max_attempts,
                delay_seconds=round(delay, 3),
                kind=descriptor.kind.value,
                status_code=descriptor.status_code,
            )
            await invoke_callback(on_retry, state.attempt_number)

        await sleep(delay)
        state.attempt_number += 1


def _raise_final(exc: Exception, descriptor: ErrorDescriptor) -> NoReturn:
    """Re-raise ``exc`` as an ApiError carrying ``descriptor``."""
    if isinstance(exc, ApiError):
        raise exc
    raise ApiError(descriptor) from exc


__all__ = ["OnExhausted", "OnRetry", "RetryPolicy", "run_with_retry"]
