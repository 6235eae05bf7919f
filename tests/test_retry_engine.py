"""Tests for scrapedash.client.retry.run_with_retry.

Sleep and jitter are injected so every scenario runs instantly and the
exact delay sequence can be asserted.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from scrapedash.client.policy import RetryPolicy
from scrapedash.client.retry import run_with_retry
from scrapedash.core.errors import ApiError, ErrorDescriptor, ErrorKind


def _server_error(status: int = 503) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "http://scraper.test/api/v1/jobs")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


def _validation_error() -> ApiError:
    return ApiError(ErrorDescriptor(kind=ErrorKind.VALIDATION, message="bad", status_code=400))


# ─── Success paths ─────────────────────────────────────────────────────


class TestSuccess:
    @pytest.mark.asyncio
    async def test_first_attempt_success_does_not_sleep(self, no_sleep):
        op = AsyncMock(return_value={"ok": True})
        result = await run_with_retry(op, sleep=no_sleep)
        assert result == {"ok": True}
        assert op.await_count == 1
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_server_error_then_success(self, no_sleep):
        """One 5xx, then success: two attempts, one backoff, one on_retry(1)."""
        op = AsyncMock(side_effect=[_server_error(500), ["job"]])
        on_retry = MagicMock()
        on_exhausted = MagicMock()

        result = await run_with_retry(
            op,
            RetryPolicy(max_attempts=3, base_delay=1.0),
            on_retry=on_retry,
            on_exhausted=on_exhausted,
            sleep=no_sleep,
            rng=lambda: 0.0,
        )

        assert result == ["job"]
        assert op.await_count == 2
        assert no_sleep.delays == [1.0]
        on_retry.assert_called_once_with(1)
        on_exhausted.assert_not_called()

    @pytest.mark.asyncio
    async def test_two_server_errors_then_success_on_last_attempt(self, no_sleep):
        """Two 5xx, success on attempt 3: backoff doubles from base_delay."""
        op = AsyncMock(side_effect=[_server_error(502), _server_error(503), {"status": "ok"}])
        on_retry = MagicMock()
        on_exhausted = MagicMock()

        result = await run_with_retry(
            op,
            RetryPolicy(max_attempts=3, base_delay=0.1),
            on_retry=on_retry,
            on_exhausted=on_exhausted,
            sleep=no_sleep,
            rng=lambda: 0.0,
        )

        assert result == {"status": "ok"}
        assert op.await_count == 3
        assert no_sleep.delays == [0.1, 0.2]
        assert [c.args for c in on_retry.call_args_list] == [(1,), (2,)]
        on_exhausted.assert_not_called()


# ─── Exhaustion ────────────────────────────────────────────────────────


class TestExhaustion:
    @pytest.mark.asyncio
    async def test_network_failure_exhausts_after_max_attempts(self, no_sleep):
        """Always-network failure: 3 attempts, sleeps 1s and 2s, then on_exhausted."""
        op = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))
        on_retry = MagicMock()
        on_exhausted = MagicMock()

        with pytest.raises(ApiError) as excinfo:
            await run_with_retry(
                op,
                RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0),
                on_retry=on_retry,
                on_exhausted=on_exhausted,
                sleep=no_sleep,
                rng=lambda: 0.0,
            )

        assert excinfo.value.kind == ErrorKind.NETWORK
        assert op.await_count == 3
        assert no_sleep.delays == [1.0, 2.0]
        assert [c.args for c in on_retry.call_args_list] == [(1,), (2,)]
        on_exhausted.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_final_error_chains_original_exception(self, no_sleep):
        original = httpx.ConnectError("Connection refused")
        op = AsyncMock(side_effect=original)
        with pytest.raises(ApiError) as excinfo:
            await run_with_retry(op, RetryPolicy(max_attempts=1), sleep=no_sleep)
        assert excinfo.value.__cause__ is original

    @pytest.mark.asyncio
    async def test_max_attempts_one_never_sleeps(self, no_sleep):
        op = AsyncMock(side_effect=_server_error())
        on_exhausted = MagicMock()
        with pytest.raises(ApiError):
            await run_with_retry(
                op, RetryPolicy(max_attempts=1), on_exhausted=on_exhausted, sleep=no_sleep
            )
        assert op.await_count == 1
        assert no_sleep.delays == []
        on_exhausted.assert_called_once()

    @pytest.mark.asyncio
    async def test_delays_are_capped(self, no_sleep):
        op = AsyncMock(side_effect=_server_error())
        with pytest.raises(ApiError):
            await run_with_retry(
                op,
                RetryPolicy(max_attempts=5, base_delay=1.0, max_delay=3.0),
                sleep=no_sleep,
                rng=lambda: 0.0,
            )
        assert no_sleep.delays == [1.0, 2.0, 3.0, 3.0]


# ─── Non-retryable failures ────────────────────────────────────────────


class TestNonRetryable:
    @pytest.mark.asyncio
    async def test_validation_fails_fast(self, no_sleep):
        """A validation failure: one attempt, no backoff, no callbacks."""
        err = _validation_error()
        op = AsyncMock(side_effect=err)
        on_retry = MagicMock()
        on_exhausted = MagicMock()

        with pytest.raises(ApiError) as excinfo:
            await run_with_retry(
                op, on_retry=on_retry, on_exhausted=on_exhausted, sleep=no_sleep
            )

        assert excinfo.value is err
        assert op.await_count == 1
        assert no_sleep.delays == []
        on_retry.assert_not_called()
        on_exhausted.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_failure_not_retried(self, no_sleep):
        op = AsyncMock(side_effect=ValueError("bug"))
        with pytest.raises(ApiError) as excinfo:
            await run_with_retry(op, sleep=no_sleep)
        assert excinfo.value.kind == ErrorKind.UNKNOWN
        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_policy_can_narrow_retryable_kinds(self, no_sleep):
        op = AsyncMock(side_effect=httpx.ConnectError("down"))
        with pytest.raises(ApiError):
            await run_with_retry(
                op,
                RetryPolicy(retry_on=frozenset({ErrorKind.SERVER})),
                sleep=no_sleep,
            )
        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_policy_cannot_widen_to_validation(self, no_sleep):
        op = AsyncMock(side_effect=_validation_error())
        with pytest.raises(ApiError):
            await run_with_retry(
                op,
                RetryPolicy(retry_on=frozenset(ErrorKind)),
                sleep=no_sleep,
            )
        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_retryable_then_validation_stops(self, no_sleep):
        op = AsyncMock(side_effect=[_server_error(), _validation_error()])
        with pytest.raises(ApiError) as excinfo:
            await run_with_retry(op, sleep=no_sleep, rng=lambda: 0.0)
        assert excinfo.value.kind == ErrorKind.VALIDATION
        assert op.await_count == 2
        assert no_sleep.delays == [1.0]


# ─── Callbacks and cancellation ────────────────────────────────────────


class TestCallbacks:
    @pytest.mark.asyncio
    async def test_async_callbacks_are_awaited(self, no_sleep):
        op = AsyncMock(side_effect=[_server_error(), _server_error(), "ok"])
        on_retry = AsyncMock()
        result = await run_with_retry(op, on_retry=on_retry, sleep=no_sleep)
        assert result == "ok"
        assert on_retry.await_count == 2

    @pytest.mark.asyncio
    async def test_on_retry_runs_before_sleep(self):
        events: list[str] = []

        async def sleep(delay: float) -> None:
            events.append("sleep")

        op = AsyncMock(side_effect=[_server_error(), "ok"])
        await run_with_retry(op, on_retry=lambda n: events.append(f"retry{n}"), sleep=sleep)
        assert events == ["retry1", "sleep"]

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        started = asyncio.Event()

        async def never_finishes() -> None:
            started.set()
            await asyncio.sleep(3600)

        task = asyncio.create_task(run_with_retry(never_finishes))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
