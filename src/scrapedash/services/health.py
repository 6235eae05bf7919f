"""Service liveness: one-shot checks and continuous monitoring.

``HealthService`` wraps the liveness endpoint (``GET /health``, or the
versioned alias ``/api/v1/health``) and turns each response into a
``HealthSnapshot``. ``HealthMonitor`` polls it on a background asyncio
task and notifies subscribers only when the overall verdict changes:

    unknown ──► healthy ◄──► unhealthy
       └────────────────────────▲

``unknown`` is the initial state and is never re-entered. Leaving it
for ``healthy`` is silent (the service was assumed reachable); leaving
it for ``unhealthy`` fires ``on_health_change(False, snapshot)``.

Example usage:
    service = HealthService(client)
    monitor = HealthMonitor(service)
    monitor.start_monitoring(
        MonitorConfig(interval_seconds=30, on_health_change=show_badge)
    )
    ...
    monitor.stop_monitoring()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from scrapedash.client.http import ApiClient
from scrapedash.client.policy import HEALTH_CHECK_POLICY, RetryPolicy
from scrapedash.client.retry import run_with_retry
from scrapedash.core.errors import ApiError, ErrorDescriptor, classify
from scrapedash.core.errors import is_api_unavailable as _descriptor_unavailable
from scrapedash.core.logging import get_logger
from scrapedash.services.types import DetailedHealth, HealthStatus, parse_payload
from scrapedash.utils.tasks import invoke_callback, log_task_exception
from scrapedash.utils.time import monotonic_ms, utc_now

_logger = get_logger("services.health")

HEALTH_PATH = "/health"
VERSIONED_HEALTH_PATH = "/api/v1/health"

HEALTHY_STATUSES = frozenset({"healthy", "ok"})
HEALTHY_COMPONENT_STATUSES = frozenset({"healthy", "connected", "ok"})
NOT_REPORTED = "unknown"


def evaluate_health(status: HealthStatus) -> bool:
    """Collapse a liveness payload into a single verdict.

    Healthy iff the top-level status is healthy/ok and every reported
    component is healthy/connected/ok. A component left at ``"unknown"``
    was not reported and does not count against the service.
    """
    if status.status.lower() not in HEALTHY_STATUSES:
        return False
    for value in status.components().values():
        value = value.lower()
        if value == NOT_REPORTED:
            continue
        if value not in HEALTHY_COMPONENT_STATUSES:
            return False
    return True


@dataclass(frozen=True)
class HealthSnapshot:
    """Outcome of one liveness check.

    ``status`` is ``None`` and ``error`` is set when the check itself
    failed; component statuses are then all ``"unknown"``.
    """

    healthy: bool
    component_statuses: dict[str, str]
    observed_at: datetime
    latency_ms: float
    status: HealthStatus | None = None
    error: ErrorDescriptor | None = None


# ─── One-shot checks ──────────────────────────────────────────────────


class HealthService:
    """Liveness and readiness queries against the scraping service.

    Parameters
    ----------
    client:
        Shared request client.
    path:
        Liveness endpoint, ``/health`` or ``/api/v1/health``.
    retry_policy:
        Policy for ``check_health_with_retry`` when none is passed.
    """

    def __init__(
        self,
        client: ApiClient,
        *,
        path: str = HEALTH_PATH,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self._path = path
        self._retry_policy = retry_policy

    @property
    def path(self) -> str:
        return self._path

    async def check_health(self) -> HealthStatus:
        """One liveness call.

        Raises:
            ApiError: when the call fails or the payload is malformed.
        """
        payload = await self._client.get(self._path)
        return parse_payload(HealthStatus, payload, what="health")

    async def check_health_with_retry(self, policy: RetryPolicy | None = None) -> HealthStatus:
        return await run_with_retry(self.check_health, policy or self._retry_policy)

    async def perform_health_check(self, policy: RetryPolicy | None = None) -> HealthSnapshot:
        """Check liveness and evaluate it. Never raises.

        Args:
            policy: When given, the call goes through the retry engine.
        """
        started = monotonic_ms()
        try:
            if policy is None:
                status = await self.check_health()
            else:
                status = await self.check_health_with_retry(policy)
        except Exception as exc:
            descriptor = classify(exc)
            return HealthSnapshot(
                healthy=False,
                component_statuses={"database": NOT_REPORTED, "redis": NOT_REPORTED},
                observed_at=utc_now(),
                latency_ms=monotonic_ms() - started,
                error=descriptor,
            )
        return HealthSnapshot(
            healthy=evaluate_health(status),
            component_statuses=status.components(),
            observed_at=utc_now(),
            latency_ms=monotonic_ms() - started,
            status=status,
        )

    async def get_detailed_health(self) -> DetailedHealth:
        snapshot = await self.perform_health_check()
        components = {"api": snapshot.healthy}
        for name, value in snapshot.component_statuses.items():
            components[name] = value.lower() in HEALTHY_COMPONENT_STATUSES
        status = snapshot.status
        return DetailedHealth(
            overall=snapshot.healthy,
            components=components,
            version=status.version if status else NOT_REPORTED,
            uptime=status.uptime if status else 0.0,
            response_time_ms=round(snapshot.latency_ms, 1),
        )

    async def is_ready_for_jobs(self) -> bool:
        """Healthy overall, with database and cache positively reported up."""
        health = await self.get_detailed_health()
        return health.overall and all(health.components.values())

    async def test_connectivity(self) -> bool:
        try:
            await self.check_health()
        except ApiError as exc:
            _logger.warning(
                "health.connectivity_failed",
                kind=exc.kind.value,
                status_code=exc.status_code,
                message=exc.descriptor.message,
            )
            return False
        return True

    async def is_api_unavailable(self) -> bool:
        """True when the service looks down, not merely unhealthy."""
        try:
            await self.check_health()
        except ApiError as exc:
            return _descriptor_unavailable(exc.descriptor)
        return False


# ─── Continuous monitoring ────────────────────────────────────────────


class HealthState(str, Enum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class MonitorConfig:
    """Polling parameters and subscriber hooks.

    Hooks may be plain functions or coroutine functions.
    ``on_snapshot`` fires after every tick; ``on_health_change`` only
    on a transition; ``on_error`` when the liveness call failed.
    """

    interval_seconds: float
    on_health_change: Callable[[bool, HealthSnapshot], Any] | None = None
    on_error: Callable[[ErrorDescriptor], Any] | None = None
    on_snapshot: Callable[[HealthSnapshot], Any] | None = None
    immediate: bool = False

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {self.interval_seconds}")


@dataclass
class _MonitorRun:
    """One start_monitoring() generation."""

    config: MonitorConfig
    generation: int
    ticks: int = 0


class HealthMonitor:
    """Periodic liveness polling with debounced change notifications.

    Each tick performs one liveness call through the retry engine with
    ``policy`` (a short, fast policy by default), so a single dropped
    packet does not flip the state while a real outage is still noticed
    within one tick.
    """

    def __init__(
        self,
        service: HealthService,
        *,
        policy: RetryPolicy = HEALTH_CHECK_POLICY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._service = service
        self._policy = policy
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._run: _MonitorRun | None = None
        self._generation = 0
        self._running = False
        self._state = HealthState.UNKNOWN
        self._last_snapshot: HealthSnapshot | None = None
        self._tick_lock = asyncio.Lock()

    # ─── Properties ───────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    @property
    def state(self) -> HealthState:
        return self._state

    @property
    def currently_healthy(self) -> bool:
        """The verdict transitions are measured against; assumed up until shown down."""
        return self._state != HealthState.UNHEALTHY

    @property
    def last_snapshot(self) -> HealthSnapshot | None:
        return self._last_snapshot

    # ─── Lifecycle ────────────────────────────────────────────────────

    def start_monitoring(self, config: MonitorConfig) -> None:
        """Start polling, replacing any loop already running.

        Raises:
            RuntimeError: if called without a running event loop.
        """
        loop = asyncio.get_running_loop()
        self.stop_monitoring()

        self._generation += 1
        self._run = _MonitorRun(config=config, generation=self._generation)
        self._running = True
        self._task = loop.create_task(
            self._loop(self._run), name=f"health-monitor-{self._generation}"
        )
        self._task.add_done_callback(self._on_loop_done)
        _logger.info(
            "monitor.started",
            interval=config.interval_seconds,
            immediate=config.immediate,
            path=self._service.path,
        )

    def stop_monitoring(self) -> None:
        """Stop polling. Idempotent, and safe to call from a hook.

        No tick starts after this returns. When called from inside the
        monitor's own task (i.e. from a hook), the current tick finishes
        its bookkeeping and the loop exits instead of being cancelled.
        """
        task = self._task
        was_running = self._running
        self._running = False
        self._task = None
        if task is None:
            return
        if not task.done() and task is not _current_task():
            task.cancel()
        if was_running:
            _logger.info("monitor.stopped")

    # ─── Polling ──────────────────────────────────────────────────────

    async def tick(self) -> HealthSnapshot:
        """Perform exactly one check and apply it to the monitor state.

        Ticks on one monitor are serialized: a tick requested while the
        polling loop (or another caller) is mid-tick waits for it to
        finish. Hooks run inside the tick and must not await ``tick()``.
        """
        async with self._tick_lock:
            return await self._tick()

    async def _tick(self) -> HealthSnapshot:
        run = self._run
        config = run.config if run is not None else None

        snapshot = await self._service.perform_health_check(self._policy)
        self._last_snapshot = snapshot
        if run is not None:
            run.ticks += 1

        previous = self._state
        self._state = HealthState.HEALTHY if snapshot.healthy else HealthState.UNHEALTHY
        changed = previous != self._state and not (
            previous == HealthState.UNKNOWN and self._state == HealthState.HEALTHY
        )

        if changed:
            _logger.info(
                "monitor.health_changed",
                healthy=snapshot.healthy,
                previous=previous.value,
                components=snapshot.component_statuses,
            )
            if config is not None:
                await self._notify(config.on_health_change, snapshot.healthy, snapshot)

        if snapshot.error is not None:
            _logger.warning(
                "monitor.check_failed",
                kind=snapshot.error.kind.value,
                status_code=snapshot.error.status_code,
                message=snapshot.error.message,
            )
            if config is not None:
                await self._notify(config.on_error, snapshot.error)

        if config is not None:
            await self._notify(config.on_snapshot, snapshot)
        return snapshot

    def _is_current(self, run: _MonitorRun) -> bool:
        return self._running and run.generation == self._generation

    async def _loop(self, run: _MonitorRun) -> None:
        interval = run.config.interval_seconds
        if not run.config.immediate:
            await self._sleep(interval)
        while self._is_current(run):
            try:
                await self.tick()
            except Exception:
                _logger.exception("monitor.tick_failed", tick=run.ticks)
            if not self._is_current(run):
                break
            await self._sleep(interval)

    async def _notify(self, callback: Callable[..., Any] | None, *args: Any) -> None:
        try:
            await invoke_callback(callback, *args)
        except Exception:
            _logger.exception(
                "monitor.callback_failed",
                callback=getattr(callback, "__name__", repr(callback)),
            )

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        """Log errors if the polling loop dies unexpectedly."""
        log_task_exception(task, _logger, "monitor.loop_died_unexpectedly")
        if task is self._task:
            self._task = None
            self._running = False


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


__all__ = [
    "HEALTHY_COMPONENT_STATUSES",
    "HEALTHY_STATUSES",
    "HEALTH_PATH",
    "VERSIONED_HEALTH_PATH",
    "HealthMonitor",
    "HealthService",
    "HealthSnapshot",
    "HealthState",
    "HealthStatus",
    "MonitorConfig",
    "evaluate_health",
]
