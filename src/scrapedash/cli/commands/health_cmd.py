"""Health commands for the scrapedash CLI.

- ``scrapedash health``: one detailed liveness check; exit code 1 when
  the service is not healthy.
- ``scrapedash watch``: continuous monitoring that prints every tick and
  highlights transitions, until Ctrl-C or ``--count`` ticks.
"""

from __future__ import annotations

import asyncio

import typer
from rich.markup import escape

from scrapedash.core.errors import ErrorDescriptor
from scrapedash.services.health import (
    HealthMonitor,
    HealthService,
    HealthSnapshot,
    MonitorConfig,
)

from ..helpers import create_client, get_config, is_json, run_command
from ..output import (
    console,
    create_health_table,
    format_duration,
    format_health,
    format_snapshot_line,
    output_json,
)


def health() -> None:
    """Check whether the scraping service is up and ready for jobs."""
    overall = run_command(_health())
    if not overall:
        raise typer.Exit(1)


async def _health() -> bool:
    config = get_config()
    async with create_client(config) as client:
        service = HealthService(client, path=config.health.path)
        detailed = await service.get_detailed_health()

    if is_json():
        output_json(detailed.model_dump(mode="json"))
        return detailed.overall

    url = escape(config.api.base_url)
    console.print(f"Service at [cyan]{url}[/cyan] is {format_health(detailed.overall)}")
    console.print(create_health_table(detailed))
    console.print(
        f"[dim]version {detailed.version}, up {format_duration(detailed.uptime)}, "
        f"responded in {detailed.response_time_ms:.0f} ms[/dim]"
    )
    return detailed.overall


def watch(
    interval: float | None = typer.Option(
        None,
        "--interval",
        "-i",
        min=0.01,
        help="Seconds between checks (default: health.interval_seconds from config)",
    ),
    count: int | None = typer.Option(
        None,
        "--count",
        "-n",
        min=1,
        help="Stop after this many checks",
    ),
    immediate: bool = typer.Option(
        True,
        "--immediate/--delayed",
        help="Check right away, or wait one interval first",
    ),
) -> None:
    """Monitor service health until interrupted."""
    try:
        run_command(_watch(interval, count, immediate))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching.[/dim]")


async def _watch(interval: float | None, count: int | None, immediate: bool) -> None:
    config = get_config()
    json_output = is_json()
    finished = asyncio.Event()
    seen = 0

    async with create_client(config) as client:
        monitor = HealthMonitor(
            HealthService(client, path=config.health.path),
            policy=config.health.to_policy(),
        )

        def on_health_change(healthy: bool, snapshot: HealthSnapshot) -> None:
            if not json_output:
                verb = "recovered" if healthy else "became unavailable"
                console.print(f"[bold]Service {verb}[/bold]")

        def on_error(descriptor: ErrorDescriptor) -> None:
            if not json_output:
                message = escape(descriptor.user_message)
                console.print(f"[yellow]{message}[/yellow]", highlight=False)

        def on_snapshot(snapshot: HealthSnapshot) -> None:
            nonlocal seen
            seen += 1
            if json_output:
                output_json({
                    "healthy": snapshot.healthy,
                    "observed_at": snapshot.observed_at.isoformat(),
                    "latency_ms": round(snapshot.latency_ms, 1),
                    "components": snapshot.component_statuses,
                    "error": snapshot.error.kind.value if snapshot.error else None,
                })
            else:
                console.print(format_snapshot_line(snapshot))
            if count is not None and seen >= count:
                monitor.stop_monitoring()
                finished.set()

        monitor.start_monitoring(
            MonitorConfig(
                interval_seconds=interval or config.health.interval_seconds,
                on_health_change=on_health_change,
                on_error=on_error,
                on_snapshot=on_snapshot,
                immediate=immediate,
            )
        )
        try:
            await finished.wait()
        finally:
            monitor.stop_monitoring()
