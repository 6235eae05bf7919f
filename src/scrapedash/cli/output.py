"""Rich output formatting for the scrapedash CLI.

Status colors, table builders, and the shared error printer. Commands
print through ``console``; JSON mode is decided per call by the
``json_output`` flag rather than by the console itself.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scrapedash.core.errors import (
    ErrorDescriptor,
    format_retry_info,
    troubleshooting_suggestions,
)
from scrapedash.services.health import HealthSnapshot
from scrapedash.services.types import DetailedHealth, Job, JobResult, JobStatus

console = Console()


# =============================================================================
# Colors
# =============================================================================


class StatusColors:
    """Color mappings for status values."""

    JOB_STATUS: dict[JobStatus, str] = {
        JobStatus.PENDING: "yellow",
        JobStatus.IN_PROGRESS: "blue",
        JobStatus.COMPLETED: "green",
        JobStatus.FAILED: "red",
        JobStatus.CANCELLED: "dim",
    }

    @classmethod
    def get_job_color(cls, status: JobStatus) -> str:
        return cls.JOB_STATUS.get(status, "white")


def format_job_status(status: JobStatus) -> str:
    color = StatusColors.get_job_color(status)
    return f"[{color}]{status.value}[/{color}]"


def format_health(healthy: bool) -> str:
    return "[green]healthy[/green]" if healthy else "[red]unhealthy[/red]"


def format_timestamp(dt: datetime | None) -> str:
    if dt is None:
        return "-"
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def format_duration(seconds: float | None) -> str:
    """Human-readable duration, e.g. ``"5.2s"``, ``"3m 12s"``, ``"1h 30m"``."""
    if seconds is None:
        return "N/A"
    if seconds < 60:
        return f"{seconds:.1f}s"
    if seconds < 3600:
        return f"{int(seconds // 60)}m {int(seconds % 60)}s"
    return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"


# =============================================================================
# Tables
# =============================================================================


def create_jobs_table(jobs: Sequence[Job], *, title: str | None = None) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Job ID", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("URL", overflow="fold")
    table.add_column("Created")
    for job in jobs:
        table.add_row(
            escape(job.job_id),
            format_job_status(job.status),
            escape(job.url),
            format_timestamp(job.created_at),
        )
    return table


def create_job_details_table(job: Job) -> Table:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("Job ID", escape(job.job_id))
    table.add_row("Status", format_job_status(job.status))
    table.add_row("URL", escape(job.url))
    table.add_row("Created", format_timestamp(job.created_at))
    table.add_row("Updated", format_timestamp(job.updated_at))
    table.add_row("Completed", format_timestamp(job.completed_at))
    if job.error_message:
        table.add_row("Error", f"[red]{escape(job.error_message)}[/red]")
    for key, value in job.job_metadata.items():
        table.add_row(f"meta.{key}", escape(str(value)))
    return table


def create_result_table(result: JobResult) -> Table:
    table = Table(
        show_header=True, header_style="bold", title=f"Results for {escape(result.job_id)}"
    )
    table.add_column("Field", style="cyan")
    table.add_column("Value", overflow="fold")
    for key, value in (result.data or {}).items():
        table.add_row(escape(key), escape(str(value)))
    return table


def create_health_table(health: DetailedHealth) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Component")
    table.add_column("Status")
    for name, up in health.components.items():
        table.add_row(name, "[green]up[/green]" if up else "[red]down[/red]")
    return table


def format_snapshot_line(snapshot: HealthSnapshot) -> str:
    components = ", ".join(f"{k}={v}" for k, v in snapshot.component_statuses.items())
    return (
        f"{format_timestamp(snapshot.observed_at)}  {format_health(snapshot.healthy)}"
        f"  ({snapshot.latency_ms:.0f} ms; {components})"
    )


# =============================================================================
# JSON and errors
# =============================================================================


def output_json(data: Any, *, console_instance: Console | None = None) -> None:
    (console_instance or console).print_json(data=data)


def output_error(
    message: str,
    *,
    error_code: str | None = None,
    hints: list[str] | None = None,
    json_output: bool = False,
    console_instance: Console | None = None,
    **json_extras: str | int | float | bool | None,
) -> None:
    """Print an error with optional hints, or the JSON equivalent."""
    out = console_instance or console

    if json_output:
        result: dict[str, Any] = {"success": False, "message": message}
        if error_code:
            result["error_code"] = error_code
        if hints:
            result["hints"] = hints
        result.update(json_extras)
        out.print_json(data=result)
        return

    if error_code:
        prefix = f"[red]Error {escape(f'[{error_code}]')}:[/red] "
    else:
        prefix = "[red]Error:[/red] "
    out.print(f"{prefix}{escape(message)}", highlight=False)
    if hints:
        out.print()
        out.print("[dim]Hints:[/dim]")
        for hint in hints:
            out.print(f"[dim]  • {escape(hint)}[/dim]", highlight=False)


def output_api_error(
    descriptor: ErrorDescriptor,
    *,
    json_output: bool = False,
    console_instance: Console | None = None,
) -> None:
    """Print a classified failure for the user.

    Retryable failures also get a hint that running the command again
    may succeed, including the server's suggested wait if there is one.
    """
    hints = troubleshooting_suggestions(descriptor)
    if descriptor.retryable:
        wait = descriptor.retry_after_hint
        hints.insert(
            0,
            f"This looks temporary; try again in {wait} seconds"
            if wait
            else "This looks temporary; try again",
        )
    output_error(
        descriptor.user_message,
        error_code=descriptor.kind.value,
        hints=hints,
        json_output=json_output,
        console_instance=console_instance,
        retryable=descriptor.retryable,
        status_code=descriptor.status_code,
    )


def print_retry_notice(attempt: int, max_attempts: int, *, json_output: bool = False) -> None:
    """Progress line for ``on_retry`` hooks; silent in JSON mode."""
    if json_output:
        return
    notice = format_retry_info(attempt, max_attempts)
    console.print(f"[yellow]{notice} failed, retrying...[/yellow]")


__all__ = [
    "StatusColors",
    "console",
    "create_health_table",
    "create_job_details_table",
    "create_jobs_table",
    "create_result_table",
    "format_duration",
    "format_health",
    "format_job_status",
    "format_snapshot_line",
    "format_timestamp",
    "output_api_error",
    "output_error",
    "output_json",
    "print_retry_notice",
]
