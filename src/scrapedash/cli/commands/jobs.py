"""Job commands for the scrapedash CLI.

Subcommands of ``scrapedash jobs``:
- ``list``   list jobs, optionally filtered by status
- ``show``   details of one job
- ``submit`` create a job (never retried)
- ``cancel`` cancel a job
- ``retry`` / ``clone``  resubmit a job's URL as a new job
- ``stats``  job counts per status

Plus the top-level ``scrapedash results <job-id>``.

Reads go through the retry engine with the configured policy; a notice
is printed before each retry.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import typer
from rich.markup import escape

from scrapedash.client.policy import RetryPolicy
from scrapedash.core.errors import validation_error
from scrapedash.services.jobs import JobService
from scrapedash.services.results import ResultsService
from scrapedash.services.types import CreateJobRequest, Job, JobListOptions, JobStatus

from ..helpers import create_client, get_config, is_json, run_command
from ..output import (
    StatusColors,
    console,
    create_job_details_table,
    create_jobs_table,
    create_result_table,
    format_duration,
    format_job_status,
    output_json,
    print_retry_notice,
)

jobs_app = typer.Typer(
    name="jobs",
    help="Submit, inspect, and cancel scraping jobs.",
    no_args_is_help=True,
)


def _retry_notice(policy: RetryPolicy) -> Callable[[int], None]:
    json_output = is_json()
    return lambda attempt: print_retry_notice(attempt, policy.max_attempts, json_output=json_output)


def _parse_pairs(values: list[str] | None, option: str) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options."""
    pairs: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise validation_error(f"Expected KEY=VALUE for {option}, got {item!r}", option)
        pairs[key.strip()] = value.strip()
    return pairs


def _print_job(job: Job, *, headline: str | None = None) -> None:
    if is_json():
        output_json(job.model_dump(mode="json"))
        return
    if headline:
        console.print(headline)
    console.print(create_job_details_table(job))


# =============================================================================
# jobs list / show
# =============================================================================


@jobs_app.command(name="list")
def list_jobs(
    status: JobStatus | None = typer.Option(None, "--status", "-s", help="Only jobs in this state"),
    limit: int | None = typer.Option(None, "--limit", "-l", min=1, help="Page size"),
    offset: int | None = typer.Option(None, "--offset", min=0, help="Jobs to skip"),
    newest_first: bool = typer.Option(
        False, "--newest-first", help="Sort by creation, newest first"
    ),
) -> None:
    """List scraping jobs."""
    options = JobListOptions(
        status=status,
        limit=limit,
        offset=offset,
        sort_by="created_at" if newest_first else None,
        sort_order="desc" if newest_first else None,
    )
    run_command(_list_jobs(options))


async def _list_jobs(options: JobListOptions) -> None:
    config = get_config()
    policy = config.retry.to_policy()
    async with create_client(config) as client:
        response = await JobService(client, retry_policy=policy).get_jobs_with_retry(
            options, on_retry=_retry_notice(policy)
        )

    if is_json():
        output_json(response.model_dump(mode="json"))
        return
    if not response.jobs:
        console.print("[dim]No jobs found.[/dim]")
        return
    title = f"Jobs {response.offset + 1}-{response.offset + len(response.jobs)} of {response.total}"
    console.print(create_jobs_table(response.jobs, title=title))


@jobs_app.command()
def show(job_id: str = typer.Argument(..., help="Job ID")) -> None:
    """Show one job."""
    run_command(_show(job_id))


async def _show(job_id: str) -> None:
    config = get_config()
    policy = config.retry.to_policy()
    async with create_client(config) as client:
        job = await JobService(client, retry_policy=policy).get_job_with_retry(
            job_id, on_retry=_retry_notice(policy)
        )
    _print_job(job)


# =============================================================================
# jobs submit / cancel / retry / clone
# =============================================================================


@jobs_app.command()
def submit(
    url: str = typer.Argument(..., help="Page to scrape"),
    selector: list[str] | None = typer.Option(
        None, "--selector", "-S", help="Field to extract as NAME=CSS_SELECTOR (repeatable)"
    ),
    wait_for: str | None = typer.Option(None, "--wait-for", help="CSS selector to wait for"),
    timeout: int | None = typer.Option(None, "--timeout", help="Scrape timeout in seconds (1-300)"),
    javascript: bool | None = typer.Option(
        None, "--javascript/--no-javascript", help="Render the page with JavaScript"
    ),
    user_agent: str | None = typer.Option(None, "--user-agent", help="User-Agent to send"),
    metadata: list[str] | None = typer.Option(
        None, "--meta", help="Job metadata as KEY=VALUE (repeatable)"
    ),
) -> None:
    """Submit a new scraping job."""
    run_command(_submit(url, selector, wait_for, timeout, javascript, user_agent, metadata))


async def _submit(
    url: str,
    selector: list[str] | None,
    wait_for: str | None,
    timeout: int | None,
    javascript: bool | None,
    user_agent: str | None,
    metadata: list[str] | None,
) -> None:
    request = CreateJobRequest(
        url=url,
        selectors=_parse_pairs(selector, "selector") or None,
        wait_for=wait_for,
        timeout=timeout,
        javascript=javascript,
        user_agent=user_agent,
        job_metadata=_parse_pairs(metadata, "meta") or None,
    )
    config = get_config()
    async with create_client(config) as client:
        job = await JobService(client).create_job(request)
    _print_job(job, headline=f"[green]Submitted[/green] job [cyan]{escape(job.job_id)}[/cyan]")


@jobs_app.command()
def cancel(job_id: str = typer.Argument(..., help="Job ID")) -> None:
    """Cancel a job."""
    run_command(_cancel(job_id))


async def _cancel(job_id: str) -> None:
    config = get_config()
    async with create_client(config) as client:
        await JobService(client).cancel_job(job_id)
    if is_json():
        output_json({"success": True, "job_id": job_id, "status": JobStatus.CANCELLED.value})
    else:
        console.print(f"Cancelled job [cyan]{escape(job_id)}[/cyan]", highlight=False)


@jobs_app.command()
def retry(job_id: str = typer.Argument(..., help="Job to resubmit")) -> None:
    """Resubmit a job's URL as a new job."""
    run_command(_resubmit(job_id, clone=False))


@jobs_app.command()
def clone(job_id: str = typer.Argument(..., help="Job to copy")) -> None:
    """Create a copy of a job."""
    run_command(_resubmit(job_id, clone=True))


async def _resubmit(job_id: str, *, clone: bool) -> None:
    config = get_config()
    async with create_client(config) as client:
        service = JobService(client)
        job = await (service.clone_job(job_id) if clone else service.retry_job(job_id))
    verb = "Cloned" if clone else "Resubmitted"
    headline = f"[green]{verb}[/green] {escape(job_id)} as [cyan]{escape(job.job_id)}[/cyan]"
    _print_job(job, headline=headline)


# =============================================================================
# jobs stats
# =============================================================================


@jobs_app.command()
def stats() -> None:
    """Count jobs per status."""
    run_command(_stats())


async def _stats() -> None:
    config = get_config()
    async with create_client(config) as client:
        counts = await JobService(client).get_job_stats()

    if is_json():
        output_json({status.value: n for status, n in counts.items()})
        return
    for status, n in counts.items():
        color = StatusColors.get_job_color(status)
        console.print(f"[{color}]{status.value:<12}[/{color}] {n}")


# =============================================================================
# results
# =============================================================================


def results(
    job_id: str = typer.Argument(..., help="Job ID"),
    html: bool = typer.Option(False, "--html", help="Include the raw HTML"),
    screenshot: bool = typer.Option(False, "--screenshot", help="Include the screenshot"),
    export: Path | None = typer.Option(
        None, "--export", "-o", help="Write the results (without HTML/screenshot) as JSON"
    ),
) -> None:
    """Fetch the scraped data of a job."""
    run_command(_results(job_id, html, screenshot, export))


async def _results(job_id: str, html: bool, screenshot: bool, export: Path | None) -> None:
    config = get_config()
    policy = config.retry.to_policy()
    async with create_client(config) as client:
        result = await ResultsService(client, retry_policy=policy).get_results_with_retry(
            job_id,
            include_html=html,
            include_screenshot=screenshot,
            on_retry=_retry_notice(policy),
        )

    if export is not None:
        export.write_text(json.dumps(ResultsService.transform_for_export(result), indent=2))

    if is_json():
        output_json(result.model_dump(mode="json", exclude_none=True))
        return

    console.print(f"Job [cyan]{escape(result.job_id)}[/cyan] is {format_job_status(result.status)}")
    if result.error_message:
        console.print(f"[red]{escape(result.error_message)}[/red]", highlight=False)
    if result.data:
        console.print(create_result_table(result))
    else:
        console.print("[dim]No data yet.[/dim]")
    if result.processing_time is not None:
        console.print(f"[dim]Scraped in {format_duration(result.processing_time)}[/dim]")
    if result.raw_html:
        console.print(f"[dim]Raw HTML: {len(result.raw_html)} characters[/dim]")
    if result.screenshot:
        console.print(f"[dim]Screenshot: {len(result.screenshot)} base64 characters[/dim]")
    if export is not None:
        console.print(f"Exported to {export}", highlight=False)


__all__ = ["jobs_app", "results"]
