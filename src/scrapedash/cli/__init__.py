"""scrapedash CLI.

Built with Typer; global options are handled by the app callback and
recorded in ``helpers`` before any command runs.

Package structure:
    cli/
    ├── __init__.py      # This file - app assembly
    ├── helpers.py       # Global option state, config loading, error exit
    ├── output.py        # Rich formatting
    └── commands/
        ├── health_cmd.py  # health, watch
        └── jobs.py        # jobs list/show/submit/cancel/retry/clone/stats, results
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from scrapedash import __version__

from . import helpers as helpers
from .commands import health, jobs_app, results, watch
from .helpers import configure_global_logging, get_state
from .output import console

app = typer.Typer(
    name="scrapedash",
    help="Command-line dashboard for a remote web-scraping service",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"scrapedash v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML configuration file",
            envvar="SCRAPEDASH_CONFIG",
        ),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Override api.base_url"),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print machine-readable JSON"),
    ] = False,
) -> None:
    """scrapedash - submit, monitor, and fetch scraping jobs."""
    state = get_state()
    state.config_file = config_file
    state.base_url = base_url
    state.log_level = log_level
    state.json_output = json_output
    configure_global_logging(console)


app.command()(health)
app.command()(watch)
app.command()(results)
app.add_typer(jobs_app)


__all__ = ["app", "console", "main"]
