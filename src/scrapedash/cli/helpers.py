"""Shared state and plumbing for CLI commands.

Global options are recorded here by the app callback; commands then
call ``get_config()`` and ``create_client()`` rather than parsing
options themselves. ``run_command`` is the single place where an
``ApiError`` becomes a printed message and exit code 1.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console

from scrapedash.client.http import ApiClient
from scrapedash.core.config import ApiConfig, ScrapeDashConfig, load_config
from scrapedash.core.errors import ApiError
from scrapedash.core.exceptions import ConfigError
from scrapedash.core.logging import configure_logging

from .output import console, output_api_error, output_error

T = TypeVar("T")


@dataclass
class CliState:
    """Global option values for the current invocation."""

    config_file: Path | None = None
    base_url: str | None = None
    log_level: str | None = None
    json_output: bool = False
    config: ScrapeDashConfig | None = None
    logging_configured: bool = False


_state = CliState()


def get_state() -> CliState:
    return _state


def reset_cli_state() -> None:
    """Forget options and cached config (primarily for testing)."""
    global _state
    _state = CliState()


def is_json() -> bool:
    return _state.json_output


def get_config() -> ScrapeDashConfig:
    """Load configuration once per invocation, applying CLI overrides.

    Raises:
        typer.Exit: If the configuration is invalid.
    """
    if _state.config is not None:
        return _state.config
    try:
        config = load_config(_state.config_file)
        if _state.base_url:
            api = ApiConfig.model_validate({**config.api.model_dump(), "base_url": _state.base_url})
            config = config.model_copy(update={"api": api})
    except (ConfigError, ValueError) as e:
        output_error(str(e), error_code="config", json_output=_state.json_output)
        raise typer.Exit(1) from None
    _state.config = config
    return config


def configure_global_logging(out: Console) -> None:
    """Configure logging from CLI options and config. Only once per session.

    Raises:
        typer.Exit: If logging configuration fails.
    """
    if _state.logging_configured:
        return
    settings = get_config().logging
    try:
        configure_logging(
            level=_state.log_level or settings.level,
            format=settings.format,
            file_path=settings.file,
        )
    except ValueError as e:
        out.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None
    _state.logging_configured = True


def create_client(config: ScrapeDashConfig) -> ApiClient:
    return ApiClient.from_config(config.api)


def run_command(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command coroutine, turning ApiError into a message and exit 1."""
    try:
        return asyncio.run(coro)
    except ApiError as exc:
        output_api_error(exc.descriptor, json_output=_state.json_output)
        raise typer.Exit(1) from None


__all__ = [
    "CliState",
    "configure_global_logging",
    "console",
    "create_client",
    "get_config",
    "get_state",
    "is_json",
    "reset_cli_state",
    "run_command",
]
