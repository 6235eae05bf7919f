"""Helpers for background tasks and caller-supplied callbacks.

``log_task_exception`` surfaces exceptions from completed tasks inside
done-callbacks so background failures are never lost silently.
``invoke_callback`` lets hooks such as ``on_retry`` or
``on_health_change`` be either plain functions or coroutine functions.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any


def log_task_exception(
    task: asyncio.Task[Any],
    logger: Any,
    event: str,
    *,
    level: str = "error",
) -> BaseException | None:
    """Extract and log an exception from a completed task.

    Args:
        task: The completed task to inspect.
        logger: A structlog-style logger with ``.error()``/``.warning()`` methods.
        event: Event name (e.g. ``"monitor.loop_died"``).
        level: Log method name, ``"error"`` (default) or ``"warning"``.

    Returns:
        The exception if one was found, ``None`` if the task completed
        normally or was cancelled.
    """
    if task.cancelled():
        return None
    exc = task.exception()
    if exc is not None:
        log_fn = getattr(logger, level, logger.error)
        log_fn(event, error=str(exc), task_name=task.get_name())
    return exc


async def invoke_callback(callback: Callable[..., Any] | None, *args: Any) -> None:
    """Call ``callback(*args)`` and await the result when it is awaitable."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result
