"""Shared utilities for scrapedash.

Contains cross-cutting helpers used by the client and service layers.
"""

from scrapedash.utils.tasks import invoke_callback, log_task_exception
from scrapedash.utils.time import monotonic_ms, utc_now

__all__ = ["invoke_callback", "log_task_exception", "monotonic_ms", "utc_now"]
