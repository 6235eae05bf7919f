"""Time utilities for scrapedash."""

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def monotonic_ms() -> float:
    """Monotonic clock reading in milliseconds, for latency measurement."""
    return time.monotonic() * 1000.0
