"""Exception hierarchy for scrapedash.

All library exceptions inherit from ScrapeDashError, enabling callers
to catch broad (ScrapeDashError) or narrow (e.g., ConfigError).
``ApiError`` lives with the error taxonomy in ``scrapedash.core.errors``.
"""

from __future__ import annotations


class ScrapeDashError(Exception):
    """Base exception for all scrapedash errors."""


class ConfigError(ScrapeDashError):
    """Raised when configuration cannot be loaded or fails validation.

    Examples: unreadable YAML file, non-http(s) base URL, bad env override.
    """
