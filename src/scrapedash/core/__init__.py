"""Core infrastructure: configuration, logging, and the error taxonomy."""

from scrapedash.core.errors import ApiError, ErrorDescriptor, ErrorKind, classify
from scrapedash.core.exceptions import ConfigError, ScrapeDashError

__all__ = [
    "ApiError",
    "ConfigError",
    "ErrorDescriptor",
    "ErrorKind",
    "ScrapeDashError",
    "classify",
]
