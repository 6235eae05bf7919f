"""Error taxonomy and classification.

Re-exports all public symbols.
"""

from scrapedash.core.errors.codes import (
    DEFAULT_USER_MESSAGES,
    RETRYABLE_KINDS,
    ErrorKind,
    RetryAfterHints,
)
from scrapedash.core.errors.models import ApiError, ErrorDescriptor
from scrapedash.core.errors.classifier import (
    classify,
    format_retry_info,
    is_api_unavailable,
    troubleshooting_suggestions,
    validation_error,
)

__all__ = [
    "DEFAULT_USER_MESSAGES",
    "RETRYABLE_KINDS",
    "ErrorKind",
    "RetryAfterHints",
    "ApiError",
    "ErrorDescriptor",
    "classify",
    "format_retry_info",
    "is_api_unavailable",
    "troubleshooting_suggestions",
    "validation_error",
]
