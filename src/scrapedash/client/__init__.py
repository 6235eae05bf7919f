"""Resilient client layer: request client, retry engine, and backoff."""

from scrapedash.client.backoff import compute_delay
from scrapedash.client.http import ApiClient
from scrapedash.client.policy import DEFAULT_RETRY_POLICY, HEALTH_CHECK_POLICY, RetryPolicy
from scrapedash.client.retry import run_with_retry

__all__ = [
    "ApiClient",
    "DEFAULT_RETRY_POLICY",
    "HEALTH_CHECK_POLICY",
    "RetryPolicy",
    "compute_delay",
    "run_with_retry",
]
