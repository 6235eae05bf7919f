"""Fetching scraped results.

Raw HTML and screenshots can be large, so the service only includes
them when asked; the convenience methods cover the four combinations.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from scrapedash.client.http import ApiClient
from scrapedash.client.policy import RetryPolicy
from scrapedash.client.retry import OnRetry
from scrapedash.core.errors import ApiError, validation_error
from scrapedash.core.logging import get_logger
from scrapedash.services.jobs import API_PREFIX
from scrapedash.services.types import JobResult, JobStatus, parse_payload

_logger = get_logger("services.results")

# Fields withheld from exports
_BULKY_FIELDS = frozenset({"raw_html", "screenshot"})


class ResultsService:
    def __init__(self, client: ApiClient, *, retry_policy: RetryPolicy | None = None) -> None:
        self._client = client
        self._retry_policy = retry_policy

    async def get_results(
        self,
        job_id: str,
        *,
        include_html: bool = False,
        include_screenshot: bool = False,
    ) -> JobResult:
        payload = await self._client.get(
            _results_path(job_id),
            params=_flags(include_html, include_screenshot),
        )
        return parse_payload(JobResult, payload, what="result")

    async def get_results_with_retry(
        self,
        job_id: str,
        *,
        include_html: bool = False,
        include_screenshot: bool = False,
        policy: RetryPolicy | None = None,
        on_retry: OnRetry | None = None,
    ) -> JobResult:
        payload = await self._client.request_with_retry(
            "GET",
            _results_path(job_id),
            policy=policy or self._retry_policy,
            params=_flags(include_html, include_screenshot),
            on_retry=on_retry,
        )
        return parse_payload(JobResult, payload, what="result")

    async def get_data_only(self, job_id: str) -> JobResult:
        return await self.get_results(job_id)

    async def get_results_with_html(self, job_id: str) -> JobResult:
        return await self.get_results(job_id, include_html=True)

    async def get_results_with_screenshot(self, job_id: str) -> JobResult:
        return await self.get_results(job_id, include_screenshot=True)

    async def get_complete_results(self, job_id: str) -> JobResult:
        return await self.get_results(job_id, include_html=True, include_screenshot=True)

    async def has_results(self, job_id: str) -> bool:
        """True when the job completed and produced data."""
        try:
            result = await self.get_data_only(job_id)
        except ApiError as exc:
            _logger.debug("results.lookup_failed", job_id=job_id, kind=exc.kind.value)
            return False
        return result.status == JobStatus.COMPLETED and bool(result.data)

    @staticmethod
    def transform_for_export(result: JobResult) -> dict[str, Any]:
        """JSON-ready dict without raw HTML, screenshot, or unset fields."""
        return result.model_dump(mode="json", exclude=set(_BULKY_FIELDS), exclude_none=True)


def _results_path(job_id: str) -> str:
    if not isinstance(job_id, str) or not job_id.strip():
        raise validation_error("Job ID is required and must be a string", "job_id")
    return f"{API_PREFIX}/results/{quote(job_id.strip(), safe='')}"


def _flags(include_html: bool, include_screenshot: bool) -> dict[str, str]:
    params: dict[str, str] = {}
    if include_html:
        params["include_html"] = "true"
    if include_screenshot:
        params["include_screenshot"] = "true"
    return params


__all__ = ["ResultsService"]
