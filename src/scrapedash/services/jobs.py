"""Job operations against the scraping service.

Thin wrappers over ``ApiClient``: they build paths and query strings,
validate input before any request is made, and turn payloads into
typed models. Read operations have ``*_with_retry`` variants; job
creation is never retried because the service does not deduplicate
submissions.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from scrapedash.client.http import ApiClient
from scrapedash.client.policy import RetryPolicy
from scrapedash.client.retry import OnRetry
from scrapedash.core.errors import ApiError, ErrorDescriptor, ErrorKind, validation_error
from scrapedash.core.logging import get_logger
from scrapedash.services.types import (
    CreateJobRequest,
    Job,
    JobListOptions,
    JobListResponse,
    JobStatus,
    parse_payload,
)
from scrapedash.utils.time import utc_now

_logger = get_logger("services.jobs")

API_PREFIX = "/api/v1"
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 300
STATS_PAGE_SIZE = 1000
RECENT_JOBS_LIMIT = 50


class JobService:
    """Submit, inspect, and cancel scraping jobs.

    Args:
        client: Shared request client.
        retry_policy: Policy for the ``*_with_retry`` variants; the
            process-wide default when omitted.
    """

    def __init__(self, client: ApiClient, *, retry_policy: RetryPolicy | None = None) -> None:
        self._client = client
        self._retry_policy = retry_policy

    # ─── Listing ──────────────────────────────────────────────────────

    async def get_jobs(self, options: JobListOptions | None = None) -> JobListResponse:
        """List jobs, normalizing both bare-list and paginated responses."""
        options = options or JobListOptions()
        payload = await self._client.get(f"{API_PREFIX}/jobs", params=options.to_params())
        return _to_job_list(payload, options)

    async def get_jobs_with_retry(
        self,
        options: JobListOptions | None = None,
        policy: RetryPolicy | None = None,
        *,
        on_retry: OnRetry | None = None,
    ) -> JobListResponse:
        options = options or JobListOptions()
        payload = await self._client.request_with_retry(
            "GET",
            f"{API_PREFIX}/jobs",
            policy=policy or self._retry_policy,
            params=options.to_params(),
            on_retry=on_retry,
        )
        return _to_job_list(payload, options)

    async def get_jobs_by_status(self, status: JobStatus, limit: int | None = None) -> list[Job]:
        response = await self.get_jobs(JobListOptions(status=status, limit=limit))
        return response.jobs

    async def get_recent_jobs(self, limit: int = RECENT_JOBS_LIMIT) -> list[Job]:
        """Newest jobs first."""
        response = await self.get_jobs(
            JobListOptions(limit=limit, sort_by="created_at", sort_order="desc")
        )
        return response.jobs

    async def get_job_stats(self) -> dict[JobStatus, int]:
        """Count jobs per status over the first ``STATS_PAGE_SIZE`` jobs."""
        response = await self.get_jobs(JobListOptions(limit=STATS_PAGE_SIZE))
        stats = dict.fromkeys(JobStatus, 0)
        for job in response.jobs:
            stats[job.status] += 1
        return stats

    # ─── Single job ───────────────────────────────────────────────────

    async def get_job(self, job_id: str) -> Job:
        payload = await self._client.get(_job_path(job_id))
        return parse_payload(Job, payload, what="job")

    async def get_job_with_retry(
        self,
        job_id: str,
        policy: RetryPolicy | None = None,
        *,
        on_retry: OnRetry | None = None,
    ) -> Job:
        payload = await self._client.request_with_retry(
            "GET",
            _job_path(job_id),
            policy=policy or self._retry_policy,
            on_retry=on_retry,
        )
        return parse_payload(Job, payload, what="job")

    async def job_exists(self, job_id: str) -> bool:
        """False when the job cannot be fetched for any reason."""
        try:
            await self.get_job(job_id)
        except ApiError as exc:
            _logger.debug("jobs.lookup_failed", job_id=job_id, kind=exc.kind.value)
            return False
        return True

    # ─── Mutations ────────────────────────────────────────────────────

    async def create_job(self, request: CreateJobRequest) -> Job:
        """Submit a new job. Never retried.

        Raises:
            ApiError: ``validation`` kind for a missing or malformed URL or
                an out-of-range timeout, before anything is sent.
        """
        _validate_create_request(request)
        payload = await self._client.post(f"{API_PREFIX}/scrape", request.to_payload())
        job = parse_payload(Job, payload, what="job")
        _logger.info("jobs.created", job_id=job.job_id, url=job.url)
        return job

    async def update_job(self, job_id: str, job_metadata: dict[str, Any]) -> Job:
        """Replace a job's metadata."""
        payload = await self._client.put(_job_path(job_id), {"job_metadata": job_metadata})
        return parse_payload(Job, payload, what="job")

    async def cancel_job(self, job_id: str) -> None:
        await self._client.delete(_job_path(job_id))
        _logger.info("jobs.cancelled", job_id=job_id)

    async def retry_job(self, job_id: str) -> Job:
        """Resubmit a job's URL as a new job that records where it came from."""
        return await self._resubmit(job_id, "retried_from", "retry_timestamp")

    async def clone_job(self, job_id: str) -> Job:
        return await self._resubmit(job_id, "cloned_from", "clone_timestamp")

    async def _resubmit(self, job_id: str, origin_key: str, timestamp_key: str) -> Job:
        original = await self.get_job(job_id)
        metadata = {
            **original.job_metadata,
            origin_key: job_id,
            timestamp_key: utc_now().isoformat(),
        }
        return await self.create_job(CreateJobRequest(url=original.url, job_metadata=metadata))


def _job_path(job_id: str) -> str:
    if not isinstance(job_id, str) or not job_id.strip():
        raise validation_error("Job ID is required and must be a string", "job_id")
    return f"{API_PREFIX}/scrape/{quote(job_id.strip(), safe='')}"


def _validate_create_request(request: CreateJobRequest) -> None:
    url = request.url.strip() if request.url else ""
    if not url:
        raise validation_error("URL is required", "url")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise validation_error("Invalid URL format", "url") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise validation_error("Invalid URL format", "url")

    if request.timeout is not None and not (
        MIN_TIMEOUT_SECONDS <= request.timeout <= MAX_TIMEOUT_SECONDS
    ):
        raise validation_error(
            f"Timeout must be between {MIN_TIMEOUT_SECONDS} and "
            f"{MAX_TIMEOUT_SECONDS} seconds",
            "timeout",
        )


def _to_job_list(payload: Any, options: JobListOptions) -> JobListResponse:
    if isinstance(payload, list):
        jobs = [parse_payload(Job, item, what="job") for item in payload]
        return JobListResponse(
            jobs=jobs,
            total=len(jobs),
            limit=options.limit or len(jobs),
            offset=options.offset or 0,
        )
    if isinstance(payload, dict):
        items = payload.get("jobs") or payload.get("data") or []
        return JobListResponse(
            jobs=[parse_payload(Job, item, what="job") for item in items],
            total=payload.get("total") or payload.get("count") or 0,
            limit=payload.get("limit") or options.limit or 50,
            offset=payload.get("offset") or options.offset or 0,
        )
    raise ApiError(
        ErrorDescriptor(
            kind=ErrorKind.UNKNOWN,
            message=f"Unexpected job list payload: {type(payload).__name__}",
        )
    )


__all__ = ["API_PREFIX", "JobService"]
