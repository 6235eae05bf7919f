"""Data models for the scraping service API.

All response models are Pydantic v2 models that tolerate the variations
the service is known to produce: ``id`` instead of ``job_id``, ``null``
or empty strings for optional fields, and unrecognised extra keys.
Request models are permissive; input rules are enforced by the services
so that violations surface as ``validation`` errors instead of
``pydantic.ValidationError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Literal, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from scrapedash.core.errors import ApiError, ErrorDescriptor, ErrorKind

# ─── Enums ────────────────────────────────────────────────────────────


class JobStatus(str, Enum):
    """Lifecycle state of a scraping job."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ─── Responses ────────────────────────────────────────────────────────


def _empty_to_none(value: Any) -> Any:
    if value == "" or value == {}:
        return None
    return value


class Job(BaseModel):
    """A scraping job as reported by the service."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    job_id: str = Field(validation_alias=AliasChoices("job_id", "id"))
    status: JobStatus
    url: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    error_message: str | None = None
    job_metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("completed_at", "error_message", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: Any) -> Any:
        return _empty_to_none(value)

    @field_validator("job_metadata", mode="before")
    @classmethod
    def _metadata_default(cls, value: Any) -> Any:
        return value or {}


class JobListResponse(BaseModel):
    """One page of jobs."""

    jobs: list[Job] = Field(default_factory=list)
    total: int = 0
    limit: int = 50
    offset: int = 0


class JobResult(BaseModel):
    """Scraped output of a job."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    job_id: str = Field(validation_alias=AliasChoices("job_id", "id"))
    url: str
    status: JobStatus
    data: dict[str, Any] | None = None
    raw_html: str | None = None
    screenshot: str | None = Field(
        default=None,
        description="Base64-encoded screenshot, only when requested.",
    )
    scraped_at: datetime | None = None
    processing_time: float | None = Field(
        default=None,
        description="Seconds the service spent scraping.",
    )
    error_message: str | None = None

    @field_validator(
        "data", "raw_html", "screenshot", "scraped_at", "processing_time", "error_message",
        mode="before",
    )
    @classmethod
    def _blank_is_missing(cls, value: Any) -> Any:
        if value == 0:
            return None
        return _empty_to_none(value)


class HealthStatus(BaseModel):
    """Liveness payload. Missing component fields default to ``"unknown"``."""

    model_config = ConfigDict(extra="ignore")

    status: str
    timestamp: str | None = None
    database: str = "unknown"
    redis: str = "unknown"
    version: str = "unknown"
    uptime: float = 0.0

    @field_validator("database", "redis", "version", mode="before")
    @classmethod
    def _missing_is_unknown(cls, value: Any) -> Any:
        return value or "unknown"

    @field_validator("uptime", mode="before")
    @classmethod
    def _missing_uptime(cls, value: Any) -> Any:
        return value or 0.0

    def components(self) -> dict[str, str]:
        """Per-component status, keyed by component name."""
        return {"database": self.database, "redis": self.redis}


class DetailedHealth(BaseModel):
    """Readiness view of a health check.

    A component counts as up only when the service positively reports it
    healthy; ``"unknown"`` is not enough to accept new jobs.
    """

    overall: bool
    components: dict[str, bool]
    version: str = "unknown"
    uptime: float = 0.0
    response_time_ms: float = 0.0


# ─── Requests ─────────────────────────────────────────────────────────


class CreateJobRequest(BaseModel):
    """Body of ``POST /api/v1/scrape``."""

    url: str
    selectors: dict[str, str] | None = None
    wait_for: str | None = None
    timeout: int | None = Field(default=None, description="Seconds, 1-300.")
    javascript: bool | None = None
    user_agent: str | None = None
    headers: dict[str, str] | None = None
    job_metadata: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Request body with empty optional fields dropped and strings trimmed."""
        payload: dict[str, Any] = {"url": self.url.strip()}
        if self.selectors:
            payload["selectors"] = self.selectors
        if self.wait_for and self.wait_for.strip():
            payload["wait_for"] = self.wait_for.strip()
        if self.timeout and self.timeout > 0:
            payload["timeout"] = self.timeout
        if self.javascript is not None:
            payload["javascript"] = self.javascript
        if self.user_agent and self.user_agent.strip():
            payload["user_agent"] = self.user_agent.strip()
        if self.headers:
            payload["headers"] = self.headers
        if self.job_metadata:
            payload["job_metadata"] = self.job_metadata
        return payload


class JobListOptions(BaseModel):
    """Filtering and pagination for ``GET /api/v1/jobs``."""

    status: JobStatus | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int | None = Field(default=None, ge=0)
    sort_by: Literal["created_at", "updated_at", "status"] | None = None
    sort_order: Literal["asc", "desc"] | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.status is not None:
            params["status"] = self.status.value
        if self.limit:
            params["limit"] = str(self.limit)
        if self.offset:
            params["offset"] = str(self.offset)
        if self.sort_by:
            params["sort_by"] = self.sort_by
        if self.sort_order:
            params["sort_order"] = self.sort_order
        return params


# ─── Parsing ──────────────────────────────────────────────────────────

M = TypeVar("M", bound=BaseModel)


def parse_payload(model: type[M], payload: Any, *, what: str) -> M:
    """Validate a decoded response body into ``model``.

    Raises:
        ApiError: ``unknown`` kind when the payload has an unexpected shape.
    """
    if not isinstance(payload, Mapping):
        raise ApiError(
            ErrorDescriptor(
                kind=ErrorKind.UNKNOWN,
                message=f"Expected a JSON object for {what}, got {type(payload).__name__}",
            )
        )
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ApiError(
            ErrorDescriptor(
                kind=ErrorKind.UNKNOWN,
                message=f"Malformed {what} payload ({exc.error_count()} invalid fields)",
            )
        ) from exc


__all__ = [
    "CreateJobRequest",
    "DetailedHealth",
    "HealthStatus",
    "Job",
    "JobListOptions",
    "JobListResponse",
    "JobResult",
    "JobStatus",
    "parse_payload",
]
