"""Domain services over the scraping service API."""

from scrapedash.services.health import (
    HealthMonitor,
    HealthService,
    HealthSnapshot,
    HealthState,
    MonitorConfig,
    evaluate_health,
)
from scrapedash.services.jobs import JobService
from scrapedash.services.results import ResultsService
from scrapedash.services.types import (
    CreateJobRequest,
    DetailedHealth,
    HealthStatus,
    Job,
    JobListOptions,
    JobListResponse,
    JobResult,
    JobStatus,
)

__all__ = [
    "CreateJobRequest",
    "DetailedHealth",
    "HealthMonitor",
    "HealthService",
    "HealthSnapshot",
    "HealthState",
    "HealthStatus",
    "Job",
    "JobListOptions",
    "JobListResponse",
    "JobResult",
    "JobService",
    "JobStatus",
    "MonitorConfig",
    "ResultsService",
    "evaluate_health",
]
