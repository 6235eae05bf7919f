"""Tests for scrapedash.services.types models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from scrapedash.core.errors import ApiError, ErrorKind
from scrapedash.services.types import (
    CreateJobRequest,
    HealthStatus,
    Job,
    JobListOptions,
    JobStatus,
    parse_payload,
)


class TestJob:
    def test_id_alias(self):
        job = Job.model_validate({"id": "j1", "status": "pending", "url": "https://x.test"})
        assert job.job_id == "j1"

    def test_extra_fields_ignored(self):
        job = Job.model_validate(
            {"job_id": "j1", "status": "failed", "url": "https://x.test", "priority": 5}
        )
        assert job.status == JobStatus.FAILED
        assert not hasattr(job, "priority")

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            Job.model_validate({"job_id": "j1", "status": "sleeping", "url": "https://x.test"})


class TestHealthStatus:
    def test_null_components_are_unknown(self):
        status = HealthStatus.model_validate(
            {"status": "ok", "database": None, "redis": "", "uptime": None}
        )
        assert status.components() == {"database": "unknown", "redis": "unknown"}
        assert status.uptime == 0.0


class TestCreateJobRequest:
    def test_minimal_payload(self):
        assert CreateJobRequest(url=" https://x.test ").to_payload() == {"url": "https://x.test"}

    def test_full_payload(self):
        request = CreateJobRequest(
            url="https://x.test",
            selectors={"title": "h1"},
            wait_for=" #main ",
            timeout=30,
            javascript=False,
            user_agent="bot",
            headers={"Accept-Language": "en"},
            job_metadata={"team": "growth"},
        )
        assert request.to_payload() == {
            "url": "https://x.test",
            "selectors": {"title": "h1"},
            "wait_for": "#main",
            "timeout": 30,
            "javascript": False,
            "user_agent": "bot",
            "headers": {"Accept-Language": "en"},
            "job_metadata": {"team": "growth"},
        }

    def test_empty_optionals_dropped(self):
        request = CreateJobRequest(url="https://x.test", selectors={}, job_metadata={}, timeout=0)
        assert request.to_payload() == {"url": "https://x.test"}


class TestJobListOptions:
    def test_empty(self):
        assert JobListOptions().to_params() == {}

    def test_all_fields(self):
        options = JobListOptions(
            status=JobStatus.IN_PROGRESS, limit=20, offset=40, sort_by="status", sort_order="asc"
        )
        assert options.to_params() == {
            "status": "in_progress",
            "limit": "20",
            "offset": "40",
            "sort_by": "status",
            "sort_order": "asc",
        }

    def test_zero_offset_omitted(self):
        assert JobListOptions(offset=0).to_params() == {}

    def test_negative_limit_rejected(self):
        with pytest.raises(ValidationError):
            JobListOptions(limit=0)


class TestParsePayload:
    def test_non_mapping(self):
        with pytest.raises(ApiError) as excinfo:
            parse_payload(Job, ["not", "a", "job"], what="job")
        assert excinfo.value.kind == ErrorKind.UNKNOWN
        assert "Expected a JSON object for job" in str(excinfo.value)

    def test_missing_fields(self):
        with pytest.raises(ApiError) as excinfo:
            parse_payload(Job, {"job_id": "j1"}, what="job")
        assert excinfo.value.kind == ErrorKind.UNKNOWN
        assert isinstance(excinfo.value.__cause__, ValidationError)
