"""Tests for scrapedash.services.results.ResultsService."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from scrapedash.client.http import CACHE_BUSTER_PARAM
from scrapedash.client.policy import RetryPolicy
from scrapedash.core.errors import ApiError, ErrorKind
from scrapedash.services.results import ResultsService
from scrapedash.services.types import JobResult, JobStatus


def _result_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "job_id": "job-1",
        "url": "https://example.com/products",
        "status": "completed",
        "data": {"title": "Widgets", "prices": ["9.99", "12.50"]},
        "raw_html": None,
        "screenshot": None,
        "scraped_at": "2024-05-01T10:06:00Z",
        "processing_time": 2.4,
        "error_message": None,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def captured() -> list[httpx.Request]:
    return []


@pytest.fixture
def results_client(make_client, captured):
    """Client whose handler records requests and answers with one result payload."""

    def _create(payload: dict[str, Any] | None = None, status: int = 200):
        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(status, json=payload or _result_payload())

        return make_client(handler)

    return _create


def _flags(request: httpx.Request) -> dict[str, str]:
    params = dict(request.url.params)
    params.pop(CACHE_BUSTER_PARAM, None)
    return params


# ─── Fetching ──────────────────────────────────────────────────────────


class TestGetResults:
    @pytest.mark.asyncio
    async def test_data_only_by_default(self, results_client, captured):
        async with results_client() as client:
            result = await ResultsService(client).get_results("job-1")
        assert captured[0].url.path == "/api/v1/results/job-1"
        assert _flags(captured[0]) == {}
        assert result.status == JobStatus.COMPLETED
        assert result.data == {"title": "Widgets", "prices": ["9.99", "12.50"]}
        assert result.processing_time == 2.4

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "expected"),
        [
            ("get_data_only", {}),
            ("get_results_with_html", {"include_html": "true"}),
            ("get_results_with_screenshot", {"include_screenshot": "true"}),
            (
                "get_complete_results",
                {"include_html": "true", "include_screenshot": "true"},
            ),
        ],
    )
    async def test_convenience_variants(self, results_client, captured, method, expected):
        async with results_client() as client:
            await getattr(ResultsService(client), method)("job-1")
        assert _flags(captured[0]) == expected

    @pytest.mark.asyncio
    async def test_empty_fields_become_none(self, results_client):
        payload = _result_payload(status="failed", data={}, processing_time=0, scraped_at="")
        async with results_client(payload) as client:
            result = await ResultsService(client).get_results("job-1")
        assert result.data is None
        assert result.processing_time is None
        assert result.scraped_at is None

    @pytest.mark.asyncio
    async def test_blank_job_id_rejected(self, results_client, captured):
        async with results_client() as client:
            with pytest.raises(ApiError) as excinfo:
                await ResultsService(client).get_results("  ")
        assert excinfo.value.kind == ErrorKind.VALIDATION
        assert captured == []

    @pytest.mark.asyncio
    async def test_with_retry(self, make_client):
        responses = iter([httpx.Response(504), httpx.Response(200, json=_result_payload())])
        retried: list[int] = []
        async with make_client(lambda req: next(responses)) as client:
            result = await ResultsService(client).get_results_with_retry(
                "job-1",
                include_html=True,
                policy=RetryPolicy(max_attempts=2, base_delay=0.001, max_delay=0.01),
                on_retry=retried.append,
            )
        assert result.job_id == "job-1"
        assert retried == [1]


# ─── Availability ──────────────────────────────────────────────────────


class TestHasResults:
    @pytest.mark.asyncio
    async def test_completed_with_data(self, results_client):
        async with results_client() as client:
            assert await ResultsService(client).has_results("job-1") is True

    @pytest.mark.asyncio
    async def test_completed_without_data(self, results_client):
        async with results_client(_result_payload(data=None)) as client:
            assert await ResultsService(client).has_results("job-1") is False

    @pytest.mark.asyncio
    async def test_still_running(self, results_client):
        async with results_client(_result_payload(status="in_progress")) as client:
            assert await ResultsService(client).has_results("job-1") is False

    @pytest.mark.asyncio
    async def test_lookup_failure_is_false(self, results_client):
        async with results_client({"detail": "Results not found"}, status=404) as client:
            assert await ResultsService(client).has_results("job-1") is False


# ─── Export ────────────────────────────────────────────────────────────


class TestTransformForExport:
    def test_bulky_and_empty_fields_dropped(self):
        result = JobResult.model_validate(
            _result_payload(raw_html="<html>...</html>", screenshot="aGVsbG8=")
        )
        exported = ResultsService.transform_for_export(result)
        assert exported == {
            "job_id": "job-1",
            "url": "https://example.com/products",
            "status": "completed",
            "data": {"title": "Widgets", "prices": ["9.99", "12.50"]},
            "scraped_at": "2024-05-01T10:06:00Z",
            "processing_time": 2.4,
        }

    def test_id_alias_accepted(self):
        payload = _result_payload()
        payload["id"] = payload.pop("job_id")
        result = JobResult.model_validate(payload)
        assert ResultsService.transform_for_export(result)["job_id"] == "job-1"
