"""Pytest fixtures for scrapedash tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator
from typing import Any

import httpx
import pytest
import structlog

from scrapedash.client.http import ApiClient

BASE_URL = "http://scraper.test"


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging and CLI state before and after each test.

    This ensures test isolation for logging configuration.
    """
    from scrapedash.cli import helpers

    helpers.reset_cli_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    helpers.reset_cli_state()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)


@pytest.fixture
def make_client() -> Callable[..., ApiClient]:
    """Factory for ApiClient instances backed by an httpx.MockTransport."""

    def _create(
        handler: Callable[[httpx.Request], httpx.Response],
        **kwargs: Any,
    ) -> ApiClient:
        return ApiClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)

    return _create


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def job_payload() -> Callable[..., dict[str, Any]]:
    """Factory for job JSON as the service returns it."""

    def _create(job_id: str = "job-1", status: str = "pending", **extra: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "job_id": job_id,
            "status": status,
            "url": "https://example.com/products",
            "created_at": "2024-05-01T10:00:00Z",
            "updated_at": "2024-05-01T10:05:00Z",
        }
        payload.update(extra)
        return payload

    return _create


@pytest.fixture
def health_payload() -> Callable[..., dict[str, Any]]:
    def _create(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": "healthy",
            "timestamp": "2024-05-01T10:00:00Z",
            "database": "connected",
            "redis": "connected",
            "version": "1.4.2",
            "uptime": 3600,
        }
        payload.update(overrides)
        return payload

    return _create
