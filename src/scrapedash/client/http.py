"""Async HTTP client for the scraping service API.

Provides ``ApiClient`` with two call patterns:

- ``get/post/put/delete``: one attempt, decoded JSON payload or ``ApiError``.
- ``request_with_retry``: the same single attempt driven by the retry engine.

Every failure is classified exactly once before it leaves the client, so
callers only ever see ``ApiError``. Every GET carries a strictly
increasing ``_t`` query parameter that defeats intermediary caches.

The client does not log; reporting failures is the caller's job, which
keeps it usable headlessly (e.g. from the health monitor).
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from types import TracebackType
from typing import TYPE_CHECKING, Any

import httpx

from scrapedash.client.policy import RetryPolicy
from scrapedash.client.retry import OnExhausted, OnRetry, run_with_retry
from scrapedash.core.errors import (
    ApiError,
    ErrorDescriptor,
    ErrorKind,
    classify,
    validation_error,
)

if TYPE_CHECKING:
    from scrapedash.core.config import ApiConfig

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT_SECONDS = 30.0
CACHE_BUSTER_PARAM = "_t"

_SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})


class ApiClient:
    """Async client for the scraping service REST API.

    Parameters
    ----------
    base_url:
        Service root, e.g. ``http://localhost:8000``.
    timeout:
        Ceiling in seconds for every call; exceeding it surfaces as a
        ``timeout`` error.
    headers:
        Extra headers sent with every request.
    transport:
        Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._timeout = timeout
        self._last_cache_buster = 0
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json", **(headers or {})},
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: ApiConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ApiClient:
        """Create a client from the ``api`` section of the configuration."""
        return cls(
            config.base_url,
            timeout=config.timeout_seconds,
            headers=config.headers,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout(self) -> float:
        return self._timeout

    def set_header(self, key: str, value: str) -> None:
        """Send ``key: value`` with every subsequent request."""
        self._client.headers[key] = value

    def remove_header(self, key: str) -> None:
        """Stop sending header ``key``; no-op when it is not set."""
        self._client.headers.pop(key, None)

    # ------------------------------------------------------------------
    # Single attempt
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Perform one request and return the decoded JSON payload.

        Returns ``None`` for empty response bodies.

        Raises:
            ApiError: on any failure, already classified.
        """
        method = _normalize_method(method)
        query = {k: v for k, v in (params or {}).items() if v is not None}
        if method == "GET":
            query[CACHE_BUSTER_PARAM] = self._next_cache_buster()

        try:
            response = await self._client.request(
                method,
                path,
                params=query or None,
                json=json,
            )
            response.raise_for_status()
        except Exception as exc:
            raise ApiError(classify(exc)) from exc

        return _decode(response)

    async def get(self, path: str, *, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        json: Any = None,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.request("POST", path, params=params, json=json)

    async def put(
        self,
        path: str,
        json: Any = None,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.request("PUT", path, params=params, json=json)

    async def delete(self, path: str, *, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("DELETE", path, params=params)

    # ------------------------------------------------------------------
    # Retrying
    # ------------------------------------------------------------------

    async def request_with_retry(
        self,
        method: str,
        path: str,
        body: Any = None,
        policy: RetryPolicy | None = None,
        *,
        params: Mapping[str, Any] | None = None,
        on_retry: OnRetry | None = None,
        on_exhausted: OnExhausted | None = None,
    ) -> Any:
        """Perform a request through the retry engine.

        Only wrap idempotent calls; ``POST`` is accepted but callers are
        responsible for deduplicating it.
        """
        method = _normalize_method(method)
        return await run_with_retry(
            lambda: self.request(method, path, params=params, json=body),
            policy,
            on_retry=on_retry,
            on_exhausted=on_exhausted,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _next_cache_buster(self) -> int:
        """Millisecond timestamp, bumped so that no two values repeat."""
        value = int(time.time() * 1000)
        if value <= self._last_cache_buster:
            value = self._last_cache_buster + 1
        self._last_cache_buster = value
        return value


def _normalize_method(method: str) -> str:
    upper = method.upper()
    if upper not in _SUPPORTED_METHODS:
        raise validation_error(f"Unsupported HTTP method: {method}", "method")
    return upper


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise ApiError(
            ErrorDescriptor(
                kind=ErrorKind.UNKNOWN,
                message=f"Response from {response.request.url.path} is not valid JSON",
                status_code=response.status_code,
            )
        ) from exc


__all__ = ["CACHE_BUSTER_PARAM", "DEFAULT_BASE_URL", "DEFAULT_TIMEOUT_SECONDS", "ApiClient"]
