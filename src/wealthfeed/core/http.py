"""Shared async HTTP plumbing for upstream market-data sources."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, ClassVar

import httpx
from aiolimiter import AsyncLimiter

from wealthfeed.core.exceptions import (
    AuthError,
    NotFoundError,
    RateLimitError,
    SourceError,
    SourceTimeoutError,
    UpstreamError,
)
from wealthfeed.core.models import HealthStatus

logger = logging.getLogger(__name__)

_USER_AGENT = "wealthfeed/0.1 (+https://github.com/wealthfeed/wealthfeed)"


class RequestGate:
    """Minimum-interval gate for one upstream, built on ``AsyncLimiter``.

    A limiter with a capacity of one request per ``min_interval`` seconds
    admits the first caller at once and queues the rest, so consecutive
    requests are spaced at least one interval apart. An interval of zero
    disables the gate.

    Parameters
    ----------
    min_interval : float
        Minimum seconds between consecutive requests.
    """

    def __init__(self, min_interval: float) -> None:
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self._min_interval = min_interval
        self._limiter = (
            AsyncLimiter(max_rate=1, time_period=min_interval) if min_interval > 0 else None
        )

    @property
    def min_interval(self) -> float:
        return self._min_interval

    async def wait(self) -> None:
        """Block until a request may be sent, then count it as sent."""
        if self._limiter is None:
            return
        if not self._limiter.has_capacity():
            logger.debug("Rate-limit gate waiting (interval %.3fs)", self._min_interval)
        await self._limiter.acquire()


def parse_retry_after(value: str | None) -> int | None:
    """Convert a Retry-After header (seconds) into milliseconds."""
    if not value:
        return None
    try:
        return int(float(value) * 1000)
    except ValueError:
        return None


class SourceHttpClient:
    """Base class for upstream source clients.

    Owns one ``httpx.AsyncClient`` and maps every failure onto the
    SourceError hierarchy:

    - HTTP 429 -> RateLimitError (Retry-After in milliseconds)
    - HTTP 404 -> NotFoundError
    - HTTP 401/403 -> AuthError
    - other non-2xx, transport errors, bad JSON -> UpstreamError
    - deadline exceeded -> SourceTimeoutError

    The deadline covers the whole request, not just individual socket
    operations. Clients do not retry; callers decide.

    Use via ``async with Client(...) as client:`` or call ``close()``.
    """

    source: ClassVar[str] = "unknown"
    label: ClassVar[str] = "Upstream"

    def __init__(
        self,
        base_url: str,
        timeout: float,
        headers: dict[str, str] | None = None,
        gate: RequestGate | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._gate = gate
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            headers={"User-Agent": _USER_AGENT, "Accept": "application/json"},
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )
        self._headers = dict(headers or {})

    async def __aenter__(self):  # type: ignore[no-untyped-def]
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def gate(self) -> RequestGate | None:
        return self._gate

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}{path}"

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        instrument: str | None = None,
        gated: bool = True,
    ) -> Any:
        """GET a JSON document, passing through the gate when configured.

        Args:
            path: Path relative to the base URL, or an absolute URL.
            params: Query parameters.
            instrument: Identifier reported in NotFoundError context.
            gated: Whether the request counts against the rate-limit gate.

        Raises:
            SourceError: One of the mapped subclasses (see class docstring).
        """
        if gated and self._gate is not None:
            await self._gate.wait()

        url = self._url(path)
        context = {"source": self.source, "url": url}
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._client.get(
                    url, params=params, headers=self._headers
                )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise SourceTimeoutError(
                f"{self.label} request timed out after {self._timeout}s",
                context={**context, "timeout": self._timeout},
            ) from e
        except httpx.RequestError as e:
            raise UpstreamError(
                f"{self.label} request failed: {e}",
                context={**context, "error": str(e)},
            ) from e

        self._raise_for_status(response, context, instrument)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{self.label} returned malformed JSON",
                status_code=response.status_code,
                context=context,
            ) from e

    def _raise_for_status(
        self,
        response: httpx.Response,
        context: dict[str, Any],
        instrument: str | None,
    ) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        if status == 429:
            retry_after_ms = parse_retry_after(response.headers.get("Retry-After"))
            logger.warning(
                "%s rate limited (429), retry after %sms", self.label, retry_after_ms
            )
            raise RateLimitError(
                f"{self.label} rate limit exceeded",
                retry_after_ms=retry_after_ms,
                context=context,
            )
        if status == 404:
            raise NotFoundError(
                f"{self.label}: not found: {instrument or context['url']}",
                context={**context, "instrument": instrument},
            )
        if status in (401, 403):
            raise AuthError(
                f"{self.label} rejected the API key (HTTP {status})",
                status_code=status,
                context=context,
            )
        raise UpstreamError(
            f"{self.label} API error: HTTP {status} {response.reason_phrase}",
            status_code=status,
            context={**context, "response_body": response.text[:200]},
        )

    async def _probe(
        self, path: str, params: dict[str, Any] | None = None
    ) -> HealthStatus:
        """Issue a lightweight ungated request and report reachability."""
        start = time.monotonic()
        try:
            await self._get_json(path, params=params, gated=False)
        except SourceError as e:
            return HealthStatus(
                healthy=False,
                latency_ms=(time.monotonic() - start) * 1000,
                error=str(e),
            )
        return HealthStatus(healthy=True, latency_ms=(time.monotonic() - start) * 1000)
