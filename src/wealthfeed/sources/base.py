"""Source client protocol: the interface every market-data source meets.

Architecture
------------
Each upstream (Yahoo Finance, CoinGecko, Frankfurter, metals.dev) has its
own rate limits, failure modes and response shapes. Clients hide those
behind one small surface:

    upstream JSON → client → PriceQuote / SearchResult / HealthStatus

Consumers (the converter, the refresh service, the API) depend on the
concrete clients they need, injected at construction. One long-lived
instance per client type is built per process, so any rate-limit gate a
client owns is process-wide.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from wealthfeed.core.models import HealthStatus, PriceQuote, SearchResult


@runtime_checkable
class SourceClient(Protocol):
    """Consumer-facing interface shared by all source clients."""

    async def get_price(self, instrument_id: str, currency: str) -> PriceQuote:
        """Fetch the current price of one instrument.

        Raises
        ------
        NotFoundError
            The instrument is unknown to the source.
        RateLimitError
            The source answered HTTP 429.
        UpstreamError
            Any other non-2xx response, transport failure or bad body.
        SourceTimeoutError
            The client's fixed deadline elapsed.
        """
        ...

    async def search(self, query: str) -> list[SearchResult]:
        """Free-text instrument lookup for autocomplete. Never cached."""
        ...

    async def health_check(self) -> HealthStatus:
        """Probe the upstream. Never raises."""
        ...

    async def close(self) -> None: ...
