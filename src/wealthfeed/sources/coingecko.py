"""CoinGecko crypto price client.

Free tier: roughly 30 requests per minute. Every request that counts
against the quota passes through a ``RequestGate`` spacing calls at least
``min_interval`` seconds apart (2 s by default). The gate belongs to the
client instance; build one instance per process and inject it.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from wealthfeed.core.config import CoinGeckoConfig
from wealthfeed.core.exceptions import NotFoundError
from wealthfeed.core.http import RequestGate, SourceHttpClient
from wealthfeed.core.models import (
    HealthStatus,
    PriceQuote,
    Provider,
    QuoteSource,
    SearchResult,
    utcnow,
)
from wealthfeed.sources.models import CoinListEntry, CoinMarketData

logger = logging.getLogger(__name__)

_API_KEY_HEADER = "x-cg-pro-api-key"


class CoinGeckoClient(SourceHttpClient):
    """Crypto prices, market data and coin search from CoinGecko.

    Parameters
    ----------
    config : CoinGeckoConfig
        URLs, optional pro API key, deadline and minimum request interval.
    gate : RequestGate | None
        Rate-limit gate. A private one is created from the config if None.
    http_client : httpx.AsyncClient | None
        Shared HTTP client. One is created (and owned) if None.
    """

    source = Provider.COINGECKO.value
    label = "CoinGecko"

    def __init__(
        self,
        config: CoinGeckoConfig | None = None,
        gate: RequestGate | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        config = config or CoinGeckoConfig()
        headers = {_API_KEY_HEADER: config.api_key} if config.api_key else None
        super().__init__(
            base_url=config.pro_base_url if config.api_key else config.base_url,
            timeout=config.timeout,
            headers=headers,
            gate=gate or RequestGate(config.min_interval),
            http_client=http_client,
        )

    async def get_prices(
        self,
        coin_ids: list[str],
        vs_currencies: list[str] | None = None,
        include_market_cap: bool = False,
        include_24hr_vol: bool = False,
        include_24hr_change: bool = False,
        include_last_updated_at: bool = False,
    ) -> dict[str, dict[str, float]]:
        """Batched simple-price lookup.

        Returns ``{coin_id: {currency: price, ...}}``. Unknown ids are
        silently omitted by the upstream.
        """
        ids = list(dict.fromkeys(c.strip().lower() for c in coin_ids if c.strip()))
        if not ids:
            return {}
        currencies = [c.lower() for c in (vs_currencies or ["usd"])]

        params: dict[str, Any] = {
            "ids": ",".join(ids),
            "vs_currencies": ",".join(currencies),
        }
        flags = {
            "include_market_cap": include_market_cap,
            "include_24hr_vol": include_24hr_vol,
            "include_24hr_change": include_24hr_change,
            "include_last_updated_at": include_last_updated_at,
        }
        params.update({name: "true" for name, enabled in flags.items() if enabled})

        data = await self._get_json("/simple/price", params=params)
        return {
            coin_id: {k: float(v) for k, v in values.items() if v is not None}
            for coin_id, values in (data or {}).items()
            if isinstance(values, dict)
        }

    async def get_price(self, instrument_id: str, currency: str = "usd") -> PriceQuote:
        coin_id = instrument_id.strip().lower()
        vs = currency.lower()
        prices = await self.get_prices([coin_id], [vs])
        price = prices.get(coin_id, {}).get(vs)
        if price is None:
            raise NotFoundError(
                f"{self.label}: not found: {coin_id} in {vs}",
                context={"source": self.source, "instrument": coin_id},
            )
        return PriceQuote(
            instrument_id=coin_id,
            price=price,
            currency=vs.upper(),
            observed_at=utcnow(),
            source=QuoteSource.API,
        )

    async def get_coin_list(self) -> list[CoinListEntry]:
        """Every coin CoinGecko knows: id, symbol, name."""
        data = await self._get_json("/coins/list")
        return [CoinListEntry.model_validate(row) for row in data or []]

    async def get_market_data(
        self,
        vs_currency: str = "usd",
        coin_ids: list[str] | None = None,
        per_page: int = 100,
        page: int = 1,
    ) -> list[CoinMarketData]:
        """Market-cap ordered listing with price, volume and 24h change."""
        params: dict[str, Any] = {
            "vs_currency": vs_currency.lower(),
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": page,
            "sparkline": "false",
        }
        if coin_ids:
            params["ids"] = ",".join(c.lower() for c in coin_ids)
        data = await self._get_json("/coins/markets", params=params)
        return [CoinMarketData.model_validate(row) for row in data or []]

    async def search(self, query: str) -> list[SearchResult]:
        if not query.strip():
            return []
        data = await self._get_json("/search", params={"query": query})
        return [
            SearchResult(
                symbol=str(coin.get("symbol", "")).upper(),
                name=coin.get("name") or coin["id"],
                id=coin["id"],
                type="crypto",
            )
            for coin in (data or {}).get("coins") or []
            if coin.get("id")
        ]

    async def health_check(self) -> HealthStatus:
        return await self._probe("/ping")
