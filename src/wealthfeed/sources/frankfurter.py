"""Frankfurter fiat exchange-rate client (ECB reference rates).

No API key and no published rate limit. Rates change once per working day,
so latest-rate responses and the currency list are cached for 24 hours.
The cache key for latest rates is the base currency plus the sorted target
set, so ``["GBP", "USD"]`` and ``["USD", "GBP"]`` share an entry.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import date

import httpx

from wealthfeed.core.cache import TTLCache
from wealthfeed.core.config import FrankfurterConfig
from wealthfeed.core.exceptions import NotFoundError, UpstreamError
from wealthfeed.core.http import SourceHttpClient
from wealthfeed.core.models import (
    HealthStatus,
    PriceQuote,
    Provider,
    QuoteSource,
    SearchResult,
    utcnow,
)
from wealthfeed.sources.models import FrankfurterRates, FrankfurterTimeSeries

logger = logging.getLogger(__name__)

RatesKey = tuple[str, tuple[str, ...]]


def _normalise(symbols: list[str] | None) -> tuple[str, ...]:
    return tuple(sorted({s.strip().upper() for s in symbols or [] if s.strip()}))


class FrankfurterClient(SourceHttpClient):
    """Latest, historical and time-series fiat rates from Frankfurter.

    Parameters
    ----------
    config : FrankfurterConfig
        Base URL, deadline (10 s) and cache TTL (24 h).
    http_client : httpx.AsyncClient | None
        Shared HTTP client. One is created (and owned) if None.
    clock : callable
        Monotonic time source for the caches.
    """

    source = Provider.FRANKFURTER.value
    label = "Frankfurter"

    def __init__(
        self,
        config: FrankfurterConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        config = config or FrankfurterConfig()
        super().__init__(
            base_url=config.base_url,
            timeout=config.timeout,
            http_client=http_client,
        )
        self._rates_cache: TTLCache[RatesKey, FrankfurterRates] = TTLCache(
            config.cache_ttl, clock=clock
        )
        self._currencies_cache: TTLCache[str, dict[str, str]] = TTLCache(
            config.cache_ttl, clock=clock
        )

    # --- Rates ---

    async def get_currencies(self) -> dict[str, str]:
        """All supported currencies as ``{code: name}``. Cached."""
        cached = self._currencies_cache.get("all")
        if cached is not None:
            return cached
        data = await self._get_json("/currencies")
        currencies = {str(k).upper(): str(v) for k, v in (data or {}).items()}
        self._currencies_cache.set("all", currencies)
        return currencies

    async def get_latest_rates(
        self, base: str = "EUR", symbols: list[str] | None = None
    ) -> FrankfurterRates:
        """Latest rates for ``base``, optionally restricted to ``symbols``."""
        rates, _ = await self._latest_rates(base, symbols)
        return rates

    async def _latest_rates(
        self, base: str, symbols: list[str] | None
    ) -> tuple[FrankfurterRates, bool]:
        """Latest rates plus whether they were served from cache."""
        key: RatesKey = (base.upper(), _normalise(symbols))
        cached = self._rates_cache.get(key)
        if cached is not None:
            return cached, True

        data = await self._get_json(
            "/latest", params=self._rate_params(key[0], key[1]), instrument=base
        )
        rates = self._parse_rates(data)
        self._rates_cache.set(key, rates)
        return rates, False

    async def get_historical_rates(
        self, day: date, base: str = "EUR", symbols: list[str] | None = None
    ) -> FrankfurterRates:
        """Reference rates published for a given day. Not cached."""
        data = await self._get_json(
            f"/{day.isoformat()}",
            params=self._rate_params(base.upper(), _normalise(symbols)),
            instrument=base,
        )
        return self._parse_rates(data)

    async def get_time_series(
        self,
        base: str,
        start: date,
        end: date | None = None,
        symbols: list[str] | None = None,
    ) -> FrankfurterTimeSeries:
        """Daily rates between two dates (inclusive), keyed by ISO date."""
        end = end or start
        data = await self._get_json(
            f"/{start.isoformat()}..{end.isoformat()}",
            params=self._rate_params(base.upper(), _normalise(symbols)),
            instrument=base,
        )
        try:
            return FrankfurterTimeSeries.model_validate(data)
        except ValueError as e:
            raise UpstreamError(
                f"{self.label} returned an unexpected time series",
                context={"source": self.source, "error": str(e)},
            ) from e

    async def convert(
        self,
        amount: float,
        from_currency: str,
        to_currencies: list[str],
        on: date | None = None,
    ) -> FrankfurterRates:
        """Let the upstream convert ``amount``; ``rates`` holds converted values."""
        params = self._rate_params(from_currency.upper(), _normalise(to_currencies))
        params["amount"] = str(amount)
        path = f"/{on.isoformat()}" if on is not None else "/latest"
        data = await self._get_json(path, params=params, instrument=from_currency)
        return self._parse_rates(data)

    async def get_rate(
        self, from_currency: str, to_currency: str, on: date | None = None
    ) -> float:
        """Single rate lookup.

        Raises:
            NotFoundError: If the upstream response lacks the target currency.
        """
        target = to_currency.upper()
        if on is not None:
            rates = await self.get_historical_rates(on, from_currency, [target])
        else:
            rates = await self.get_latest_rates(from_currency, [target])
        rate = rates.rates.get(target)
        if rate is None:
            raise NotFoundError(
                f"{self.label}: no rate for {from_currency.upper()} -> {target}",
                context={"source": self.source, "instrument": target},
            )
        return rate

    async def get_price(self, instrument_id: str, currency: str) -> PriceQuote:
        """Price of one unit of ``instrument_id`` expressed in ``currency``."""
        base, target = instrument_id.upper(), currency.upper()
        rates, from_cache = await self._latest_rates(base, [target])
        rate = rates.rates.get(target)
        if rate is None:
            raise NotFoundError(
                f"{self.label}: no rate for {base} -> {target}",
                context={"source": self.source, "instrument": target},
            )
        return PriceQuote(
            instrument_id=base,
            price=rate,
            currency=target,
            observed_at=utcnow(),
            source=QuoteSource.CACHE if from_cache else QuoteSource.API,
        )

    async def search(self, query: str) -> list[SearchResult]:
        needle = query.strip().lower()
        if not needle:
            return []
        currencies = await self.get_currencies()
        return [
            SearchResult(symbol=code, name=name, id=code, type="currency")
            for code, name in sorted(currencies.items())
            if needle in code.lower() or needle in name.lower()
        ]

    async def health_check(self) -> HealthStatus:
        return await self._probe("/latest", params={"from": "EUR", "to": "USD"})

    def clear_cache(self) -> None:
        self._rates_cache.clear()
        self._currencies_cache.clear()

    # --- Helpers ---

    @staticmethod
    def _rate_params(base: str, symbols: tuple[str, ...]) -> dict[str, str]:
        params = {"from": base}
        if symbols:
            params["to"] = ",".join(symbols)
        return params

    def _parse_rates(self, data: object) -> FrankfurterRates:
        try:
            return FrankfurterRates.model_validate(data)
        except ValueError as e:
            raise UpstreamError(
                f"{self.label} returned an unexpected rates payload",
                context={"source": self.source, "error": str(e)},
            ) from e
