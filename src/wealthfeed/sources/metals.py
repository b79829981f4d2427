"""metals.dev precious-metal spot price client.

The free tier allows 50 requests per day, so every quota-consuming request
passes through a ``RequestGate`` with a 30-minute minimum interval, and
single-metal prices are cached for 5 minutes keyed by (metal, currency,
unit). The API key travels as the ``api_key`` query parameter.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import date
from typing import Any

import httpx

from wealthfeed.core.cache import TTLCache
from wealthfeed.core.config import MetalsConfig
from wealthfeed.core.exceptions import AuthError, NotFoundError, UpstreamError
from wealthfeed.core.http import RequestGate, SourceHttpClient
from wealthfeed.core.models import (
    HealthStatus,
    MetalType,
    PriceQuote,
    Provider,
    QuoteSource,
    SearchResult,
    WeightUnit,
    as_float,
    utcnow,
)
from wealthfeed.sources.models import (
    MetalPrice,
    MetalQuote,
    MetalsHistorical,
    MetalsSnapshot,
    MetalsSymbols,
    MetalValuation,
)

logger = logging.getLogger(__name__)

# Grams per unit; "oz" is the troy ounce used for precious metals
GRAMS_PER_UNIT: dict[WeightUnit, float] = {
    WeightUnit.GRAM: 1.0,
    WeightUnit.TROY_OUNCE: 31.1034768,
    WeightUnit.KILOGRAM: 1000.0,
    WeightUnit.POUND: 453.59237,
}

METAL_CODES: dict[MetalType, str] = {
    MetalType.GOLD: "XAU",
    MetalType.SILVER: "XAG",
    MetalType.PLATINUM: "XPT",
    MetalType.PALLADIUM: "XPD",
}

MetalKey = tuple[MetalType, str, WeightUnit]


def resolve_metal(value: str | MetalType) -> MetalType:
    """Accept a metal name ("gold") or ISO code ("XAU")."""
    text = str(value).strip().lower()
    for metal, code in METAL_CODES.items():
        if text in (metal.value, code.lower()):
            return metal
    raise NotFoundError(
        f"Unknown metal: {value!r}",
        context={"source": Provider.METALS_DEV.value, "instrument": str(value)},
    )


def convert_weight(amount: float, from_unit: WeightUnit, to_unit: WeightUnit) -> float:
    """Convert a weight between grams, troy ounces, kilograms and pounds."""
    grams = amount * GRAMS_PER_UNIT[WeightUnit(from_unit)]
    return grams / GRAMS_PER_UNIT[WeightUnit(to_unit)]


class MetalsDevClient(SourceHttpClient):
    """Gold, silver, platinum and palladium prices from metals.dev.

    Parameters
    ----------
    config : MetalsConfig
        API key (required), URL, deadline, minimum interval, cache TTL.
    gate : RequestGate | None
        Rate-limit gate. A private one is created from the config if None.
    http_client : httpx.AsyncClient | None
        Shared HTTP client. One is created (and owned) if None.
    clock : callable
        Monotonic time source for the price cache.

    Raises
    ------
    AuthError
        If no API key is configured.
    """

    source = Provider.METALS_DEV.value
    label = "Metals.dev"

    def __init__(
        self,
        config: MetalsConfig,
        gate: RequestGate | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not config.api_key:
            raise AuthError(
                "Metals.dev API key is required",
                context={"source": self.source, "field": "metals.api_key"},
            )
        super().__init__(
            base_url=config.base_url,
            timeout=config.timeout,
            gate=gate or RequestGate(config.min_interval),
            http_client=http_client,
        )
        self._api_key = config.api_key
        self._cache: TTLCache[MetalKey, MetalPrice] = TTLCache(
            config.cache_ttl, clock=clock
        )

    def _params(self, **extra: Any) -> dict[str, Any]:
        return {"api_key": self._api_key, **extra}

    # --- Prices ---

    async def get_metal_price(
        self,
        metal: MetalType | str,
        currency: str = "USD",
        unit: WeightUnit = WeightUnit.TROY_OUNCE,
    ) -> MetalPrice:
        """Spot price for one metal; served from the 5-minute cache when fresh."""
        price, _ = await self._metal_price(resolve_metal(metal), currency, unit)
        return price

    async def _metal_price(
        self, metal: MetalType, currency: str, unit: WeightUnit
    ) -> tuple[MetalPrice, bool]:
        key: MetalKey = (metal, currency.upper(), WeightUnit(unit))
        cached = self._cache.get(key)
        if cached is not None:
            return cached, True

        data = await self._get_json(
            "/price",
            params=self._params(metal=metal.value, currency=key[1], unit=key[2].value),
            instrument=metal.value,
        )
        payload = {"metal": metal.value, "currency": key[1], "unit": key[2].value}
        payload.update(data or {})
        try:
            price = MetalPrice.model_validate(payload)
        except ValueError as e:
            raise UpstreamError(
                f"{self.label} returned an unexpected price payload",
                context={"source": self.source, "error": str(e)},
            ) from e

        self._cache.set(key, price)
        return price, False

    async def get_price(
        self,
        instrument_id: str,
        currency: str = "USD",
        unit: WeightUnit = WeightUnit.TROY_OUNCE,
    ) -> PriceQuote:
        metal = resolve_metal(instrument_id)
        price, from_cache = await self._metal_price(metal, currency, unit)
        return PriceQuote(
            instrument_id=metal.value,
            price=price.price,
            currency=price.currency.upper(),
            observed_at=price.timestamp or utcnow(),
            source=QuoteSource.CACHE if from_cache else QuoteSource.API,
        )

    async def get_multiple_prices(
        self,
        metals: list[MetalType | str],
        currency: str = "USD",
        unit: WeightUnit = WeightUnit.TROY_OUNCE,
    ) -> MetalsSnapshot:
        """Several metals in one request. Not cached."""
        names = [resolve_metal(m).value for m in metals]
        data = await self._get_json(
            "/price",
            params=self._params(
                metal=",".join(names), currency=currency.upper(), unit=WeightUnit(unit).value
            ),
            instrument=",".join(names),
        )
        payload = {"currency": currency.upper(), "unit": WeightUnit(unit).value}
        payload.update(data or {})
        try:
            return MetalsSnapshot.model_validate(payload)
        except ValueError as e:
            raise UpstreamError(
                f"{self.label} returned an unexpected multi-price payload",
                context={"source": self.source, "error": str(e)},
            ) from e

    async def get_all_metals(
        self, currency: str = "USD", unit: WeightUnit = WeightUnit.TROY_OUNCE
    ) -> dict[MetalType, MetalQuote]:
        """Every supported metal; metals the upstream omits report price 0."""
        snapshot = await self.get_multiple_prices(list(MetalType), currency, unit)
        result = {metal: MetalQuote(price=0.0) for metal in MetalType}
        known = {metal.value for metal in MetalType}
        for name, quote in snapshot.metals.items():
            if name in known:
                result[MetalType(name)] = quote
        return result

    async def get_historical(
        self,
        metal: MetalType | str,
        start: date | None = None,
        end: date | None = None,
        days: int | None = None,
        currency: str = "USD",
        unit: WeightUnit = WeightUnit.TROY_OUNCE,
    ) -> MetalsHistorical:
        """Daily prices over a window given by ``days`` or ``start``/``end``."""
        resolved = resolve_metal(metal)
        params = self._params(
            metal=resolved.value, currency=currency.upper(), unit=WeightUnit(unit).value
        )
        if days:
            params["days"] = days
        elif start is not None:
            params["start_date"] = start.isoformat()
            if end is not None:
                params["end_date"] = end.isoformat()
        else:
            raise ValueError("get_historical needs either days or start")

        data = await self._get_json("/historical", params=params, instrument=resolved.value)
        points = (data or {}).get("data") or []
        rates: dict[str, float] = {}
        for point in points:
            price = as_float(point.get("price"))
            if "date" not in point or price is None:
                logger.debug("Skipping incomplete %s history point: %s", resolved.value, point)
                continue
            rates[str(point["date"])] = price
        return MetalsHistorical(
            metal=resolved,
            currency=currency.upper(),
            unit=WeightUnit(unit),
            rates=rates,
        )

    async def get_symbols(self) -> MetalsSymbols:
        data = await self._get_json("/symbols", params=self._params())
        return MetalsSymbols.model_validate(data or {})

    # --- Valuation ---

    def convert_weight(
        self, amount: float, from_unit: WeightUnit, to_unit: WeightUnit
    ) -> float:
        return convert_weight(amount, from_unit, to_unit)

    async def calculate_value(
        self,
        metal: MetalType | str,
        weight: float,
        unit: WeightUnit = WeightUnit.TROY_OUNCE,
        currency: str = "USD",
    ) -> MetalValuation:
        """Value a physical holding at the current spot price."""
        price = await self.get_metal_price(metal, currency, unit)
        return MetalValuation(
            metal=price.metal,
            weight=weight,
            unit=WeightUnit(unit),
            currency=currency.upper(),
            price_per_unit=price.price,
            total_value=weight * price.price,
            timestamp=price.timestamp,
        )

    # --- Lookup & health ---

    async def search(self, query: str) -> list[SearchResult]:
        """Match against the fixed metal universe without spending quota."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            SearchResult(symbol=code, name=metal.value.title(), id=metal.value, type="metal")
            for metal, code in METAL_CODES.items()
            if needle in metal.value or needle in code.lower()
        ]

    async def health_check(self) -> HealthStatus:
        status = await self._probe("/symbols", params=self._params())
        if not status.healthy and status.error and "API key" in status.error:
            return status.model_copy(update={"error": "Invalid API key"})
        return status

    def clear_cache(self) -> None:
        self._cache.clear()
