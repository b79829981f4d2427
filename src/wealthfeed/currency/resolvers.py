"""Rate resolution strategies consulted in order by the converter.

Each resolver answers a (from, to) pair or returns None to pass the
question on. The converter's default order is::

    [CacheResolver, LiveResolver, FallbackResolver]

A live-source failure is logged and treated as "no answer", so the chain
degrades to the static table instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from wealthfeed.core.cache import RateCache
from wealthfeed.core.exceptions import SourceError
from wealthfeed.core.models import QuoteSource, utcnow
from wealthfeed.currency.fallback import get_fallback_rate, is_fiat
from wealthfeed.sources.frankfurter import FrankfurterClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRate:
    """A rate together with where it came from."""

    rate: float
    source: QuoteSource
    observed_at: datetime


@runtime_checkable
class RateResolver(Protocol):
    """One tier of the resolution chain."""

    async def resolve(
        self, from_currency: str, to_currency: str
    ) -> ResolvedRate | None: ...


class CacheResolver:
    """Answers from the converter's in-memory rate cache."""

    def __init__(self, cache: RateCache) -> None:
        self._cache = cache

    def lookup(self, from_currency: str, to_currency: str) -> ResolvedRate | None:
        entry = self._cache.get(from_currency, to_currency)
        if entry is None:
            return None
        return ResolvedRate(
            rate=entry.rate, source=QuoteSource.CACHE, observed_at=entry.observed_at
        )

    async def resolve(
        self, from_currency: str, to_currency: str
    ) -> ResolvedRate | None:
        return self.lookup(from_currency, to_currency)


class LiveResolver:
    """Asks Frankfurter for fiat pairs and writes answers back to the cache.

    Pairs involving a crypto or metal code are never sent upstream.
    """

    def __init__(self, client: FrankfurterClient, cache: RateCache) -> None:
        self._client = client
        self._cache = cache

    async def resolve(
        self, from_currency: str, to_currency: str
    ) -> ResolvedRate | None:
        if not (is_fiat(from_currency) and is_fiat(to_currency)):
            return None
        resolved = await self.resolve_many(from_currency, [to_currency])
        return resolved.get(to_currency.upper())

    async def resolve_many(
        self, from_currency: str, targets: list[str]
    ) -> dict[str, ResolvedRate]:
        """One upstream request for every fiat target.

        Returns only the targets the upstream answered; an upstream failure
        yields an empty mapping.
        """
        base = from_currency.upper()
        eligible = [t.upper() for t in targets if is_fiat(t) and t.upper() != base]
        if not is_fiat(base) or not eligible:
            return {}

        try:
            response = await self._client.get_latest_rates(base, eligible)
        except SourceError as e:
            logger.warning(
                "Live rate lookup %s -> %s failed, falling back: %s",
                base,
                ",".join(eligible),
                e,
            )
            return {}

        resolved: dict[str, ResolvedRate] = {}
        for target in eligible:
            rate = response.rates.get(target)
            if not rate or rate <= 0:
                continue
            entry = self._cache.set_rate(base, target, rate)
            resolved[target] = ResolvedRate(
                rate=rate, source=QuoteSource.API, observed_at=entry.observed_at
            )
        return resolved


class FallbackResolver:
    """Answers from the static USD-based table."""

    async def resolve(
        self, from_currency: str, to_currency: str
    ) -> ResolvedRate | None:
        rate = get_fallback_rate(from_currency, to_currency)
        if rate is None:
            return None
        logger.info(
            "Using fallback rate for %s -> %s: %s",
            from_currency.upper(),
            to_currency.upper(),
            rate,
        )
        return ResolvedRate(rate=rate, source=QuoteSource.FALLBACK, observed_at=utcnow())
