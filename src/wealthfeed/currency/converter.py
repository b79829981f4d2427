"""Currency conversion facade: cache, then live rates, then a static table."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from babel import Locale, UnknownLocaleError
from babel.numbers import format_currency, format_decimal, is_currency

from wealthfeed.core.cache import RateCache
from wealthfeed.core.exceptions import ConversionUnavailableError, SourceError
from wealthfeed.core.models import (
    CacheEntryStats,
    CacheStats,
    ConversionResult,
    ConverterHealth,
    CurrencyInfo,
    ExchangeRateEntry,
    QuoteSource,
    utcnow,
)
from wealthfeed.currency.fallback import (
    CURRENCY_NAMES,
    CURRENCY_SYMBOLS,
    FALLBACK_RATES,
    is_crypto,
    is_fiat,
    is_metal,
)
from wealthfeed.currency.resolvers import (
    CacheResolver,
    FallbackResolver,
    LiveResolver,
    RateResolver,
    ResolvedRate,
)
from wealthfeed.sources.frankfurter import FrankfurterClient

logger = logging.getLogger(__name__)


class CurrencyConverter:
    """Converts amounts between fiat, crypto and metal codes.

    Resolution walks ``self.resolvers`` in order and stops at the first
    answer: the in-memory cache (1 hour TTL), Frankfurter for fiat pairs,
    then the static fallback table. Live answers are cached together with
    their inverse. Only when every tier comes up empty does a lookup raise
    ``ConversionUnavailableError``.

    Parameters
    ----------
    frankfurter : FrankfurterClient
        The live fiat source. Injected, never constructed here.
    cache_ttl : float
        Rate cache lifetime in seconds.
    clock : callable
        Monotonic time source for the rate cache.
    default_locale : str
        Locale used by ``format_amount`` when none is given.
    """

    def __init__(
        self,
        frankfurter: FrankfurterClient,
        cache_ttl: float = 60 * 60,
        clock: Callable[[], float] = time.monotonic,
        default_locale: str = "en-US",
    ) -> None:
        self._frankfurter = frankfurter
        self._cache = RateCache(cache_ttl, clock=clock)
        self._cache_resolver = CacheResolver(self._cache)
        self._live_resolver = LiveResolver(frankfurter, self._cache)
        self._fallback_resolver = FallbackResolver()
        self._default_locale = default_locale
        self.resolvers: list[RateResolver] = [
            self._cache_resolver,
            self._live_resolver,
            self._fallback_resolver,
        ]

    # --- Rates ---

    async def _resolve(self, from_currency: str, to_currency: str) -> ResolvedRate:
        for resolver in self.resolvers:
            resolved = await resolver.resolve(from_currency, to_currency)
            if resolved is not None:
                return resolved
        raise ConversionUnavailableError(from_currency, to_currency)

    async def convert(
        self, amount: float, from_currency: str, to_currency: str
    ) -> ConversionResult:
        """Convert ``amount`` and report the rate and its source.

        Raises:
            ConversionUnavailableError: No tier could price the pair.
        """
        src, dst = from_currency.upper(), to_currency.upper()
        if src == dst:
            return ConversionResult(
                from_currency=src,
                to_currency=dst,
                amount=amount,
                converted_amount=amount,
                rate=1.0,
                inverse_rate=1.0,
                timestamp=utcnow(),
                source=QuoteSource.CACHE,
            )

        resolved = await self._resolve(src, dst)
        return ConversionResult(
            from_currency=src,
            to_currency=dst,
            amount=amount,
            converted_amount=amount * resolved.rate,
            rate=resolved.rate,
            inverse_rate=1 / resolved.rate,
            timestamp=resolved.observed_at,
            source=resolved.source,
        )

    async def get_rate(self, from_currency: str, to_currency: str) -> float:
        """Units of ``to_currency`` per one ``from_currency``."""
        src, dst = from_currency.upper(), to_currency.upper()
        if src == dst:
            return 1.0
        return (await self._resolve(src, dst)).rate

    async def get_multiple_rates(
        self, from_currency: str, targets: list[str]
    ) -> dict[str, float]:
        """Rates from one base to many targets with a single upstream call.

        Cached targets are answered directly. All remaining fiat targets go
        upstream together; anything the upstream cannot answer (or every
        target, if the call fails) falls back to the static table. Targets
        with no rate anywhere are omitted.
        """
        base = from_currency.upper()
        results: dict[str, float] = {}
        pending: list[str] = []

        for target in dict.fromkeys(t.upper() for t in targets):
            if target == base:
                results[target] = 1.0
                continue
            cached = self._cache_resolver.lookup(base, target)
            if cached is not None:
                results[target] = cached.rate
            else:
                pending.append(target)

        if not pending:
            return results

        live = await self._live_resolver.resolve_many(base, pending)
        for target in pending:
            resolved = live.get(target) or await self._fallback_resolver.resolve(
                base, target
            )
            if resolved is not None:
                results[target] = resolved.rate
            else:
                logger.warning("No rate available for %s -> %s", base, target)

        return results

    def get_cached_rate(
        self, from_currency: str, to_currency: str
    ) -> ExchangeRateEntry | None:
        """Fresh cached entry for the pair, without touching any source."""
        return self._cache.get(from_currency, to_currency)

    # --- Display ---

    def format_amount(
        self, amount: float, currency: str, locale: str | None = None
    ) -> str:
        """Locale-aware currency string, e.g. ``$1,234.50`` for en-US.

        Codes Babel does not know (BTC, ETH, ...) and unknown locales fall
        back to the display symbol followed by a two-decimal number.
        """
        code = currency.upper()
        try:
            loc: Locale | None = Locale.parse((locale or self._default_locale).replace("-", "_"))
        except (UnknownLocaleError, ValueError):
            loc = None

        if loc is not None and is_currency(code, loc):
            return format_currency(amount, code, locale=loc)

        symbol = CURRENCY_SYMBOLS.get(code, code)
        if loc is not None:
            number = format_decimal(amount, format="#,##0.00", locale=loc)
        else:
            number = f"{amount:,.2f}"
        return f"{symbol}{number}"

    def get_currency_info(self, code: str) -> CurrencyInfo:
        upper = code.upper()
        return CurrencyInfo(
            code=upper,
            name=CURRENCY_NAMES.get(upper, upper),
            symbol=CURRENCY_SYMBOLS.get(upper, upper),
            is_crypto=is_crypto(upper),
            is_metal=is_metal(upper),
        )

    async def get_supported_currencies(self) -> list[str]:
        """Live fiat list, or the fallback table's codes if the source fails."""
        try:
            currencies = await self._frankfurter.get_currencies()
        except SourceError as e:
            logger.warning("Could not load currency list, using fallback codes: %s", e)
            return list(FALLBACK_RATES)
        return list(currencies)

    def is_supported(self, code: str) -> bool:
        upper = code.upper()
        if upper in FALLBACK_RATES:
            return True
        return len(upper) == 3 and upper.isalpha() and is_fiat(upper)

    # --- Maintenance ---

    def clear_cache(self) -> None:
        """Drop every cached rate here and in the Frankfurter client."""
        self._cache.clear()
        self._frankfurter.clear_cache()

    def get_cache_stats(self) -> CacheStats:
        entries = [
            CacheEntryStats(from_currency=src, to_currency=dst, age_ms=age * 1000)
            for src, dst, age in self._cache.ages()
        ]
        return CacheStats(size=len(entries), entries=entries)

    async def health_check(self) -> ConverterHealth:
        frankfurter = await self._frankfurter.health_check()
        return ConverterHealth(
            healthy=frankfurter.healthy,
            frankfurter=frankfurter,
            cache_size=len(self._cache),
        )
