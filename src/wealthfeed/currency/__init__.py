"""wealthfeed.currency: Conversion across fiat, crypto and metal codes."""

from wealthfeed.currency.converter import CurrencyConverter
from wealthfeed.currency.fallback import FALLBACK_RATES, get_fallback_rate
from wealthfeed.currency.resolvers import (
    CacheResolver,
    FallbackResolver,
    LiveResolver,
    RateResolver,
    ResolvedRate,
)

__all__ = [
    "CurrencyConverter",
    "FALLBACK_RATES",
    "get_fallback_rate",
    # Resolution chain
    "CacheResolver",
    "FallbackResolver",
    "LiveResolver",
    "RateResolver",
    "ResolvedRate",
]
