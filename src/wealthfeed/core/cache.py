"""In-memory TTL caches for source clients and the currency converter."""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable, Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar

from wealthfeed.core.models import ExchangeRateEntry, utcnow

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading at which it was stored."""

    data: V
    cached_at: float


class TTLCache(Generic[K, V]):
    """Mapping with per-entry expiry and lazy eviction.

    A stale entry is removed the first time a read finds it; there is no
    background sweeper. All methods are synchronous, so a single call is
    atomic with respect to other coroutines on the same loop.

    Parameters
    ----------
    ttl : float
        Entry lifetime in seconds.
    clock : callable
        Monotonic time source in seconds. Tests inject a fake clock.
    """

    def __init__(self, ttl: float, clock: Clock = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be > 0, got {ttl}")
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def now(self) -> float:
        return self._clock()

    def is_stale(self, entry: CacheEntry[V]) -> bool:
        return self._clock() - entry.cached_at > self._ttl

    def get_entry(self, key: K) -> CacheEntry[V] | None:
        """Return the fresh entry for key, evicting it if stale."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.is_stale(entry):
            del self._entries[key]
            return None
        return entry

    def get(self, key: K) -> V | None:
        entry = self.get_entry(key)
        return entry.data if entry is not None else None

    def set(self, key: K, value: V) -> None:
        self._entries[key] = CacheEntry(data=value, cached_at=self._clock())

    def set_many(self, items: Mapping[K, V]) -> None:
        """Store several entries under one timestamp."""
        now = self._clock()
        for key, value in items.items():
            self._entries[key] = CacheEntry(data=value, cached_at=now)

    def delete(self, key: K) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def items(self) -> Iterator[tuple[K, CacheEntry[V]]]:
        """Iterate all stored entries, stale ones included."""
        return iter(list(self._entries.items()))

    def age(self, entry: CacheEntry[V]) -> float:
        """Seconds since the entry was stored."""
        return self._clock() - entry.cached_at

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get_entry(key) is not None  # type: ignore[arg-type]


def rate_key(from_currency: str, to_currency: str) -> tuple[str, str]:
    """Normalised cache key for a currency pair."""
    return (from_currency.upper(), to_currency.upper())


class RateCache:
    """Directional exchange-rate cache that keeps pairs and inverses together.

    ``set_rate(A, B, r)`` stores (A, B) = r and (B, A) = 1 / r in one
    synchronous call, so no reader ever sees one direction without the other.
    Both directions share a timestamp and therefore expire together.
    """

    def __init__(self, ttl: float, clock: Clock = time.monotonic) -> None:
        self._cache: TTLCache[tuple[str, str], ExchangeRateEntry] = TTLCache(
            ttl, clock=clock
        )

    def get(self, from_currency: str, to_currency: str) -> ExchangeRateEntry | None:
        return self._cache.get(rate_key(from_currency, to_currency))

    def set_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: float,
        observed_at: datetime | None = None,
    ) -> ExchangeRateEntry:
        src, dst = rate_key(from_currency, to_currency)
        observed = observed_at or utcnow()
        forward = ExchangeRateEntry(
            from_currency=src, to_currency=dst, rate=rate, observed_at=observed
        )
        inverse = ExchangeRateEntry(
            from_currency=dst, to_currency=src, rate=1 / rate, observed_at=observed
        )
        self._cache.set_many({(src, dst): forward, (dst, src): inverse})
        return forward

    def clear(self) -> None:
        self._cache.clear()

    def ages(self) -> list[tuple[str, str, float]]:
        """(from, to, age in seconds) for every stored pair."""
        return [
            (key[0], key[1], self._cache.age(entry))
            for key, entry in self._cache.items()
        ]

    def __len__(self) -> int:
        return len(self._cache)
