"""Daily exchange-rate sync from Frankfurter into the ``exchange_rates`` table."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, time, timedelta

from wealthfeed.core.exceptions import SourceError, StorageError
from wealthfeed.core.models import ExchangeRateRecord, ExchangeRateSyncResult, Provider, utcnow
from wealthfeed.refresh.store import AccountStore
from wealthfeed.sources.frankfurter import FrankfurterClient

logger = logging.getLogger(__name__)

MAJOR_CURRENCIES: tuple[str, ...] = (
    "USD", "EUR", "GBP", "AUD", "CAD", "JPY", "CHF", "NZD", "INR", "CNY",
)

SYNC_INTERVAL = timedelta(hours=24)


class ExchangeRateSync:
    """Persists forward and inverse rates for the major currencies.

    A rate observed within 24 hours of an existing row for the same pair
    replaces that row; otherwise a new row is inserted.
    """

    def __init__(
        self,
        store: AccountStore,
        frankfurter: FrankfurterClient,
        base_currency: str = "USD",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._frankfurter = frankfurter
        self._clock = clock
        self._base_currency = base_currency.upper()

    async def sync_exchange_rates(
        self, base_currency: str | None = None, targets: list[str] | None = None
    ) -> ExchangeRateSyncResult:
        """Fetch and persist the latest rates. Never raises.

        ``base_currency`` defaults to the base this sync was configured with.
        """
        base = (base_currency or self._base_currency).upper()
        currencies = [t.upper() for t in targets] if targets else [
            c for c in MAJOR_CURRENCIES if c != base
        ]
        inserted = updated = 0
        errors: list[str] = []

        try:
            logger.info("Syncing exchange rates for %s", base)
            response = await self._frankfurter.get_latest_rates(base, currencies)
            observed_at = datetime.combine(response.date, time.min, tzinfo=UTC)

            records = [
                ExchangeRateRecord(
                    from_currency=base, to_currency=code, rate=rate, date=observed_at
                )
                for code, rate in response.rates.items()
                if rate > 0
            ]
            records += [
                ExchangeRateRecord(
                    from_currency=r.to_currency,
                    to_currency=r.from_currency,
                    rate=1 / r.rate,
                    date=observed_at,
                )
                for r in records
            ]

            for record in records:
                try:
                    existing = await self._store.find_exchange_rate(
                        record.from_currency,
                        record.to_currency,
                        since=record.date - SYNC_INTERVAL,
                    )
                    if existing is not None and existing.id is not None:
                        await self._store.update_exchange_rate(
                            existing.id, record.rate, record.date
                        )
                        updated += 1
                    else:
                        await self._store.save_exchange_rate(record)
                        inserted += 1
                except StorageError as e:
                    errors.append(
                        f"Failed to save {record.from_currency}->{record.to_currency}: {e}"
                    )

            await self._touch_sources()
        except Exception as e:
            logger.error("Exchange rate sync failed: %s", e)
            errors.append(str(e))
            return ExchangeRateSyncResult(
                success=False, inserted=inserted, updated=updated, errors=errors
            )

        logger.info(
            "Exchange rate sync complete: %d inserted, %d updated", inserted, updated
        )
        return ExchangeRateSyncResult(
            success=not errors, inserted=inserted, updated=updated, errors=errors
        )

    async def _touch_sources(self) -> None:
        try:
            await self._store.touch_data_source(
                None, Provider.FRANKFURTER.value, self._clock()
            )
        except StorageError as e:
            logger.warning("Could not stamp frankfurter sync time: %s", e)

    async def get_exchange_rate(
        self, from_currency: str, to_currency: str, max_age_hours: float = 24
    ) -> float | None:
        """Persisted rate if fresh enough, else a live lookup that is stored."""
        src, dst = from_currency.upper(), to_currency.upper()
        if src == dst:
            return 1.0

        now = self._clock()
        cached = await self._store.find_exchange_rate(
            src, dst, since=now - timedelta(hours=max_age_hours)
        )
        if cached is not None:
            return cached.rate

        try:
            rate = await self._frankfurter.get_rate(src, dst)
        except SourceError as e:
            logger.warning("Failed to fetch exchange rate %s -> %s: %s", src, dst, e)
            return None

        await self._store.save_exchange_rate(
            ExchangeRateRecord(from_currency=src, to_currency=dst, rate=rate, date=now)
        )
        return rate

    async def should_sync(self) -> bool:
        """True when Frankfurter has not been synced in the last 24 hours."""
        try:
            last = await self._store.last_provider_sync(Provider.FRANKFURTER.value)
        except StorageError:
            return True
        if last is None:
            return True
        return self._clock() - last > SYNC_INTERVAL
