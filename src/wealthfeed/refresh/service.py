"""Price refresh: re-value every active stock and crypto account.

One pass per account type loads the household's active accounts, fetches
their detail rows concurrently, asks the source for all identifiers in a
single batched request and writes back price, balance and one valuation
row per quoted account. Unquoted accounts are reported and left untouched.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date

from wealthfeed.core.models import (
    AccountType,
    CryptoHolding,
    PriceRefreshResult,
    Provider,
    RefreshResult,
    RefreshStatus,
    StockHolding,
    ValuationRecord,
    ValuationSource,
    utcnow,
)
from wealthfeed.refresh.store import AccountStore, PriceUpdate
from wealthfeed.sources.coingecko import CoinGeckoClient
from wealthfeed.sources.yahoo import YahooFinanceClient

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return utcnow().date()


class PriceRefreshService:
    """Refreshes account balances from live stock and crypto prices.

    Parameters
    ----------
    store : AccountStore
        Account, holding and valuation persistence.
    stocks : YahooFinanceClient
        Stock quote source.
    crypto : CoinGeckoClient
        Crypto quote source.
    vs_currency : str
        Quote currency for crypto prices (CoinGecko ``vs_currencies``).
    today : callable, optional
        Returns the valuation date; defaults to the current UTC date.

    Notes
    -----
    None of the refresh methods raise. A failure that aborts a whole pass is
    reported as ``updated=0`` with the exception message as the only error.
    """

    def __init__(
        self,
        store: AccountStore,
        stocks: YahooFinanceClient,
        crypto: CoinGeckoClient,
        vs_currency: str = "usd",
        today: Callable[[], date] | None = None,
    ) -> None:
        self._store = store
        self._stocks = stocks
        self._crypto = crypto
        self._vs_currency = vs_currency.lower()
        self._today = today or _utc_today

    # --- Stocks ---

    async def refresh_stock_prices(self, household_id: str) -> RefreshResult:
        """Re-price every active stock account of the household."""
        try:
            return await self._refresh_stocks(household_id)
        except Exception as e:
            logger.exception("Stock price refresh failed for household %s", household_id)
            return RefreshResult(updated=0, errors=[str(e)])

    async def _refresh_stocks(self, household_id: str) -> RefreshResult:
        accounts = await self._store.list_active_accounts(household_id, AccountType.STOCK)
        if not accounts:
            return RefreshResult()

        holdings = await asyncio.gather(
            *(self._store.get_stock_holding(a.id) for a in accounts)
        )
        pairs: list[tuple[str, str, StockHolding]] = [
            (account.id, account.currency, holding)
            for account, holding in zip(accounts, holdings)
            if holding is not None
        ]
        if not pairs:
            return RefreshResult()

        symbols = list(dict.fromkeys(h.symbol for _, _, h in pairs))
        quotes = await self._stocks.get_quotes(symbols)
        prices = {
            q.symbol.upper(): q.regular_market_price
            for q in quotes
            if q.regular_market_price is not None
        }

        errors = [f"No price found for {s}" for s in symbols if s not in prices]
        now = utcnow()
        today = self._today()
        updates = [
            PriceUpdate(
                account_type=AccountType.STOCK,
                account_id=account_id,
                price=prices[holding.symbol],
                balance=holding.shares * prices[holding.symbol],
                valuation=ValuationRecord(
                    account_id=account_id,
                    date=today,
                    value=holding.shares * prices[holding.symbol],
                    currency=currency,
                    source=ValuationSource.API,
                    underlying_price=prices[holding.symbol],
                    quantity=holding.shares,
                    created_at=now,
                ),
                updated_at=now,
            )
            for account_id, currency, holding in pairs
            if holding.symbol in prices
        ]

        updated = await self._store.apply_price_updates(updates)
        await self._store.touch_data_source(household_id, Provider.YAHOO_FINANCE.value, now)
        logger.info(
            "Refreshed %d stock accounts for %s (%d missing)",
            updated,
            household_id,
            len(errors),
        )
        return RefreshResult(updated=updated, errors=errors, prices=prices)

    # --- Crypto ---

    async def refresh_crypto_prices(self, household_id: str) -> RefreshResult:
        """Re-price every active crypto account of the household."""
        try:
            return await self._refresh_crypto(household_id)
        except Exception as e:
            logger.exception("Crypto price refresh failed for household %s", household_id)
            return RefreshResult(updated=0, errors=[str(e)])

    async def _refresh_crypto(self, household_id: str) -> RefreshResult:
        accounts = await self._store.list_active_accounts(household_id, AccountType.CRYPTO)
        if not accounts:
            return RefreshResult()

        holdings = await asyncio.gather(
            *(self._store.get_crypto_holding(a.id) for a in accounts)
        )
        pairs: list[tuple[str, CryptoHolding]] = [
            (account.id, holding)
            for account, holding in zip(accounts, holdings)
            if holding is not None
        ]
        if not pairs:
            return RefreshResult()

        coin_ids = list(dict.fromkeys(_coin_id(h) for _, h in pairs))
        raw = await self._crypto.get_prices(coin_ids, [self._vs_currency])
        prices = {
            coin_id: values[self._vs_currency]
            for coin_id, values in raw.items()
            if self._vs_currency in values
        }

        errors: list[str] = []
        reported: set[str] = set()
        for _, holding in pairs:
            coin_id = _coin_id(holding)
            if coin_id not in prices and coin_id not in reported:
                reported.add(coin_id)
                errors.append(f"No price found for {holding.symbol} ({coin_id})")

        now = utcnow()
        today = self._today()
        currency = self._vs_currency.upper()
        updates = []
        symbol_prices: dict[str, float] = {}
        for account_id, holding in pairs:
            price = prices.get(_coin_id(holding))
            if price is None:
                continue
            symbol_prices[holding.symbol] = price
            value = holding.holdings * price
            updates.append(
                PriceUpdate(
                    account_type=AccountType.CRYPTO,
                    account_id=account_id,
                    price=price,
                    balance=value,
                    valuation=ValuationRecord(
                        account_id=account_id,
                        date=today,
                        value=value,
                        currency=currency,
                        source=ValuationSource.API,
                        underlying_price=price,
                        quantity=holding.holdings,
                        created_at=now,
                    ),
                    updated_at=now,
                )
            )

        updated = await self._store.apply_price_updates(updates)
        await self._store.touch_data_source(household_id, Provider.COINGECKO.value, now)
        logger.info(
            "Refreshed %d crypto accounts for %s (%d missing)",
            updated,
            household_id,
            len(errors),
        )
        return RefreshResult(updated=updated, errors=errors, prices=symbol_prices)

    # --- Combined ---

    async def refresh_all_prices(self, household_id: str) -> PriceRefreshResult:
        """Refresh stocks and crypto concurrently; each half fails on its own."""
        stocks, crypto = await asyncio.gather(
            self.refresh_stock_prices(household_id),
            self.refresh_crypto_prices(household_id),
        )
        return PriceRefreshResult(stocks=stocks, crypto=crypto)

    # --- Queries ---

    async def get_refresh_status(self, household_id: str) -> RefreshStatus:
        sources = await self._store.get_data_sources(household_id)
        return RefreshStatus(
            household_id=household_id,
            last_sync={s.provider: s.last_sync_at for s in sources},
        )

    async def get_latest_valuation(self, account_id: str) -> ValuationRecord | None:
        return await self._store.get_latest_valuation(account_id)

    async def get_valuation_history(
        self,
        account_id: str,
        start: date | None = None,
        end: date | None = None,
        limit: int | None = None,
    ) -> list[ValuationRecord]:
        return await self._store.get_valuation_history(account_id, start, end, limit)


def _coin_id(holding: CryptoHolding) -> str:
    return (holding.coingecko_id or holding.symbol).strip().lower()
