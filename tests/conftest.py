"""Shared pytest fixtures for wealthfeed."""

import pytest

from wealthfeed.core.config import StorageConfig
from wealthfeed.core.models import (
    Account,
    AccountType,
    CryptoHolding,
    DataSource,
    StockHolding,
)
from wealthfeed.refresh.store import SqliteAccountStore

HOUSEHOLD = "household-1"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def store():
    """Create an in-memory SqliteAccountStore for testing."""
    s = SqliteAccountStore(StorageConfig(sqlite_path=":memory:"))
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def make_account():
    """Factory for Account with overridable defaults."""

    def _make(**overrides):
        defaults = dict(
            id="acct-1",
            household_id=HOUSEHOLD,
            name="Brokerage",
            type=AccountType.STOCK.value,
            currency="USD",
            current_balance=0.0,
        )
        defaults.update(overrides)
        return Account(**defaults)

    return _make


@pytest.fixture
def seed_stock(store, make_account):
    """Insert a stock account plus its holding row."""

    async def _seed(account_id: str, symbol: str, shares: float, **account_overrides):
        await store.save_account(
            make_account(id=account_id, name=f"{symbol} shares", **account_overrides)
        )
        await store.save_stock_holding(
            StockHolding(account_id=account_id, symbol=symbol, shares=shares)
        )

    return _seed


@pytest.fixture
def seed_crypto(store, make_account):
    """Insert a crypto account plus its holding row."""

    async def _seed(
        account_id: str,
        symbol: str,
        holdings: float,
        coingecko_id: str | None = None,
        **account_overrides,
    ):
        await store.save_account(
            make_account(
                id=account_id,
                name=f"{symbol} wallet",
                type=AccountType.CRYPTO.value,
                **account_overrides,
            )
        )
        await store.save_crypto_holding(
            CryptoHolding(
                account_id=account_id,
                symbol=symbol,
                holdings=holdings,
                coingecko_id=coingecko_id,
            )
        )

    return _seed


@pytest.fixture
async def data_sources(store):
    """Enabled yahoo, coingecko and frankfurter sources for the household."""
    for provider, kind in (
        ("yahoo_finance", "stock"),
        ("coingecko", "crypto"),
        ("frankfurter", "currency"),
    ):
        await store.save_data_source(
            DataSource(household_id=HOUSEHOLD, type=kind, provider=provider)
        )


@pytest.fixture
def yahoo_chart():
    """Build a Yahoo chart envelope around ``meta`` objects."""

    def _chart(*metas: dict) -> dict:
        return {
            "chart": {
                "result": [
                    {"meta": meta, "timestamp": [], "indicators": {}} for meta in metas
                ],
                "error": None,
            }
        }

    return _chart


@pytest.fixture
def yahoo_meta():
    """Build a Yahoo chart ``meta`` object for one symbol."""

    def _meta(symbol: str, price: float, currency: str = "USD") -> dict:
        return {
            "symbol": symbol,
            "regularMarketPrice": price,
            "currency": currency,
            "exchangeName": "NMS",
            "regularMarketTime": 1710504000,
        }

    return _meta
