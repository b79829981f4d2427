"""Integration test fixtures: real SQLite on disk, mocked upstreams."""

from __future__ import annotations

from pathlib import Path

import pytest

from wealthfeed.core.config import StorageConfig, WealthfeedConfig
from wealthfeed.core.models import Account, AccountType, CryptoHolding, DataSource, StockHolding
from wealthfeed.services import MarketDataServices, build_services

HOUSEHOLD = "household-1"


@pytest.fixture
def integration_config(tmp_path: Path) -> WealthfeedConfig:
    return WealthfeedConfig(
        storage=StorageConfig(sqlite_path=str(tmp_path / "integration.db"))
    )


@pytest.fixture
async def services(integration_config: WealthfeedConfig) -> MarketDataServices:
    """Fully wired services over an on-disk database."""
    built = await build_services(integration_config)
    yield built
    await built.aclose()


@pytest.fixture
async def household(services: MarketDataServices) -> MarketDataServices:
    """One household with two stock accounts, one crypto account and its sources."""
    store = services.store
    for account_id, symbol, shares in (("brokerage", "AAPL", 10), ("ira", "VTI", 4)):
        await store.save_account(
            Account(
                id=account_id,
                household_id=HOUSEHOLD,
                name=account_id.title(),
                type=AccountType.STOCK.value,
            )
        )
        await store.save_stock_holding(
            StockHolding(account_id=account_id, symbol=symbol, shares=shares)
        )

    await store.save_account(
        Account(
            id="cold-wallet",
            household_id=HOUSEHOLD,
            name="Cold wallet",
            type=AccountType.CRYPTO.value,
        )
    )
    await store.save_crypto_holding(
        CryptoHolding(
            account_id="cold-wallet", symbol="BTC", holdings=0.25, coingecko_id="bitcoin"
        )
    )

    for provider, kind in (
        ("yahoo_finance", "stock"),
        ("coingecko", "crypto"),
        ("frankfurter", "currency"),
    ):
        await store.save_data_source(
            DataSource(household_id=HOUSEHOLD, type=kind, provider=provider)
        )
    return services
