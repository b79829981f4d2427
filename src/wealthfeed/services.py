"""Service container: one long-lived instance of every client and service."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from wealthfeed.core.config import WealthfeedConfig
from wealthfeed.currency.converter import CurrencyConverter
from wealthfeed.jobs.rate_sync import ExchangeRateSync
from wealthfeed.refresh.service import PriceRefreshService
from wealthfeed.refresh.store import SqliteAccountStore, create_store
from wealthfeed.sources.base import SourceClient
from wealthfeed.sources.coingecko import CoinGeckoClient
from wealthfeed.sources.frankfurter import FrankfurterClient
from wealthfeed.sources.metals import MetalsDevClient
from wealthfeed.sources.yahoo import YahooFinanceClient

logger = logging.getLogger(__name__)


@dataclass
class MarketDataServices:
    """Everything the API and jobs need, built once per process."""

    config: WealthfeedConfig
    store: SqliteAccountStore
    yahoo: YahooFinanceClient
    coingecko: CoinGeckoClient
    frankfurter: FrankfurterClient
    metals: MetalsDevClient | None
    converter: CurrencyConverter
    refresh: PriceRefreshService
    rate_sync: ExchangeRateSync

    async def aclose(self) -> None:
        """Close every HTTP client, then the store."""
        clients: list[SourceClient] = [self.yahoo, self.coingecko, self.frankfurter]
        if self.metals is not None:
            clients.append(self.metals)
        for client in clients:
            await client.close()
        await self.store.close()


async def build_services(config: WealthfeedConfig) -> MarketDataServices:
    """Open the store and wire clients into the converter, refresh and sync."""
    store = await create_store(config.storage)

    yahoo = YahooFinanceClient(config.yahoo)
    coingecko = CoinGeckoClient(config.coingecko)
    frankfurter = FrankfurterClient(config.frankfurter)
    metals = MetalsDevClient(config.metals) if config.metals.api_key else None
    if metals is None:
        logger.info("No metals.dev API key configured; metal prices disabled")

    converter = CurrencyConverter(
        frankfurter,
        cache_ttl=config.currency.cache_ttl,
        default_locale=config.currency.default_locale,
    )
    refresh = PriceRefreshService(
        store, yahoo, coingecko, vs_currency=config.refresh.crypto_vs_currency
    )
    rate_sync = ExchangeRateSync(
        store, frankfurter, base_currency=config.refresh.sync_base_currency
    )

    return MarketDataServices(
        config=config,
        store=store,
        yahoo=yahoo,
        coingecko=coingecko,
        frankfurter=frankfurter,
        metals=metals,
        converter=converter,
        refresh=refresh,
        rate_sync=rate_sync,
    )
