"""wealthfeed.sources: Upstream market-data clients."""

from wealthfeed.sources.base import SourceClient
from wealthfeed.sources.coingecko import CoinGeckoClient
from wealthfeed.sources.frankfurter import FrankfurterClient
from wealthfeed.sources.metals import MetalsDevClient, convert_weight, resolve_metal
from wealthfeed.sources.yahoo import YahooChartAdapter, YahooFinanceClient

__all__ = [
    "SourceClient",
    "CoinGeckoClient",
    "FrankfurterClient",
    "MetalsDevClient",
    "YahooChartAdapter",
    "YahooFinanceClient",
    "convert_weight",
    "resolve_metal",
]
