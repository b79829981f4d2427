"""wealthfeed.core: Foundation types, config, caching, HTTP and exceptions."""

from wealthfeed.core.cache import RateCache, TTLCache
from wealthfeed.core.config import (
    APIConfig,
    CoinGeckoConfig,
    CurrencyConfig,
    FrankfurterConfig,
    LoggingConfig,
    MetalsConfig,
    RefreshConfig,
    StorageConfig,
    WealthfeedConfig,
    YahooConfig,
    configure_logging,
    load_config,
)
from wealthfeed.core.exceptions import (
    AuthError,
    ConfigError,
    ConversionUnavailableError,
    NotFoundError,
    RateLimitError,
    SourceError,
    SourceTimeoutError,
    StorageError,
    UpstreamError,
    WealthfeedError,
)
from wealthfeed.core.http import RequestGate, SourceHttpClient
from wealthfeed.core.models import (
    Account,
    AccountId,
    AccountType,
    ConversionResult,
    CryptoHolding,
    CurrencyCode,
    CurrencyInfo,
    DataSource,
    ExchangeRateEntry,
    ExchangeRateRecord,
    HouseholdId,
    InstrumentId,
    MetalType,
    PriceQuote,
    PriceRefreshResult,
    Provider,
    QuoteSource,
    RefreshResult,
    StockHolding,
    ValuationRecord,
    ValuationSource,
    WeightUnit,
)

__all__ = [
    # Type aliases
    "AccountId",
    "CurrencyCode",
    "HouseholdId",
    "InstrumentId",
    # Enums
    "AccountType",
    "MetalType",
    "Provider",
    "QuoteSource",
    "ValuationSource",
    "WeightUnit",
    # Models
    "Account",
    "ConversionResult",
    "CryptoHolding",
    "CurrencyInfo",
    "DataSource",
    "ExchangeRateEntry",
    "ExchangeRateRecord",
    "PriceQuote",
    "PriceRefreshResult",
    "RefreshResult",
    "StockHolding",
    "ValuationRecord",
    # Config
    "APIConfig",
    "CoinGeckoConfig",
    "CurrencyConfig",
    "FrankfurterConfig",
    "LoggingConfig",
    "MetalsConfig",
    "RefreshConfig",
    "StorageConfig",
    "WealthfeedConfig",
    "YahooConfig",
    "configure_logging",
    "load_config",
    # Infrastructure
    "RateCache",
    "RequestGate",
    "SourceHttpClient",
    "TTLCache",
    # Exceptions
    "AuthError",
    "ConfigError",
    "ConversionUnavailableError",
    "NotFoundError",
    "RateLimitError",
    "SourceError",
    "SourceTimeoutError",
    "StorageError",
    "UpstreamError",
    "WealthfeedError",
]
