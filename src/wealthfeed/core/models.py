"""Pydantic data models: the system's type contracts."""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# --- Type Aliases ---

CurrencyCode = str
InstrumentId = str
AccountId = str
HouseholdId = str

# --- Enumerations ---


class QuoteSource(StrEnum):
    """Where a price or rate came from."""

    API = "api"
    CACHE = "cache"
    FALLBACK = "fallback"


class ValuationSource(StrEnum):
    """Provenance of a valuation history row."""

    MANUAL = "manual"
    API = "api"
    IMPORT = "import"
    CALCULATED = "calculated"


class AccountType(StrEnum):
    """Account types the aggregation layer values."""

    STOCK = "stock"
    CRYPTO = "crypto"


class Provider(StrEnum):
    """Upstream market-data providers."""

    YAHOO_FINANCE = "yahoo_finance"
    COINGECKO = "coingecko"
    FRANKFURTER = "frankfurter"
    METALS_DEV = "metals_dev"


class MetalType(StrEnum):
    """Precious metals quoted by metals.dev."""

    GOLD = "gold"
    SILVER = "silver"
    PLATINUM = "platinum"
    PALLADIUM = "palladium"


class WeightUnit(StrEnum):
    """Weight units accepted by metals.dev."""

    GRAM = "g"
    TROY_OUNCE = "oz"
    KILOGRAM = "kg"
    POUND = "lb"


# --- Prices & Rates ---


class PriceQuote(BaseModel):
    """A single observed price for one instrument in one currency.

    Quotes are immutable; a newer observation supersedes an older one.
    """

    model_config = ConfigDict(frozen=True)

    instrument_id: InstrumentId
    price: float
    currency: CurrencyCode
    observed_at: datetime
    source: QuoteSource = QuoteSource.API

    @field_validator("price")
    @classmethod
    def price_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"price must be >= 0, got {v}")
        return v


class ExchangeRateEntry(BaseModel):
    """A directional rate: one unit of from_currency buys `rate` to_currency."""

    model_config = ConfigDict(frozen=True)

    from_currency: CurrencyCode
    to_currency: CurrencyCode
    rate: float
    observed_at: datetime

    @field_validator("rate")
    @classmethod
    def rate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"rate must be > 0, got {v}")
        return v


class ConversionResult(BaseModel):
    """Outcome of CurrencyConverter.convert()."""

    model_config = ConfigDict(frozen=True)

    from_currency: CurrencyCode
    to_currency: CurrencyCode
    amount: float
    converted_amount: float
    rate: float
    inverse_rate: float
    timestamp: datetime
    source: QuoteSource


class CurrencyInfo(BaseModel):
    """Display metadata for a currency, crypto asset or metal code."""

    model_config = ConfigDict(frozen=True)

    code: CurrencyCode
    name: str
    symbol: str
    is_crypto: bool = False
    is_metal: bool = False


class SearchResult(BaseModel):
    """One autocomplete hit from a source's search endpoint."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    id: str | None = None
    exchange: str | None = None
    type: str | None = None


class HealthStatus(BaseModel):
    """Result of a lightweight upstream probe."""

    model_config = ConfigDict(frozen=True)

    healthy: bool
    latency_ms: float | None = None
    error: str | None = None


class CacheEntryStats(BaseModel):
    """Age of one cached rate."""

    model_config = ConfigDict(frozen=True)

    from_currency: CurrencyCode
    to_currency: CurrencyCode
    age_ms: float


class CacheStats(BaseModel):
    """Snapshot of the converter's rate cache."""

    model_config = ConfigDict(frozen=True)

    size: int
    entries: list[CacheEntryStats] = Field(default_factory=list)


class ConverterHealth(BaseModel):
    """Converter health: live fiat source plus cache size."""

    model_config = ConfigDict(frozen=True)

    healthy: bool
    frankfurter: HealthStatus
    cache_size: int


class PriceBar(BaseModel):
    """A single OHLCV price bar from a historical chart."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int
    adj_close: float | None = None
    source: str = "unknown"

    @field_validator("volume")
    @classmethod
    def volume_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"volume must be >= 0, got {v}")
        return v

    @model_validator(mode="after")
    def high_gte_low(self) -> PriceBar:
        if self.high < self.low:
            raise ValueError(
                f"high ({self.high}) must be >= low ({self.low})"
            )
        return self


# --- Accounts & Holdings ---


class Account(BaseModel):
    """A household account. The aggregation layer only writes the balance."""

    id: AccountId
    household_id: HouseholdId
    name: str
    type: str
    currency: CurrencyCode = "USD"
    current_balance: float = 0.0
    is_active: bool = True
    updated_at: datetime | None = None


class StockHolding(BaseModel):
    """Detail row for a stock/brokerage account."""

    account_id: AccountId
    symbol: str
    shares: float
    exchange: str | None = None
    security_name: str | None = None
    current_price: float | None = None
    price_updated_at: datetime | None = None

    @field_validator("symbol")
    @classmethod
    def symbol_upper(cls, v: str) -> str:
        return v.strip().upper()


class CryptoHolding(BaseModel):
    """Detail row for a crypto wallet account."""

    account_id: AccountId
    symbol: str
    holdings: float
    name: str | None = None
    coingecko_id: str | None = None
    current_price: float | None = None
    price_updated_at: datetime | None = None


class ValuationRecord(BaseModel):
    """One append-only point of an account's valuation history.

    Several rows may share (account_id, date); readers take the latest.
    """

    model_config = ConfigDict(frozen=True)

    account_id: AccountId
    date: date
    value: float
    currency: CurrencyCode
    source: ValuationSource = ValuationSource.API
    underlying_price: float | None = None
    quantity: float | None = None
    id: int | None = None
    created_at: datetime | None = None


class DataSource(BaseModel):
    """A household's configured market-data provider."""

    household_id: HouseholdId
    type: str
    provider: str
    is_enabled: bool = True
    last_sync_at: datetime | None = None


class ExchangeRateRecord(BaseModel):
    """A persisted exchange rate written by the sync job."""

    model_config = ConfigDict(frozen=True)

    from_currency: CurrencyCode
    to_currency: CurrencyCode
    rate: float
    date: datetime
    source: str = Provider.FRANKFURTER.value
    id: int | None = None


# --- Refresh Results ---


class RefreshResult(BaseModel):
    """Outcome of refreshing one account type for one household."""

    updated: int = 0
    errors: list[str] = Field(default_factory=list)
    prices: dict[str, float] = Field(default_factory=dict)


class PriceRefreshResult(BaseModel):
    """Outcome of refreshing stocks and crypto together."""

    stocks: RefreshResult
    crypto: RefreshResult

    @property
    def updated(self) -> int:
        return self.stocks.updated + self.crypto.updated

    @property
    def errors(self) -> list[str]:
        return [*self.stocks.errors, *self.crypto.errors]


class RefreshStatus(BaseModel):
    """Last successful sync time per provider for a household."""

    household_id: HouseholdId
    last_sync: dict[str, datetime | None] = Field(default_factory=dict)


class ExchangeRateSyncResult(BaseModel):
    """Outcome of one exchange-rate sync run."""

    success: bool
    inserted: int = 0
    updated: int = 0
    errors: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


def as_float(value: Any) -> float | None:
    """Coerce an upstream JSON number to float, passing through None."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
