"""Source-specific response models.

These mirror the parts of each upstream payload the system reads. They are
richer than ``PriceQuote`` and are returned by the client-specific methods
(``get_quotes``, ``get_latest_rates``, ``get_metal_price``, ...).
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from wealthfeed.core.models import MetalType, WeightUnit


class ChartRange(StrEnum):
    """Yahoo Finance chart ranges."""

    ONE_DAY = "1d"
    FIVE_DAYS = "5d"
    ONE_MONTH = "1mo"
    THREE_MONTHS = "3mo"
    SIX_MONTHS = "6mo"
    ONE_YEAR = "1y"
    FIVE_YEARS = "5y"
    MAX = "max"


class YahooQuote(BaseModel):
    """Quote fields taken from a Yahoo chart response's ``meta`` object."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    regular_market_price: float | None = None
    currency: str | None = None
    exchange: str | None = None
    quote_type: str | None = None
    short_name: str | None = None
    market_time: datetime | None = None


class CoinMarketData(BaseModel):
    """One row of CoinGecko's ``/coins/markets`` listing."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    symbol: str
    name: str
    current_price: float | None = None
    market_cap: float | None = None
    market_cap_rank: int | None = None
    total_volume: float | None = None
    price_change_percentage_24h: float | None = None
    last_updated: datetime | None = None


class CoinListEntry(BaseModel):
    """One row of CoinGecko's ``/coins/list``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    symbol: str
    name: str


class FrankfurterRates(BaseModel):
    """Frankfurter latest/historical response: rates relative to ``base``."""

    model_config = ConfigDict(frozen=True)

    amount: float = 1.0
    base: str
    date: date
    rates: dict[str, float] = Field(default_factory=dict)


class FrankfurterTimeSeries(BaseModel):
    """Frankfurter ``/{start}..{end}`` response keyed by ISO date."""

    model_config = ConfigDict(frozen=True)

    amount: float = 1.0
    base: str
    start_date: date
    end_date: date
    rates: dict[str, dict[str, float]] = Field(default_factory=dict)


class MetalPrice(BaseModel):
    """metals.dev single-metal spot price."""

    model_config = ConfigDict(frozen=True)

    metal: MetalType
    currency: str
    unit: WeightUnit
    price: float
    ask: float | None = None
    bid: float | None = None
    high: float | None = None
    low: float | None = None
    change: float | None = None
    change_percent: float | None = None
    timestamp: datetime | None = None


class MetalQuote(BaseModel):
    """Price fields for one metal inside a multi-metal response."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    price: float
    ask: float | None = None
    bid: float | None = None
    change: float | None = None
    change_percent: float | None = None


class MetalsSnapshot(BaseModel):
    """metals.dev multi-metal response: metal name -> quote."""

    model_config = ConfigDict(frozen=True)

    currency: str
    unit: WeightUnit
    metals: dict[str, MetalQuote] = Field(default_factory=dict)
    timestamp: datetime | None = None


class MetalsHistorical(BaseModel):
    """metals.dev historical series: ISO date -> price."""

    model_config = ConfigDict(frozen=True)

    metal: MetalType
    currency: str
    unit: WeightUnit
    rates: dict[str, float] = Field(default_factory=dict)


class MetalSymbol(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    symbol: str
    name: str
    unit: str | None = None


class MetalsSymbols(BaseModel):
    """metals.dev ``/symbols``: supported metals and currencies."""

    model_config = ConfigDict(frozen=True)

    metals: list[MetalSymbol] = Field(default_factory=list)
    currencies: list[str] = Field(default_factory=list)


class MetalValuation(BaseModel):
    """Value of a physical metal holding at the current spot price."""

    model_config = ConfigDict(frozen=True)

    metal: MetalType
    weight: float
    unit: WeightUnit
    currency: str
    price_per_unit: float
    total_value: float
    timestamp: datetime | None = None
