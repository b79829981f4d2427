"""API-specific request/response schemas (Pydantic v2)."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from wealthfeed.core.models import (
    CurrencyInfo,
    HealthStatus,
    QuoteSource,
    RefreshResult,
    ValuationRecord,
)


# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str
    detail: str | None = None


# -- Health --


class HealthResponse(BaseModel):
    status: str
    version: str
    storage_ok: bool
    rate_cache_size: int
    metals_enabled: bool
    sources: dict[str, HealthStatus] = Field(default_factory=dict)


# -- Currency --


class ConvertRequest(BaseModel):
    """Body of ``POST /currency/convert``."""

    amount: float = Field(ge=0)
    from_currency: str = Field(min_length=3, max_length=5)
    to_currency: str = Field(min_length=3, max_length=5)
    use_cache_only: bool = False


class ConvertResponse(BaseModel):
    original_amount: float
    from_currency: str
    to_currency: str
    converted_amount: float
    rate: float
    inverse_rate: float
    source: QuoteSource
    timestamp: datetime


class RatesResponse(BaseModel):
    base: str
    rates: dict[str, float]


class CurrencyInfoResponse(CurrencyInfo):
    supported: bool


# -- Prices --


class RefreshRequest(BaseModel):
    type: Literal["stocks", "crypto", "all"] = "all"


class RefreshResponse(BaseModel):
    """Outcome of a manual price refresh."""

    success: bool
    updated: int
    stocks: RefreshResult
    crypto: RefreshResult
    errors: list[str] = Field(default_factory=list)
    timestamp: datetime


# -- Valuations --


class ValuationHistoryResponse(BaseModel):
    account_id: str
    latest: ValuationRecord | None = None
    items: list[ValuationRecord]
