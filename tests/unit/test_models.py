"""Tests for wealthfeed.core.models."""

from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError

from wealthfeed.core.models import (
    ExchangeRateEntry,
    PriceBar,
    PriceQuote,
    PriceRefreshResult,
    RefreshResult,
    StockHolding,
    ValuationRecord,
    as_float,
    utcnow,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)


class TestPriceQuote:
    def test_frozen(self):
        quote = PriceQuote(instrument_id="AAPL", price=1.0, currency="USD", observed_at=NOW)
        with pytest.raises(ValidationError):
            quote.price = 2.0

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError, match="price must be >= 0"):
            PriceQuote(instrument_id="AAPL", price=-1.0, currency="USD", observed_at=NOW)


class TestExchangeRateEntry:
    @pytest.mark.parametrize("rate", [0.0, -0.5])
    def test_non_positive_rate_rejected(self, rate):
        with pytest.raises(ValidationError):
            ExchangeRateEntry(from_currency="USD", to_currency="EUR", rate=rate, observed_at=NOW)


class TestPriceBar:
    def test_high_below_low(self):
        with pytest.raises(ValidationError, match="high"):
            PriceBar(symbol="X", date=date(2024, 1, 2), open=1, high=1, low=2, close=1, volume=0)


class TestHoldings:
    def test_symbol_normalised(self):
        assert StockHolding(account_id="a", symbol=" vti ", shares=1).symbol == "VTI"

    def test_valuation_is_frozen(self):
        record = ValuationRecord(account_id="a", date=date(2024, 1, 2), value=1.0, currency="USD")
        with pytest.raises(ValidationError):
            record.value = 2.0


class TestRefreshResults:
    def test_combined_totals(self):
        combined = PriceRefreshResult(
            stocks=RefreshResult(updated=2, errors=["No price found for ZZZZ"]),
            crypto=RefreshResult(updated=1, errors=["No price found for X (x)"]),
        )
        assert combined.updated == 3
        assert combined.errors == ["No price found for ZZZZ", "No price found for X (x)"]


class TestHelpers:
    @pytest.mark.parametrize(
        "value,expected", [(1, 1.0), ("2.5", 2.5), (None, None), ("n/a", None), ({}, None)]
    )
    def test_as_float(self, value, expected):
        assert as_float(value) == expected

    def test_utcnow_is_aware(self):
        assert utcnow().tzinfo is UTC
