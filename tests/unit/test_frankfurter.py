"""Tests for wealthfeed.sources.frankfurter (FrankfurterClient)."""

from datetime import date

import httpx
import pytest
import respx

from wealthfeed.core.config import FrankfurterConfig
from wealthfeed.core.exceptions import NotFoundError, UpstreamError
from wealthfeed.core.models import QuoteSource
from wealthfeed.sources.frankfurter import FrankfurterClient

BASE = "https://api.frankfurter.app"


@pytest.fixture
async def client(clock):
    async with FrankfurterClient(FrankfurterConfig(), clock=clock) as c:
        yield c


def rates_body(base="USD", rates=None, day="2024-03-15"):
    return {"amount": 1.0, "base": base, "date": day, "rates": rates or {}}


class TestLatestRates:
    @respx.mock
    async def test_params_and_parse(self, client):
        route = respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(rates={"EUR": 0.92, "GBP": 0.79}))
        )
        rates = await client.get_latest_rates("usd", ["GBP", "eur"])
        assert rates.base == "USD"
        assert rates.date == date(2024, 3, 15)
        assert rates.rates["GBP"] == 0.79
        params = route.calls.last.request.url.params
        assert params["from"] == "USD"
        assert params["to"] == "EUR,GBP"

    @respx.mock
    async def test_cached_by_sorted_symbol_set(self, client):
        route = respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(rates={"EUR": 0.92, "GBP": 0.79}))
        )
        await client.get_latest_rates("USD", ["EUR", "GBP"])
        await client.get_latest_rates("USD", ["GBP", "EUR"])
        assert route.call_count == 1

    @respx.mock
    async def test_cache_expires_after_a_day(self, client, clock):
        route = respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(rates={"EUR": 0.92}))
        )
        await client.get_latest_rates("USD", ["EUR"])
        clock.advance(24 * 60 * 60 + 1)
        await client.get_latest_rates("USD", ["EUR"])
        assert route.call_count == 2

    @respx.mock
    async def test_clear_cache(self, client):
        route = respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(rates={"EUR": 0.92}))
        )
        await client.get_latest_rates("USD", ["EUR"])
        client.clear_cache()
        await client.get_latest_rates("USD", ["EUR"])
        assert route.call_count == 2

    @respx.mock
    async def test_unexpected_payload(self, client):
        respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json={"message": "not found"})
        )
        with pytest.raises(UpstreamError, match="unexpected rates payload"):
            await client.get_latest_rates("USD")


class TestRateLookups:
    @respx.mock
    async def test_get_rate(self, client):
        respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(rates={"JPY": 150.5}))
        )
        assert await client.get_rate("USD", "jpy") == 150.5

    @respx.mock
    async def test_get_rate_missing_target(self, client):
        respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(rates={}))
        )
        with pytest.raises(NotFoundError):
            await client.get_rate("USD", "XYZ")

    @respx.mock
    async def test_historical(self, client):
        route = respx.get(url__startswith=f"{BASE}/2024-01-02").mock(
            return_value=httpx.Response(
                200, json=rates_body(base="EUR", rates={"USD": 1.09}, day="2024-01-02")
            )
        )
        rates = await client.get_historical_rates(date(2024, 1, 2), "EUR", ["USD"])
        assert rates.rates == {"USD": 1.09}
        assert route.called

    @respx.mock
    async def test_time_series(self, client):
        respx.get(url__startswith=f"{BASE}/2024-01-02..2024-01-03").mock(
            return_value=httpx.Response(
                200,
                json={
                    "amount": 1.0,
                    "base": "EUR",
                    "start_date": "2024-01-02",
                    "end_date": "2024-01-03",
                    "rates": {"2024-01-02": {"USD": 1.09}, "2024-01-03": {"USD": 1.092}},
                },
            )
        )
        series = await client.get_time_series("EUR", date(2024, 1, 2), date(2024, 1, 3), ["USD"])
        assert series.rates["2024-01-03"]["USD"] == 1.092

    @respx.mock
    async def test_convert_sends_amount(self, client):
        route = respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(rates={"EUR": 92.0}))
        )
        result = await client.convert(100, "USD", ["EUR"])
        assert result.rates["EUR"] == 92.0
        assert route.calls.last.request.url.params["amount"] == "100"

    @respx.mock
    async def test_get_price_reports_cache_source(self, client):
        respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(base="GBP", rates={"USD": 1.27}))
        )
        first = await client.get_price("gbp", "usd")
        second = await client.get_price("GBP", "USD")
        assert first.source == QuoteSource.API
        assert second.source == QuoteSource.CACHE
        assert second.price == 1.27


class TestCurrencies:
    @respx.mock
    async def test_currencies_cached(self, client):
        route = respx.get(f"{BASE}/currencies").mock(
            return_value=httpx.Response(200, json={"EUR": "Euro", "USD": "United States Dollar"})
        )
        assert await client.get_currencies() == {"EUR": "Euro", "USD": "United States Dollar"}
        await client.get_currencies()
        assert route.call_count == 1

    @respx.mock
    async def test_search_matches_code_or_name(self, client):
        respx.get(f"{BASE}/currencies").mock(
            return_value=httpx.Response(
                200, json={"AUD": "Australian Dollar", "EUR": "Euro", "USD": "United States Dollar"}
            )
        )
        results = await client.search("dollar")
        assert [r.symbol for r in results] == ["AUD", "USD"]
        assert [r.symbol for r in await client.search("eur")] == ["EUR"]

    @respx.mock
    async def test_health_check(self, client):
        respx.get(url__startswith=f"{BASE}/latest").mock(
            return_value=httpx.Response(200, json=rates_body(base="EUR", rates={"USD": 1.09}))
        )
        assert (await client.health_check()).healthy
