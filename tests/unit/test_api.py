"""Tests for the FastAPI application."""

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from wealthfeed.api.app import STATUS_MAP, create_app, status_for
from wealthfeed.core.config import APIConfig, MetalsConfig, StorageConfig, WealthfeedConfig
from wealthfeed.core.exceptions import (
    AuthError,
    NotFoundError,
    RateLimitError,
    SourceTimeoutError,
    WealthfeedError,
)

LATEST = "https://api.frankfurter.app/latest"
CHART = "https://query1.finance.yahoo.com/v8/finance/chart"
SIMPLE_PRICE = "https://api.coingecko.com/api/v3/simple/price"
HOUSEHOLD = {"X-Household-Id": "household-1"}


@pytest.fixture
def config():
    return WealthfeedConfig(storage=StorageConfig(sqlite_path=":memory:"))


@pytest.fixture
def client(config):
    app = create_app(config)
    with TestClient(app) as c:
        yield c


def latest(base, rates):
    return httpx.Response(200, json={"amount": 1.0, "base": base, "date": "2024-03-15", "rates": rates})


class TestStatusMapping:
    @pytest.mark.parametrize(
        "exc,expected",
        [
            (NotFoundError("x"), 404),
            (RateLimitError("x"), 429),
            (SourceTimeoutError("x"), 504),
            (AuthError("x"), 502),
            (WealthfeedError("x"), 500),
        ],
    )
    def test_status_for(self, exc, expected):
        assert status_for(exc) == expected

    def test_every_mapped_class_is_a_wealthfeed_error(self):
        assert all(issubclass(cls, WealthfeedError) for cls in STATUS_MAP)


class TestHealth:
    def test_shallow(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["storage_ok"] is True
        assert data["metals_enabled"] is False
        assert data["sources"] == {}


class TestCurrency:
    def test_identity_conversion(self, client):
        resp = client.post(
            "/api/currency/convert",
            json={"amount": 42.0, "from_currency": "usd", "to_currency": "USD"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["converted_amount"] == 42.0
        assert data["rate"] == 1.0

    @respx.mock
    def test_live_conversion_then_cache_only(self, client):
        respx.get(url__startswith=LATEST).mock(return_value=latest("USD", {"EUR": 0.8}))
        resp = client.post(
            "/api/currency/convert",
            json={"amount": 10, "from_currency": "USD", "to_currency": "EUR"},
        )
        assert resp.json()["converted_amount"] == pytest.approx(8.0)
        assert resp.json()["source"] == "api"

        resp = client.post(
            "/api/currency/convert",
            json={"amount": 8, "from_currency": "EUR", "to_currency": "USD", "use_cache_only": True},
        )
        assert resp.status_code == 200
        assert resp.json()["source"] == "cache"
        assert resp.json()["converted_amount"] == pytest.approx(10.0)

    def test_cache_only_miss(self, client):
        resp = client.post(
            "/api/currency/convert",
            json={"amount": 1, "from_currency": "USD", "to_currency": "EUR", "use_cache_only": True},
        )
        assert resp.status_code == 404
        assert "USD -> EUR" in resp.json()["detail"]

    @respx.mock
    def test_unconvertible_pair(self, client):
        respx.get(url__startswith=LATEST).mock(return_value=httpx.Response(404))
        resp = client.post(
            "/api/currency/convert",
            json={"amount": 1, "from_currency": "ZZZ", "to_currency": "QQQ"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "ConversionUnavailableError"

    def test_negative_amount_rejected(self, client):
        resp = client.post(
            "/api/currency/convert",
            json={"amount": -1, "from_currency": "USD", "to_currency": "EUR"},
        )
        assert resp.status_code == 422

    @respx.mock
    def test_rates(self, client):
        respx.get(url__startswith=LATEST).mock(return_value=latest("USD", {"EUR": 0.9}))
        resp = client.get("/api/currency/rates", params={"base": "usd", "targets": "EUR,BTC"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["base"] == "USD"
        assert data["rates"]["EUR"] == 0.9
        assert "BTC" in data["rates"]

    def test_currency_info(self, client):
        resp = client.get("/api/currency/btc")
        data = resp.json()
        assert data["code"] == "BTC"
        assert data["is_crypto"] is True
        assert data["supported"] is True


class TestPrices:
    def test_refresh_requires_household(self, client):
        assert client.post("/api/prices/refresh").status_code == 422

    def test_refresh_with_no_accounts(self, client):
        resp = client.post("/api/prices/refresh", json={"type": "all"}, headers=HOUSEHOLD)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["updated"] == 0

    def test_refresh_rejects_unknown_type(self, client):
        resp = client.post("/api/prices/refresh", json={"type": "bonds"}, headers=HOUSEHOLD)
        assert resp.status_code == 422

    def test_refresh_status(self, client):
        resp = client.get("/api/prices/refresh", headers=HOUSEHOLD)
        assert resp.status_code == 200
        assert resp.json()["household_id"] == "household-1"

    def test_valuations_for_unknown_account(self, client):
        resp = client.get("/api/accounts/nope/valuations")
        assert resp.status_code == 200
        assert resp.json() == {"account_id": "nope", "latest": None, "items": []}


class TestQuotes:
    def test_empty_search(self, client):
        assert client.get("/api/stocks/search", params={"q": " "}).json() == []

    @respx.mock
    def test_stock_quote_upstream_error(self, client):
        respx.get(url__startswith=CHART).mock(return_value=httpx.Response(500))
        resp = client.get("/api/stocks/quote", params={"symbol": "AAPL"})
        assert resp.status_code == 502
        assert resp.json()["error"] == "UpstreamError"

    @respx.mock
    def test_crypto_rate_limited(self, client):
        respx.get(url__startswith=SIMPLE_PRICE).mock(
            return_value=httpx.Response(429, headers={"Retry-After": "30"})
        )
        resp = client.get("/api/crypto/quote", params={"id": "bitcoin"})
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "30"

    @respx.mock
    def test_crypto_unknown_coin(self, client):
        respx.get(url__startswith=SIMPLE_PRICE).mock(return_value=httpx.Response(200, json={}))
        resp = client.get("/api/crypto/quote", params={"id": "notacoin"})
        assert resp.status_code == 404

    def test_metals_disabled(self, client):
        resp = client.get("/api/metals/price", params={"metal": "gold"})
        assert resp.status_code == 503


class TestMetalsEnabled:
    @pytest.fixture
    def config(self):
        return WealthfeedConfig(
            storage=StorageConfig(sqlite_path=":memory:"),
            metals=MetalsConfig(api_key="k"),
        )

    @respx.mock
    def test_metal_price(self, client):
        respx.get(url__startswith="https://metals.dev/price").mock(
            return_value=httpx.Response(
                200, json={"metal": "gold", "currency": "USD", "unit": "oz", "price": 2300.0}
            )
        )
        resp = client.get("/api/metals/price", params={"metal": "XAU"})
        assert resp.status_code == 200
        assert resp.json()["price"] == 2300.0
        assert client.get("/api/health").json()["metals_enabled"] is True


class TestApiKey:
    @pytest.fixture
    def config(self):
        return WealthfeedConfig(
            storage=StorageConfig(sqlite_path=":memory:"),
            api=APIConfig(api_key="secret"),
        )

    def test_missing_key(self, client):
        resp = client.get("/api/currency/usd")
        assert resp.status_code == 401

    def test_valid_key(self, client):
        resp = client.get("/api/currency/usd", headers={"X-API-Key": "secret"})
        assert resp.status_code == 200

    def test_health_is_exempt(self, client):
        assert client.get("/api/health").status_code == 200
