"""Tests for the rate-limit gate and shared HTTP error mapping."""

import asyncio
import time

import httpx
import pytest
import respx

from wealthfeed.core.exceptions import (
    AuthError,
    NotFoundError,
    RateLimitError,
    SourceTimeoutError,
    UpstreamError,
)
from wealthfeed.core.http import RequestGate, SourceHttpClient, parse_retry_after

BASE = "https://upstream.test"


class DummyClient(SourceHttpClient):
    source = "dummy"
    label = "Dummy"


class TestRequestGate:
    async def test_first_request_not_delayed(self):
        gate = RequestGate(5)
        started = time.monotonic()
        await gate.wait()
        assert time.monotonic() - started < 1

    async def test_second_request_waits_interval(self):
        gate = RequestGate(0.1)
        started = time.monotonic()
        await gate.wait()
        await gate.wait()
        assert time.monotonic() - started >= 0.1 * 0.95

    async def test_no_wait_after_interval(self):
        gate = RequestGate(0.05)
        await gate.wait()
        await asyncio.sleep(0.06)
        started = time.monotonic()
        await gate.wait()
        assert time.monotonic() - started < 0.04

    async def test_concurrent_callers_are_serialised(self):
        gate = RequestGate(0.05)
        stamps = []

        async def call():
            await gate.wait()
            stamps.append(time.monotonic())

        await asyncio.gather(call(), call(), call())
        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        assert all(gap >= 0.05 * 0.95 for gap in gaps)

    async def test_zero_interval_disables_gate(self):
        gate = RequestGate(0)
        started = time.monotonic()
        for _ in range(5):
            await gate.wait()
        assert time.monotonic() - started < 0.05

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            RequestGate(-1)


class TestParseRetryAfter:
    @pytest.mark.parametrize(
        "header,expected", [("30", 30_000), ("1.5", 1_500), (None, None), ("soon", None)]
    )
    def test_parse(self, header, expected):
        assert parse_retry_after(header) == expected


class TestStatusMapping:
    @pytest.fixture
    async def client(self):
        async with DummyClient(base_url=BASE, timeout=5) as c:
            yield c

    @respx.mock
    async def test_success_returns_json(self, client):
        respx.get(f"{BASE}/ok").mock(return_value=httpx.Response(200, json={"a": 1}))
        assert await client._get_json("/ok") == {"a": 1}

    @respx.mock
    async def test_429_maps_to_rate_limit(self, client):
        respx.get(f"{BASE}/busy").mock(
            return_value=httpx.Response(429, headers={"Retry-After": "12"})
        )
        with pytest.raises(RateLimitError) as exc_info:
            await client._get_json("/busy")
        assert exc_info.value.retry_after_ms == 12_000
        assert exc_info.value.context["source"] == "dummy"

    @respx.mock
    async def test_404_maps_to_not_found(self, client):
        respx.get(f"{BASE}/gone").mock(return_value=httpx.Response(404))
        with pytest.raises(NotFoundError) as exc_info:
            await client._get_json("/gone", instrument="XYZ")
        assert exc_info.value.context["instrument"] == "XYZ"

    @pytest.mark.parametrize("status", [401, 403])
    @respx.mock
    async def test_auth_failures(self, client, status):
        respx.get(f"{BASE}/secret").mock(return_value=httpx.Response(status))
        with pytest.raises(AuthError) as exc_info:
            await client._get_json("/secret")
        assert exc_info.value.status_code == status

    @respx.mock
    async def test_500_maps_to_upstream(self, client):
        respx.get(f"{BASE}/boom").mock(return_value=httpx.Response(500, text="oops"))
        with pytest.raises(UpstreamError) as exc_info:
            await client._get_json("/boom")
        assert exc_info.value.status_code == 500
        assert exc_info.value.context["response_body"] == "oops"

    @respx.mock
    async def test_malformed_json(self, client):
        respx.get(f"{BASE}/html").mock(return_value=httpx.Response(200, text="<html>"))
        with pytest.raises(UpstreamError, match="malformed JSON"):
            await client._get_json("/html")

    @respx.mock
    async def test_transport_error(self, client):
        respx.get(f"{BASE}/down").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(UpstreamError, match="request failed"):
            await client._get_json("/down")

    @respx.mock
    async def test_timeout(self, client):
        respx.get(f"{BASE}/slow").mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(SourceTimeoutError) as exc_info:
            await client._get_json("/slow")
        assert isinstance(exc_info.value, TimeoutError)

    @respx.mock
    async def test_gate_applied_to_requests(self):
        gate = RequestGate(0.2)
        respx.get(f"{BASE}/ok").mock(return_value=httpx.Response(200, json={}))
        async with DummyClient(base_url=BASE, timeout=5, gate=gate) as client:
            await client._get_json("/ok")
            started = time.monotonic()
            await client._get_json("/ok", gated=False)
            assert time.monotonic() - started < 0.2
            await client._get_json("/ok")
            assert time.monotonic() - started >= 0.2 * 0.9

    @respx.mock
    async def test_probe_reports_failure(self, client):
        respx.get(f"{BASE}/ping").mock(return_value=httpx.Response(503))
        status = await client._probe("/ping")
        assert status.healthy is False
        assert "503" in status.error
        assert status.latency_ms is not None
