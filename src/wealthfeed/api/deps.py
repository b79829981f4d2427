"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException, Request
from fastapi.responses import JSONResponse

from wealthfeed.core.config import WealthfeedConfig
from wealthfeed.currency.converter import CurrencyConverter
from wealthfeed.refresh.service import PriceRefreshService
from wealthfeed.services import MarketDataServices
from wealthfeed.sources.metals import MetalsDevClient


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: WealthfeedConfig
    services: MarketDataServices


def get_app_state(request: Request) -> AppState:
    """Dependency: retrieve AppState from the request."""
    return request.app.state.app_state


def get_services(request: Request) -> MarketDataServices:
    return request.app.state.app_state.services


def get_converter(request: Request) -> CurrencyConverter:
    return request.app.state.app_state.services.converter


def get_refresh_service(request: Request) -> PriceRefreshService:
    return request.app.state.app_state.services.refresh


def get_metals(request: Request) -> MetalsDevClient:
    """Dependency: the metals client, or 503 when no API key is configured."""
    metals = request.app.state.app_state.services.metals
    if metals is None:
        raise HTTPException(
            status_code=503, detail="Metal prices are not configured"
        )
    return metals


def get_household_id(
    x_household_id: str = Header(..., alias="X-Household-Id", min_length=1),
) -> str:
    """Dependency: household scope supplied by the authenticating proxy."""
    return x_household_id


EXEMPT_PATHS = {"/api/health"}


async def api_key_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware: validate X-API-Key header when authentication is enabled."""
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    config = request.app.state.app_state.config
    if config.api.api_key:
        api_key = request.headers.get("X-API-Key")
        if api_key != config.api.api_key:
            return JSONResponse(
                status_code=401,
                content={"error": "Unauthorized", "detail": "Invalid or missing API key"},
            )
    return await call_next(request)
