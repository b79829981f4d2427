"""FastAPI route definitions for the wealthfeed API."""

from __future__ import annotations

import asyncio
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

import wealthfeed
from wealthfeed.api.deps import (
    get_converter,
    get_household_id,
    get_metals,
    get_refresh_service,
    get_services,
)
from wealthfeed.api.schemas import (
    ConvertRequest,
    ConvertResponse,
    CurrencyInfoResponse,
    HealthResponse,
    RatesResponse,
    RefreshRequest,
    RefreshResponse,
    ValuationHistoryResponse,
)
from wealthfeed.core.models import (
    MetalType,
    PriceQuote,
    QuoteSource,
    RefreshResult,
    RefreshStatus,
    SearchResult,
    WeightUnit,
    utcnow,
)
from wealthfeed.currency.converter import CurrencyConverter
from wealthfeed.jobs.rate_sync import MAJOR_CURRENCIES
from wealthfeed.refresh.service import PriceRefreshService
from wealthfeed.services import MarketDataServices
from wealthfeed.sources.base import SourceClient
from wealthfeed.sources.metals import MetalsDevClient
from wealthfeed.sources.models import MetalPrice

router = APIRouter()


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(
    deep: bool = Query(False, description="Also probe every upstream source"),
    services: MarketDataServices = Depends(get_services),
):
    """Service health; ``deep=true`` adds a probe of each upstream."""
    sources = {}
    if deep:
        clients: list[SourceClient] = [services.yahoo, services.coingecko, services.frankfurter]
        if services.metals is not None:
            clients.append(services.metals)
        statuses = await asyncio.gather(*(c.health_check() for c in clients))
        sources = {c.source: s for c, s in zip(clients, statuses)}

    storage_ok = await services.store.health_check()
    healthy = storage_ok and all(s.healthy for s in sources.values())
    return HealthResponse(
        status="ok" if healthy else "degraded",
        version=wealthfeed.__version__,
        storage_ok=storage_ok,
        rate_cache_size=services.converter.get_cache_stats().size,
        metals_enabled=services.metals is not None,
        sources=sources,
    )


# -- Currency --


@router.post("/currency/convert", response_model=ConvertResponse)
async def convert_currency(
    body: ConvertRequest,
    converter: CurrencyConverter = Depends(get_converter),
):
    """Convert an amount; with ``use_cache_only`` no upstream is consulted."""
    if body.use_cache_only and body.from_currency.upper() != body.to_currency.upper():
        cached = converter.get_cached_rate(body.from_currency, body.to_currency)
        if cached is None:
            raise HTTPException(
                status_code=404,
                detail=(
                    f"No cached rate for {body.from_currency.upper()} -> "
                    f"{body.to_currency.upper()}"
                ),
            )
        return ConvertResponse(
            original_amount=body.amount,
            from_currency=cached.from_currency,
            to_currency=cached.to_currency,
            converted_amount=body.amount * cached.rate,
            rate=cached.rate,
            inverse_rate=1 / cached.rate,
            source=QuoteSource.CACHE,
            timestamp=cached.observed_at,
        )

    result = await converter.convert(body.amount, body.from_currency, body.to_currency)
    return ConvertResponse(
        original_amount=result.amount,
        from_currency=result.from_currency,
        to_currency=result.to_currency,
        converted_amount=result.converted_amount,
        rate=result.rate,
        inverse_rate=result.inverse_rate,
        source=result.source,
        timestamp=result.timestamp,
    )


@router.get("/currency/rates", response_model=RatesResponse)
async def get_rates(
    base: str = Query("USD", min_length=3, max_length=5),
    targets: str | None = Query(None, description="Comma-separated codes"),
    converter: CurrencyConverter = Depends(get_converter),
):
    """Rates from ``base`` to each target; unresolvable targets are omitted."""
    codes = (
        [t.strip() for t in targets.split(",") if t.strip()]
        if targets
        else [c for c in MAJOR_CURRENCIES if c != base.upper()]
    )
    rates = await converter.get_multiple_rates(base, codes)
    return RatesResponse(base=base.upper(), rates=rates)


@router.get("/currency/{code}", response_model=CurrencyInfoResponse)
async def get_currency(
    code: str,
    converter: CurrencyConverter = Depends(get_converter),
):
    """Display metadata for a currency, crypto or metal code."""
    info = converter.get_currency_info(code)
    return CurrencyInfoResponse(**info.model_dump(), supported=converter.is_supported(code))


# -- Prices --


@router.post("/prices/refresh", response_model=RefreshResponse)
async def refresh_prices(
    body: RefreshRequest | None = None,
    household_id: str = Depends(get_household_id),
    refresh: PriceRefreshService = Depends(get_refresh_service),
):
    """Refresh live prices for the household's stock and/or crypto accounts."""
    kind = body.type if body else "all"
    if kind == "stocks":
        stocks, crypto = await refresh.refresh_stock_prices(household_id), RefreshResult()
    elif kind == "crypto":
        stocks, crypto = RefreshResult(), await refresh.refresh_crypto_prices(household_id)
    else:
        combined = await refresh.refresh_all_prices(household_id)
        stocks, crypto = combined.stocks, combined.crypto

    errors = [*stocks.errors, *crypto.errors]
    return RefreshResponse(
        success=not errors,
        updated=stocks.updated + crypto.updated,
        stocks=stocks,
        crypto=crypto,
        errors=errors,
        timestamp=utcnow(),
    )


@router.get("/prices/refresh", response_model=RefreshStatus)
async def refresh_status(
    household_id: str = Depends(get_household_id),
    refresh: PriceRefreshService = Depends(get_refresh_service),
):
    """Last sync time per provider for the household."""
    return await refresh.get_refresh_status(household_id)


# -- Stocks --


@router.get("/stocks/search", response_model=list[SearchResult])
async def search_stocks(
    q: str = Query("", description="Symbol or company name"),
    services: MarketDataServices = Depends(get_services),
):
    if not q.strip():
        return []
    return await services.yahoo.search(q.strip())


@router.get("/stocks/quote", response_model=PriceQuote)
async def stock_quote(
    symbol: str = Query(..., min_length=1),
    services: MarketDataServices = Depends(get_services),
):
    return await services.yahoo.get_price(symbol)


# -- Crypto --


@router.get("/crypto/search", response_model=list[SearchResult])
async def search_crypto(
    q: str = Query("", description="Coin name or symbol"),
    services: MarketDataServices = Depends(get_services),
):
    if not q.strip():
        return []
    return await services.coingecko.search(q.strip())


@router.get("/crypto/quote", response_model=PriceQuote)
async def crypto_quote(
    id: str = Query(..., min_length=1, description="CoinGecko coin id"),
    currency: str = Query("usd"),
    services: MarketDataServices = Depends(get_services),
):
    return await services.coingecko.get_price(id, currency)


# -- Metals --


@router.get("/metals/price", response_model=MetalPrice)
async def metal_price(
    metal: str = Query(MetalType.GOLD.value, description="Metal name or ISO code"),
    currency: str = Query("USD"),
    unit: WeightUnit = Query(WeightUnit.TROY_OUNCE),
    metals: MetalsDevClient = Depends(get_metals),
):
    return await metals.get_metal_price(metal, currency, unit)


# -- Valuations --


@router.get("/accounts/{account_id}/valuations", response_model=ValuationHistoryResponse)
async def account_valuations(
    account_id: str,
    start: date | None = Query(None),
    end: date | None = Query(None),
    limit: int | None = Query(None, ge=1, le=5000),
    refresh: PriceRefreshService = Depends(get_refresh_service),
):
    """Valuation history, oldest first, plus the most recent row."""
    items = await refresh.get_valuation_history(account_id, start, end, limit)
    latest = await refresh.get_latest_valuation(account_id)
    return ValuationHistoryResponse(account_id=account_id, latest=latest, items=items)
