"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wealthfeed.api.deps import AppState, api_key_middleware
from wealthfeed.api.routes import router
from wealthfeed.core.config import WealthfeedConfig, configure_logging, load_config
from wealthfeed.core.exceptions import (
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
from wealthfeed.services import build_services

# Most specific class first; lookup walks the exception's MRO.
STATUS_MAP: dict[type[WealthfeedError], int] = {
    NotFoundError: 404,
    RateLimitError: 429,
    SourceTimeoutError: 504,
    UpstreamError: 502,
    SourceError: 502,
    ConversionUnavailableError: 400,
    ConfigError: 400,
    StorageError: 503,
}


def status_for(exc: WealthfeedError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_MAP:
            return STATUS_MAP[cls]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state._pending_config or load_config()
    configure_logging(config.logging)
    services = await build_services(config)

    app.state.app_state = AppState(config=config, services=services)

    yield

    await services.aclose()


def create_app(config: WealthfeedConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    import wealthfeed

    app = FastAPI(
        title="wealthfeed API",
        description="Exchange rates and market prices for household accounts",
        version=wealthfeed.__version__,
        lifespan=lifespan,
    )

    # Stash config so lifespan can retrieve it
    app.state._pending_config = config

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Optional API key middleware
    if config and config.api.api_key:
        app.middleware("http")(api_key_middleware)

    app.include_router(router, prefix="/api")

    # Exception handlers
    @app.exception_handler(WealthfeedError)
    async def wealthfeed_exception_handler(request: Request, exc: WealthfeedError):
        headers = {}
        if isinstance(exc, RateLimitError) and exc.retry_after_ms is not None:
            headers["Retry-After"] = str(max(1, round(exc.retry_after_ms / 1000)))
        return JSONResponse(
            status_code=status_for(exc),
            content={"error": type(exc).__name__, "detail": str(exc)},
            headers=headers,
        )

    return app
