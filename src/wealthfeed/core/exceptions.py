"""Custom exception hierarchy for wealthfeed."""

from typing import Any


class WealthfeedError(Exception):
    """Base exception for all wealthfeed errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(WealthfeedError):
    """Invalid or missing configuration.

    Raised by load_config() during startup and by clients constructed
    without a required setting. Should be treated as fatal.

    Context keys:
        field: str - the config field that failed validation
        value: Any - the invalid value (redacted for secrets)
    """


class StorageError(WealthfeedError):
    """Database operation failed.

    Policy: raise immediately. Balances and valuation history must not
    diverge silently.

    Context keys:
        operation: str - "insert", "update", "query", "migrate", etc.
        table: str - the table involved
    """


class ConversionUnavailableError(WealthfeedError):
    """No rate could be resolved for a currency pair.

    Raised by CurrencyConverter only after the cache, the live source and
    the static fallback table have all come up empty.

    Context keys:
        from_currency: str - source currency code
        to_currency: str - target currency code
    """

    def __init__(self, from_currency: str, to_currency: str):
        super().__init__(
            f"Conversion not available for {from_currency} -> {to_currency}",
            context={"from_currency": from_currency, "to_currency": to_currency},
        )
        self.from_currency = from_currency
        self.to_currency = to_currency


class SourceError(WealthfeedError):
    """An upstream market-data source failed.

    Policy: source clients raise, never substitute. Callers decide whether
    to fall back (the converter does, the refresh service records it).

    Context keys:
        source: str - "yahoo_finance", "coingecko", "frankfurter", "metals_dev"
        url: str - the URL that was being fetched
    """


class NotFoundError(SourceError):
    """The requested instrument or currency is unknown to the source.

    Context keys:
        instrument: str - the symbol, coin id, currency or metal requested
    """


class RateLimitError(SourceError):
    """The source rejected the request with HTTP 429.

    Policy: surface to the caller. Clients do not retry on their own.

    Context keys:
        retry_after_ms: int | None - milliseconds suggested by Retry-After
    """

    def __init__(
        self,
        message: str,
        retry_after_ms: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        ctx = dict(context or {})
        ctx.setdefault("retry_after_ms", retry_after_ms)
        super().__init__(message, context=ctx)
        self.retry_after_ms = retry_after_ms


class UpstreamError(SourceError):
    """Non-2xx response, transport failure or malformed body.

    Context keys:
        status_code: int | None - HTTP status code if a response arrived
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        ctx = dict(context or {})
        ctx.setdefault("status_code", status_code)
        super().__init__(message, context=ctx)
        self.status_code = status_code


class AuthError(UpstreamError):
    """Missing or rejected API key (HTTP 401/403)."""


class SourceTimeoutError(SourceError, TimeoutError):
    """The request exceeded the client's fixed deadline.

    Context keys:
        timeout: float - the deadline in seconds
    """
