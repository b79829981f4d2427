"""Yahoo Finance stock quote client: direct HTTP implementation.

Uses the unauthenticated ``/v8/finance/chart/`` endpoint for quotes and
history and ``/v1/finance/search`` for symbol lookup. Several symbols may be
joined with commas to fetch all their quotes in one request.

Yahoo does not publish a rate limit; no self-throttle is applied, but an
HTTP 429 is surfaced as ``RateLimitError``.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import Any

import httpx

from wealthfeed.core.config import YahooConfig
from wealthfeed.core.exceptions import NotFoundError, UpstreamError
from wealthfeed.core.http import SourceHttpClient
from wealthfeed.core.models import (
    HealthStatus,
    PriceBar,
    PriceQuote,
    Provider,
    QuoteSource,
    SearchResult,
    utcnow,
)
from wealthfeed.sources.models import ChartRange, YahooQuote

logger = logging.getLogger(__name__)

_CHART_PATH = "/v8/finance/chart"
_SEARCH_PATH = "/v1/finance/search"
_HEALTH_SYMBOL = "AAPL"


class YahooChartAdapter:
    """Transforms a Yahoo Finance chart result into PriceBar records."""

    def adapt(self, raw_data: Any, symbol: str) -> list[PriceBar]:
        """Parse one ``chart.result[i]`` object.

        Parameters
        ----------
        raw_data : dict
            A single chart result with ``timestamp`` and ``indicators``.
        symbol : str
            The symbol the bars belong to.

        Returns
        -------
        list[PriceBar]
            Sorted by date ascending. Bars with null OHLC values are skipped.
        """
        timestamps: list[int] = raw_data.get("timestamp") or []
        if not timestamps:
            return []

        indicators = raw_data.get("indicators") or {}
        quote = (indicators.get("quote") or [{}])[0]
        adjclose_block = indicators.get("adjclose") or [{}]
        adj_closes: list[float | None] = adjclose_block[0].get("adjclose") or []

        columns = {
            name: quote.get(name) or [] for name in ("open", "high", "low", "close", "volume")
        }

        def at(values: list, i: int) -> Any:
            return values[i] if i < len(values) else None

        bars: list[PriceBar] = []
        for i, ts in enumerate(timestamps):
            o, h, lo, c = (at(columns[k], i) for k in ("open", "high", "low", "close"))
            if any(x is None for x in (o, h, lo, c)):
                continue
            volume = at(columns["volume"], i)
            adj = at(adj_closes, i)
            bars.append(
                PriceBar(
                    symbol=symbol,
                    date=datetime.fromtimestamp(ts, UTC).date(),
                    open=float(o),
                    high=float(h),
                    low=float(lo),
                    close=float(c),
                    volume=int(volume) if volume is not None else 0,
                    adj_close=float(adj) if adj is not None else None,
                    source=Provider.YAHOO_FINANCE.value,
                )
            )

        return sorted(bars, key=lambda b: b.date)


def _quote_from_meta(meta: dict[str, Any]) -> YahooQuote:
    market_time = meta.get("regularMarketTime")
    price = meta.get("regularMarketPrice")
    return YahooQuote(
        symbol=str(meta["symbol"]).upper(),
        regular_market_price=float(price) if price is not None else None,
        currency=meta.get("currency"),
        exchange=meta.get("fullExchangeName") or meta.get("exchangeName"),
        quote_type=meta.get("instrumentType"),
        short_name=meta.get("shortName") or meta.get("longName"),
        market_time=(
            datetime.fromtimestamp(market_time, UTC) if market_time else None
        ),
    )


class YahooFinanceClient(SourceHttpClient):
    """Stock quotes, history and symbol search from Yahoo Finance.

    Parameters
    ----------
    config : YahooConfig
        Base URL and request deadline (15 s by default).
    http_client : httpx.AsyncClient | None
        Shared HTTP client. One is created (and owned) if None.
    adapter : YahooChartAdapter | None
        Custom chart adapter. Uses default if None.
    """

    source = Provider.YAHOO_FINANCE.value
    label = "Yahoo Finance"

    def __init__(
        self,
        config: YahooConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        adapter: YahooChartAdapter | None = None,
    ) -> None:
        config = config or YahooConfig()
        super().__init__(
            base_url=config.base_url,
            timeout=config.timeout,
            http_client=http_client,
        )
        self._adapter = adapter or YahooChartAdapter()

    def _chart_results(self, data: Any, symbols: str) -> list[dict[str, Any]]:
        chart = (data or {}).get("chart") or {}
        error = chart.get("error")
        if error:
            description = error.get("description") or error.get("code")
            if error.get("code") == "Not Found":
                raise NotFoundError(
                    f"{self.label}: not found: {symbols}",
                    context={"source": self.source, "instrument": symbols},
                )
            raise UpstreamError(
                f"{self.label} API error: {description}",
                context={"source": self.source, "instrument": symbols},
            )
        return chart.get("result") or []

    async def get_quotes(self, symbols: list[str]) -> list[YahooQuote]:
        """Fetch current quotes for many symbols in one request.

        Symbols the upstream omits are simply absent from the result; the
        caller decides what a missing quote means.
        """
        wanted = list(dict.fromkeys(s.strip().upper() for s in symbols if s.strip()))
        if not wanted:
            return []

        joined = ",".join(wanted)
        data = await self._get_json(
            f"{_CHART_PATH}/{joined}",
            params={"interval": "1d", "range": "1d"},
            instrument=joined,
        )
        quotes = [
            _quote_from_meta(result["meta"])
            for result in self._chart_results(data, joined)
            if (result.get("meta") or {}).get("symbol")
        ]
        logger.debug("Yahoo returned %d/%d quotes", len(quotes), len(wanted))
        return quotes

    async def get_quote(self, symbol: str) -> YahooQuote:
        """Fetch the quote for a single symbol.

        Raises:
            NotFoundError: If Yahoo returns no result for the symbol.
        """
        quotes = await self.get_quotes([symbol])
        if not quotes:
            raise NotFoundError(
                f"{self.label}: not found: {symbol}",
                context={"source": self.source, "instrument": symbol},
            )
        return quotes[0]

    async def get_price(self, instrument_id: str, currency: str = "USD") -> PriceQuote:
        """Current price in the listing currency.

        Yahoo quotes in the exchange's currency; ``currency`` is only used
        when the upstream omits it.
        """
        quote = await self.get_quote(instrument_id)
        if quote.regular_market_price is None:
            raise NotFoundError(
                f"{self.label}: no market price for {instrument_id}",
                context={"source": self.source, "instrument": instrument_id},
            )
        return PriceQuote(
            instrument_id=quote.symbol,
            price=quote.regular_market_price,
            currency=(quote.currency or currency).upper(),
            observed_at=quote.market_time or utcnow(),
            source=QuoteSource.API,
        )

    async def get_chart(
        self,
        symbol: str,
        interval: str = "1d",
        range_: ChartRange | str = ChartRange.ONE_MONTH,
        start: date | None = None,
        end: date | None = None,
    ) -> dict[str, Any]:
        """Raw ``chart.result[0]`` for one symbol.

        An explicit ``start``/``end`` window takes precedence over ``range_``.
        """
        symbol = symbol.strip().upper()
        params: dict[str, str] = {"interval": interval}
        if start is not None:
            params["period1"] = str(_epoch(start))
            params["period2"] = str(_epoch(end or date.today()))
        else:
            params["range"] = str(range_)

        data = await self._get_json(
            f"{_CHART_PATH}/{symbol}", params=params, instrument=symbol
        )
        results = self._chart_results(data, symbol)
        if not results:
            raise NotFoundError(
                f"{self.label}: no chart data for {symbol}",
                context={"source": self.source, "instrument": symbol},
            )
        return results[0]

    async def get_history(
        self,
        symbol: str,
        start: date,
        end: date | None = None,
        interval: str = "1d",
    ) -> list[PriceBar]:
        """Daily (or other interval) OHLCV bars between two dates, inclusive."""
        end = end or date.today()
        raw = await self.get_chart(symbol, interval=interval, start=start, end=end)
        bars = self._adapter.adapt(raw, symbol.strip().upper())
        return [b for b in bars if start <= b.date <= end]

    async def search(self, query: str) -> list[SearchResult]:
        if not query.strip():
            return []
        data = await self._get_json(
            _SEARCH_PATH,
            params={"q": query, "quotesCount": 10, "newsCount": 0},
        )
        results: list[SearchResult] = []
        for item in (data or {}).get("quotes") or []:
            symbol = item.get("symbol")
            if not symbol:
                continue
            results.append(
                SearchResult(
                    symbol=symbol,
                    name=item.get("shortname") or item.get("longname") or symbol,
                    exchange=item.get("exchDisp") or item.get("exchange"),
                    type=item.get("typeDisp") or item.get("quoteType"),
                )
            )
        return results

    async def health_check(self) -> HealthStatus:
        return await self._probe(
            f"{_CHART_PATH}/{_HEALTH_SYMBOL}", params={"interval": "1d", "range": "1d"}
        )


def _epoch(day: date) -> int:
    return int(datetime.combine(day, datetime.min.time(), tzinfo=UTC).timestamp())
