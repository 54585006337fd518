"""Fetch a symbol's market data and build its metric snapshot."""

import asyncio
from datetime import datetime

from stockwatch.domain.interfaces.data_feed import PriceDataSource
from stockwatch.domain.models.indicators import MetricSnapshot
from stockwatch.domain.models.market import PriceSeries
from stockwatch.domain.rules import MIN_HISTORY_BARS
from stockwatch.domain.services.indicators import build_snapshot
from stockwatch.domain.services.validation import order_bars


async def load_series(
    source: PriceDataSource,
    symbol: str,
    history_bars: int = MIN_HISTORY_BARS,
) -> PriceSeries:
    """Fetch history and the latest quote, and merge them into one series.

    Both requests go out together. Any DataSourceError propagates to the
    caller, which decides whether the symbol is retried.

    Args:
        source: Price-data source
        symbol: Ticker symbol
        history_bars: Bars of history to request (never below MIN_HISTORY_BARS)

    Returns:
        PriceSeries with the quote spliced onto the end
    """
    bars, quote = await asyncio.gather(
        source.get_history(symbol, days=max(history_bars, MIN_HISTORY_BARS)),
        source.get_quote(symbol),
    )
    series = PriceSeries(symbol=symbol, bars=tuple(order_bars(bars)))
    return series.with_quote(quote)


async def load_snapshot(
    source: PriceDataSource,
    symbol: str,
    now: datetime,
    history_bars: int = MIN_HISTORY_BARS,
) -> MetricSnapshot:
    """Build the metric snapshot every alert on `symbol` is evaluated against.

    Args:
        source: Price-data source
        symbol: Ticker symbol
        now: Snapshot timestamp
        history_bars: Bars of history to request

    Returns:
        MetricSnapshot
    """
    series = await load_series(source, symbol, history_bars)
    return build_snapshot(series, computed_at=now)
