"""Integration tests for the Yahoo Finance price source (network required)."""

import pytest

from stockwatch.adapters.data_feeds.yahoo_feed import YahooPriceSource
from stockwatch.application.queries.market_snapshot import load_series
from stockwatch.domain.errors import DataSourceFatalError


@pytest.fixture
def source():
    return YahooPriceSource()


@pytest.mark.integration
async def test_yahoo_history_spy(source):
    """SPY has at least 60 clean daily bars."""
    bars = await source.get_history("SPY", days=60)

    assert len(bars) >= 55  # May have fewer due to holidays
    assert all(b.high >= b.low for b in bars)
    assert all(a.date < b.date for a, b in zip(bars, bars[1:]))


@pytest.mark.integration
async def test_yahoo_quote_spy(source):
    """SPY trades well above $100."""
    quote = await source.get_quote("SPY")

    assert quote.price > 100
    assert quote.timestamp.tzinfo is not None


@pytest.mark.integration
async def test_yahoo_series_with_quote(source):
    """History and quote merge into one strictly increasing series."""
    series = await load_series(source, "AAPL")

    assert len(series) >= 55
    assert series.last_bar is not None


@pytest.mark.integration
async def test_yahoo_unknown_symbol(source):
    """A made-up ticker is a fatal (not retried) error."""
    with pytest.raises(DataSourceFatalError):
        await source.get_history("ZZZZNOTREAL123", days=10)
