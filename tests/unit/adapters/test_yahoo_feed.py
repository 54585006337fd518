"""Unit tests for YahooPriceSource error mapping and bar handling.

The synchronous yfinance calls are replaced with canned results.
"""

from datetime import UTC, date, datetime

import pandas as pd
import pytest

from stockwatch.adapters.data_feeds.yahoo_feed import YahooPriceSource
from stockwatch.application.queries.market_snapshot import load_snapshot
from stockwatch.domain.errors import DataSourceFatalError, DataSourceTransientError
from stockwatch.domain.models.alert import AlertDefinition
from stockwatch.domain.models.enums import AlertType, Condition
from stockwatch.domain.services.alert_evaluator import evaluate_on_snapshot

FRIDAY_SESSION = pd.Timestamp("2024-05-31", tz="America/New_York")


def make_frame(closes: list[float], start: str = "2024-01-01", freq: str = "D") -> pd.DataFrame:
    index = pd.date_range(start, periods=len(closes), freq=freq)
    return pd.DataFrame(
        {
            "Open": closes,
            "High": [c + 1 for c in closes],
            "Low": [c - 1 for c in closes],
            "Close": closes,
            "Volume": [1000] * len(closes),
        },
        index=index,
    )


@pytest.fixture
def source():
    return YahooPriceSource()


class TestGetHistory:
    """Tests for history fetching."""

    async def test_returns_bars_oldest_first(self, source, monkeypatch):
        monkeypatch.setattr(source, "_fetch_history", lambda *args: make_frame([10.0, 11.0, 12.0]))

        bars = await source.get_history("XYZ", days=60)

        assert [b.close for b in bars] == [10.0, 11.0, 12.0]
        assert bars[0].date == date(2024, 1, 1)

    async def test_trims_to_requested_days(self, source, monkeypatch):
        closes = [float(c) for c in range(10, 40)]
        monkeypatch.setattr(source, "_fetch_history", lambda *args: make_frame(closes))

        bars = await source.get_history("XYZ", days=5)

        assert len(bars) == 5
        assert bars[-1].close == 39.0

    async def test_request_failure_is_transient(self, source, monkeypatch):
        def boom(*args):
            raise ConnectionError("connection reset")

        monkeypatch.setattr(source, "_fetch_history", boom)

        with pytest.raises(DataSourceTransientError) as exc_info:
            await source.get_history("XYZ")

        assert "connection reset" in str(exc_info.value)

    async def test_empty_frame_is_fatal(self, source, monkeypatch):
        monkeypatch.setattr(source, "_fetch_history", lambda *args: pd.DataFrame())

        with pytest.raises(DataSourceFatalError):
            await source.get_history("NOPE")

    async def test_malformed_rows_skipped(self, source, monkeypatch):
        frame = make_frame([10.0, 11.0, 12.0])
        frame.iloc[1, frame.columns.get_loc("Close")] = float("nan")
        monkeypatch.setattr(source, "_fetch_history", lambda *args: frame)

        bars = await source.get_history("XYZ")

        assert [b.close for b in bars] == [10.0, 12.0]


class TestGetQuote:
    """Tests for quote fetching."""

    async def test_quote_with_change(self, source, monkeypatch):
        info = {"last_price": 105.0, "previous_close": 100.0, "last_volume": 5000, "session": FRIDAY_SESSION}
        monkeypatch.setattr(source, "_fetch_fast_info", lambda symbol: info)

        quote = await source.get_quote("XYZ")

        assert quote.price == 105.0
        assert quote.change == pytest.approx(5.0)
        assert quote.change_percent == pytest.approx(5.0)
        assert quote.volume == 5000
        assert quote.timestamp.tzinfo is not None
        assert quote.timestamp.date() == date(2024, 5, 31)

    async def test_naive_session_is_exchange_local(self, source, monkeypatch):
        info = {
            "last_price": 105.0,
            "previous_close": 100.0,
            "last_volume": 5000,
            "session": pd.Timestamp("2024-05-31"),
        }
        monkeypatch.setattr(source, "_fetch_fast_info", lambda symbol: info)

        quote = await source.get_quote("XYZ")

        assert quote.timestamp.utcoffset() is not None
        assert quote.timestamp.date() == date(2024, 5, 31)

    async def test_missing_session_is_transient(self, source, monkeypatch):
        """A price with no session to date it is not trusted."""
        info = {"last_price": 105.0, "previous_close": 100.0, "last_volume": 5000, "session": None}
        monkeypatch.setattr(source, "_fetch_fast_info", lambda symbol: info)

        with pytest.raises(DataSourceTransientError):
            await source.get_quote("XYZ")

    async def test_missing_price_is_fatal(self, source, monkeypatch):
        info = {"last_price": None, "previous_close": None, "last_volume": None, "session": None}
        monkeypatch.setattr(source, "_fetch_fast_info", lambda symbol: info)

        with pytest.raises(DataSourceFatalError):
            await source.get_quote("NOPE")

    async def test_request_failure_is_transient(self, source, monkeypatch):
        def boom(symbol):
            raise TimeoutError("timed out")

        monkeypatch.setattr(source, "_fetch_fast_info", boom)

        with pytest.raises(DataSourceTransientError):
            await source.get_quote("XYZ")

    def test_source_name(self, source):
        assert source.source_name == "yahoo"


class TestWeekendSnapshot:
    """Quotes fetched when the market is closed belong to the last session."""

    async def test_saturday_quote_keeps_friday_change(self, source, monkeypatch):
        """Friday closed at 110 vs 100: a Saturday check still sees +10%."""
        closes = [90.0] * 28 + [100.0, 110.0]
        # Business days ending Friday 2024-05-31
        frame = make_frame(closes, start="2024-04-22", freq="B")
        info = {
            "last_price": 110.0,
            "previous_close": 100.0,
            "last_volume": 1000,
            "session": FRIDAY_SESSION,
        }
        monkeypatch.setattr(source, "_fetch_history", lambda *args: frame)
        monkeypatch.setattr(source, "_fetch_fast_info", lambda symbol: info)

        saturday = datetime(2024, 6, 1, 15, 0, tzinfo=UTC)
        snapshot = await load_snapshot(source, "XYZ", now=saturday)

        assert frame.index[-1].date() == date(2024, 5, 31)
        assert snapshot.change_percent == pytest.approx(10.0)

        alert = AlertDefinition(
            owner_id="user-1",
            symbol="XYZ",
            alert_type=AlertType.CHANGE,
            condition=Condition.ABOVE,
            target_value=5.0,
        )
        assert evaluate_on_snapshot(alert, snapshot).should_trigger
