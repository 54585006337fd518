"""Unit tests for data validation services."""

from datetime import date

from stockwatch.domain.models.market import PriceBar
from stockwatch.domain.services.validation import (
    filter_valid_bars,
    order_bars,
    validate_bar,
    validate_bars,
)


def make_bar(
    o: float = 100.0,
    h: float = 105.0,
    l: float = 95.0,  # noqa: E741
    c: float = 102.0,
    dt: date = date(2026, 1, 1),
) -> PriceBar:
    """Helper to create test bars."""
    return PriceBar(date=dt, open=o, high=h, low=l, close=c)


class TestValidateBar:
    """Tests for single bar validation.

    The model already enforces OHLC ordering; validate_bar catches values
    that are well-formed but unusable.
    """

    def test_valid_bar(self):
        """A normal bar passes."""
        valid, reason = validate_bar(make_bar())
        assert valid is True
        assert reason == "OK"

    def test_nan_price_rejected(self):
        """NaN from an upstream gap is rejected."""
        bar = PriceBar.model_construct(
            date=date(2026, 1, 1), open=100.0, high=105.0, low=95.0, close=float("nan"), volume=0
        )
        valid, reason = validate_bar(bar)
        assert valid is False
        assert "Close" in reason

    def test_zero_price_rejected(self):
        """Non-positive prices are rejected."""
        valid, reason = validate_bar(make_bar(o=0.0, l=0.0))
        assert valid is False
        assert "<= 0" in reason


class TestValidateBars:
    """Tests for list validation."""

    def test_reports_each_bad_bar(self):
        """Every invalid bar is listed with its index and date."""
        bars = [make_bar(), make_bar(o=0.0, l=0.0, dt=date(2026, 1, 2))]
        all_valid, errors = validate_bars(bars)

        assert all_valid is False
        assert len(errors) == 1
        assert errors[0].startswith("Bar 1 (2026-01-02)")

    def test_filter_valid_bars(self):
        """Only usable bars survive."""
        good = make_bar()
        bad = make_bar(o=0.0, l=0.0, dt=date(2026, 1, 2))
        assert filter_valid_bars([good, bad]) == [good]


class TestOrderBars:
    """Tests for ordering and de-duplication."""

    def test_sorts_oldest_first(self):
        """Bars are returned in date order."""
        later = make_bar(dt=date(2026, 1, 3))
        earlier = make_bar(dt=date(2026, 1, 1))
        assert order_bars([later, earlier]) == [earlier, later]

    def test_duplicate_date_last_wins(self):
        """A repeated session bar replaces the earlier copy."""
        first = make_bar(c=101.0)
        second = make_bar(c=103.0)
        assert order_bars([first, second]) == [second]
