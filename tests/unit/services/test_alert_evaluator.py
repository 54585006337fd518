"""Unit tests for alert evaluation."""

from datetime import UTC, datetime

import pytest

from stockwatch.domain.models.alert import AlertDefinition
from stockwatch.domain.models.enums import (
    AlertType,
    Condition,
    EvaluationOutcome,
    IndicatorType,
)
from stockwatch.domain.models.indicators import (
    BollingerBands,
    IndicatorSet,
    MACDValue,
    MetricSnapshot,
)
from stockwatch.domain.services.alert_evaluator import (
    epsilon_for,
    evaluate_alert,
    evaluate_on_snapshot,
    metric_name,
    resolve_metric,
)


def make_alert(**kwargs) -> AlertDefinition:
    """Create a test alert (price above 25 on XYZ by default)."""
    defaults = {
        "owner_id": "user-1",
        "symbol": "XYZ",
        "alert_type": AlertType.PRICE,
        "condition": Condition.ABOVE,
        "target_value": 25.0,
    }
    defaults.update(kwargs)
    return AlertDefinition(**defaults)


def make_snapshot(**kwargs) -> MetricSnapshot:
    """Create a snapshot with both indicator sets fully populated."""
    current = IndicatorSet(
        sma20=101.0,
        sma50=99.0,
        ema12=102.0,
        ema26=98.0,
        rsi14=72.0,
        macd=MACDValue(value=4.0),
        bollinger=BollingerBands(upper=110.0, middle=100.0, lower=90.0),
    )
    previous = IndicatorSet(
        sma20=100.5,
        sma50=98.8,
        ema12=100.0,
        ema26=97.5,
        rsi14=68.0,
        macd=MACDValue(value=2.5),
        bollinger=BollingerBands(upper=109.0, middle=99.0, lower=89.0),
    )
    defaults = {
        "symbol": "XYZ",
        "computed_at": datetime(2024, 3, 1, tzinfo=UTC),
        "bar_count": 60,
        "current": current,
        "previous": previous,
        "price": 105.0,
        "previous_price": 100.0,
        "volume": 2_000_000.0,
        "previous_volume": 1_500_000.0,
        "change_percent": 5.0,
        "previous_change_percent": -1.0,
    }
    defaults.update(kwargs)
    return MetricSnapshot(**defaults)


def technical(indicator: IndicatorType, period: int | None = None, **kwargs) -> AlertDefinition:
    return make_alert(
        alert_type=AlertType.TECHNICAL,
        indicator_type=indicator,
        indicator_period=period,
        **kwargs,
    )


class TestEvaluateAlert:
    """Tests for evaluating an alert against given values."""

    def test_trigger(self):
        """Price 30 above target 25 triggers."""
        result = evaluate_alert(make_alert(), 30.0)

        assert result.outcome == EvaluationOutcome.TRIGGERED
        assert result.should_trigger
        assert result.current_value == 30.0
        assert result.metric == "price"

    def test_no_trigger(self):
        """Price below target is a plain negative."""
        result = evaluate_alert(make_alert(), 20.0)

        assert result.outcome == EvaluationOutcome.NOT_TRIGGERED
        assert not result.should_trigger

    def test_insufficient_data_is_distinct(self):
        """A missing value reports insufficient data, not a negative."""
        result = evaluate_alert(make_alert(), None)

        assert result.outcome == EvaluationOutcome.INSUFFICIENT_DATA
        assert not result.should_trigger

    def test_does_not_mutate_alert(self):
        """Evaluation leaves trigger state untouched."""
        alert = make_alert()
        evaluate_alert(alert, 30.0)

        assert alert.trigger_count == 0
        assert alert.last_triggered is None

    def test_invalid_definition_is_reported(self):
        """An unvalidated bad definition is reported, not evaluated."""
        alert = AlertDefinition.model_construct(
            **make_alert(alert_type=AlertType.PRICE).model_dump()
            | {"alert_type": AlertType.TECHNICAL, "indicator_type": None}
        )
        result = evaluate_alert(alert, 30.0)

        assert result.outcome == EvaluationOutcome.INVALID_DEFINITION
        assert "indicator_type" in result.reason


class TestResolveMetric:
    """Tests for mapping alerts to snapshot metrics."""

    @pytest.mark.parametrize(
        "alert_type,expected_current,expected_previous",
        [
            (AlertType.PRICE, 105.0, 100.0),
            (AlertType.VOLUME, 2_000_000.0, 1_500_000.0),
            (AlertType.CHANGE, 5.0, -1.0),
        ],
    )
    def test_plain_metrics(self, alert_type, expected_current, expected_previous):
        """price / volume / change read straight off the snapshot."""
        sample = resolve_metric(make_alert(alert_type=alert_type), make_snapshot())

        assert sample.current == expected_current
        assert sample.previous == expected_previous

    @pytest.mark.parametrize(
        "indicator,period,expected_current,expected_previous",
        [
            (IndicatorType.SMA, None, 101.0, 100.5),
            (IndicatorType.SMA, 50, 99.0, 98.8),
            (IndicatorType.EMA, None, 102.0, 100.0),
            (IndicatorType.EMA, 26, 98.0, 97.5),
            (IndicatorType.RSI, None, 72.0, 68.0),
            (IndicatorType.MACD, None, 4.0, 2.5),
        ],
    )
    def test_indicator_metrics(self, indicator, period, expected_current, expected_previous):
        """Technical alerts read the matching indicator, now and one bar back."""
        sample = resolve_metric(technical(indicator, period), make_snapshot())

        assert sample.current == expected_current
        assert sample.previous == expected_previous

    def test_bollinger_uses_percent_b(self):
        """Bollinger alerts compare %B of the price within the bands."""
        sample = resolve_metric(technical(IndicatorType.BOLLINGER), make_snapshot())

        assert sample.current == pytest.approx((105.0 - 90.0) / 20.0)
        assert sample.previous == pytest.approx((100.0 - 89.0) / 20.0)
        assert sample.name == "bollinger_percent_b"

    def test_flat_bollinger_is_insufficient(self):
        """Zero-width bands make %B undefined."""
        flat = IndicatorSet(bollinger=BollingerBands(upper=100.0, middle=100.0, lower=100.0))
        snapshot = make_snapshot(current=flat)

        result = evaluate_on_snapshot(technical(IndicatorType.BOLLINGER), snapshot)

        assert result.outcome == EvaluationOutcome.INSUFFICIENT_DATA

    def test_metric_names(self):
        """Metric labels name the exact series watched."""
        assert metric_name(make_alert()) == "price"
        assert metric_name(technical(IndicatorType.SMA, 50)) == "sma50"
        assert metric_name(technical(IndicatorType.EMA)) == "ema12"
        assert metric_name(technical(IndicatorType.RSI)) == "rsi14"

    def test_epsilon_by_metric(self):
        """RSI and %B compare with the tighter epsilon."""
        assert epsilon_for(make_alert()) == 0.01
        assert epsilon_for(technical(IndicatorType.SMA)) == 0.01
        assert epsilon_for(technical(IndicatorType.RSI)) == 0.001
        assert epsilon_for(technical(IndicatorType.BOLLINGER)) == 0.001


class TestEvaluateOnSnapshot:
    """Tests for snapshot-based evaluation."""

    def test_rsi_crosses_above(self):
        """RSI moving 68 -> 72 crosses above 70."""
        alert = technical(IndicatorType.RSI, condition=Condition.CROSSES_ABOVE, target_value=70.0)

        result = evaluate_on_snapshot(alert, make_snapshot())

        assert result.should_trigger
        assert result.previous_value == 68.0

    def test_warming_up_indicator(self):
        """An indicator without enough bars reports insufficient data and why."""
        snapshot = make_snapshot(current=IndicatorSet(), previous=IndicatorSet(), bar_count=10)
        alert = technical(IndicatorType.SMA, 50, target_value=100.0)

        result = evaluate_on_snapshot(alert, snapshot)

        assert result.outcome == EvaluationOutcome.INSUFFICIENT_DATA
        assert "sma50" in result.reason
        assert "10 bars" in result.reason
