"""Alert evaluation - maps an alert definition onto its metric and condition.

The evaluator only DECIDES whether an alert's condition holds. It never
changes alert state; lifecycle and trigger bookkeeping live in the
AlertStateMachine. This makes it safe for on-demand "test this alert" calls.
"""

from dataclasses import dataclass

from stockwatch.domain.models.alert import AlertDefinition, definition_problems
from stockwatch.domain.models.enums import AlertType, EvaluationOutcome, IndicatorType
from stockwatch.domain.models.indicators import IndicatorSet, MetricSnapshot
from stockwatch.domain.rules import (
    EMA_SLOW_PERIOD,
    INDICATOR_EPSILON,
    PRICE_EPSILON,
    SMA_LONG_PERIOD,
)
from stockwatch.domain.services.conditions import evaluate_condition


@dataclass(frozen=True)
class MetricSample:
    """Current and previous value of the metric an alert watches."""

    name: str
    current: float | None
    previous: float | None
    epsilon: float


@dataclass(frozen=True)
class EvaluationResult:
    """Result of evaluating one alert."""

    alert_id: str
    outcome: EvaluationOutcome
    reason: str
    current_value: float | None = None
    previous_value: float | None = None
    metric: str | None = None

    @property
    def should_trigger(self) -> bool:
        """Whether the alert's condition fired."""
        return self.outcome == EvaluationOutcome.TRIGGERED


def epsilon_for(alert: AlertDefinition) -> float:
    """Tolerance for `equals` on this alert's metric.

    Dimensionless indicators (RSI, Bollinger %B) use the tighter epsilon.
    """
    if alert.alert_type == AlertType.TECHNICAL and alert.indicator_type in (
        IndicatorType.RSI,
        IndicatorType.BOLLINGER,
    ):
        return INDICATOR_EPSILON
    return PRICE_EPSILON


def _indicator_value(
    alert: AlertDefinition,
    indicators: IndicatorSet,
    price: float | None,
) -> float | None:
    """Pick the indicator value an alert compares against from an IndicatorSet."""
    indicator = alert.indicator_type

    if indicator == IndicatorType.SMA:
        return indicators.sma50 if alert.indicator_period == SMA_LONG_PERIOD else indicators.sma20

    if indicator == IndicatorType.EMA:
        return indicators.ema26 if alert.indicator_period == EMA_SLOW_PERIOD else indicators.ema12

    if indicator == IndicatorType.RSI:
        return indicators.rsi14

    if indicator == IndicatorType.MACD:
        return indicators.macd.value if indicators.macd else None

    if indicator == IndicatorType.BOLLINGER:
        if indicators.bollinger is None or price is None:
            return None
        return indicators.bollinger.percent_b(price)

    return None


def metric_name(alert: AlertDefinition) -> str:
    """Short label for the metric an alert watches (e.g. 'price', 'rsi14')."""
    if alert.alert_type != AlertType.TECHNICAL:
        return AlertType(alert.alert_type).value

    indicator = IndicatorType(alert.indicator_type)
    if indicator == IndicatorType.SMA:
        return f"sma{alert.indicator_period or 20}"
    if indicator == IndicatorType.EMA:
        return f"ema{alert.indicator_period or 12}"
    if indicator == IndicatorType.RSI:
        return "rsi14"
    if indicator == IndicatorType.BOLLINGER:
        return "bollinger_percent_b"
    return indicator.value


def resolve_metric(alert: AlertDefinition, snapshot: MetricSnapshot) -> MetricSample:
    """Extract the current and previous metric values for an alert.

    Args:
        alert: Valid alert definition
        snapshot: Metrics computed for the alert's symbol this tick

    Returns:
        MetricSample; values are None where data is insufficient
    """
    name = metric_name(alert)
    epsilon = epsilon_for(alert)

    if alert.alert_type == AlertType.PRICE:
        return MetricSample(name, snapshot.price, snapshot.previous_price, epsilon)

    if alert.alert_type == AlertType.VOLUME:
        return MetricSample(name, snapshot.volume, snapshot.previous_volume, epsilon)

    if alert.alert_type == AlertType.CHANGE:
        return MetricSample(
            name, snapshot.change_percent, snapshot.previous_change_percent, epsilon
        )

    return MetricSample(
        name,
        _indicator_value(alert, snapshot.current, snapshot.price),
        _indicator_value(alert, snapshot.previous, snapshot.previous_price),
        epsilon,
    )


def evaluate_alert(
    alert: AlertDefinition,
    current_value: float | None,
    previous_value: float | None = None,
) -> EvaluationResult:
    """Decide whether an alert's condition holds for the given metric values.

    Does not look at alert status and does not mutate anything.

    Args:
        alert: Alert definition
        current_value: Current metric value (None = insufficient data)
        previous_value: Metric one sample earlier (crossovers need it)

    Returns:
        EvaluationResult distinguishing trigger / no trigger / insufficient data
    """
    alert_id = str(alert.id)

    problems = definition_problems(alert)
    if problems:
        return EvaluationResult(
            alert_id=alert_id,
            outcome=EvaluationOutcome.INVALID_DEFINITION,
            reason="; ".join(problems),
        )

    check = evaluate_condition(
        current=current_value,
        condition=alert.condition,
        target=alert.target_value,
        previous=previous_value,
        epsilon=epsilon_for(alert),
    )

    if check.is_insufficient:
        outcome = EvaluationOutcome.INSUFFICIENT_DATA
    elif check.is_met:
        outcome = EvaluationOutcome.TRIGGERED
    else:
        outcome = EvaluationOutcome.NOT_TRIGGERED

    return EvaluationResult(
        alert_id=alert_id,
        outcome=outcome,
        reason=check.reason,
        current_value=current_value,
        previous_value=previous_value,
        metric=metric_name(alert),
    )


def evaluate_on_snapshot(alert: AlertDefinition, snapshot: MetricSnapshot) -> EvaluationResult:
    """Resolve an alert's metric from a snapshot and evaluate it.

    Args:
        alert: Alert definition
        snapshot: Metrics for the alert's symbol

    Returns:
        EvaluationResult
    """
    problems = definition_problems(alert)
    if problems:
        return EvaluationResult(
            alert_id=str(alert.id),
            outcome=EvaluationOutcome.INVALID_DEFINITION,
            reason="; ".join(problems),
        )

    sample = resolve_metric(alert, snapshot)
    result = evaluate_alert(alert, sample.current, sample.previous)

    if result.outcome == EvaluationOutcome.INSUFFICIENT_DATA:
        return EvaluationResult(
            alert_id=result.alert_id,
            outcome=result.outcome,
            reason=f"{sample.name} not available ({snapshot.bar_count} bars)",
            previous_value=sample.previous,
            metric=sample.name,
        )

    return result
