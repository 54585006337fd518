"""Domain enumerations for the alert engine."""

from enum import Enum


class AlertType(str, Enum):
    """Which market value an alert watches."""

    PRICE = "price"
    VOLUME = "volume"
    CHANGE = "change"  # Percent change vs previous close
    TECHNICAL = "technical"  # Requires indicator_type


class IndicatorType(str, Enum):
    """Technical indicator an alert compares against."""

    RSI = "rsi"
    SMA = "sma"
    EMA = "ema"
    MACD = "macd"
    BOLLINGER = "bollinger"  # Compared as %B


class Condition(str, Enum):
    """Comparison between the metric and the alert's target value."""

    ABOVE = "above"
    BELOW = "below"
    EQUALS = "equals"
    CROSSES_ABOVE = "crosses_above"  # Needs previous and current sample
    CROSSES_BELOW = "crosses_below"  # Needs previous and current sample


class AlertStatus(str, Enum):
    """Effective status of an alert at a point in time."""

    ACTIVE = "active"
    INACTIVE = "inactive"  # Paused by the user
    COOLING_DOWN = "cooling_down"  # Triggered, waiting out cooldown
    EXPIRED = "expired"  # Terminal


class ConditionResult(str, Enum):
    """Outcome of a single condition check."""

    MET = "met"
    NOT_MET = "not_met"
    INSUFFICIENT_DATA = "insufficient_data"


class EvaluationOutcome(str, Enum):
    """Outcome of evaluating one alert."""

    TRIGGERED = "triggered"
    NOT_TRIGGERED = "not_triggered"
    INSUFFICIENT_DATA = "insufficient_data"  # Skip this cycle, not a real negative
    SKIPPED = "skipped"  # Alert not in ACTIVE status
    INVALID_DEFINITION = "invalid_definition"
