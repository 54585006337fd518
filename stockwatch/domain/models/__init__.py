"""Domain models for the stock alert engine."""

from stockwatch.domain.models.alert import (
    AlertDefinition,
    AlertStats,
    TriggerEvent,
    definition_problems,
)
from stockwatch.domain.models.enums import (
    AlertStatus,
    AlertType,
    Condition,
    ConditionResult,
    EvaluationOutcome,
    IndicatorType,
)
from stockwatch.domain.models.indicators import (
    BollingerBands,
    IndicatorSet,
    MACDValue,
    MetricSnapshot,
)
from stockwatch.domain.models.market import PriceBar, PriceSeries, Quote

__all__ = [
    # Enums
    "AlertType",
    "IndicatorType",
    "Condition",
    "AlertStatus",
    "ConditionResult",
    "EvaluationOutcome",
    # Market data
    "PriceBar",
    "PriceSeries",
    "Quote",
    # Indicators
    "MACDValue",
    "BollingerBands",
    "IndicatorSet",
    "MetricSnapshot",
    # Alerts
    "AlertDefinition",
    "TriggerEvent",
    "AlertStats",
    "definition_problems",
]
