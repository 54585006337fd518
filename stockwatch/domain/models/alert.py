"""Alert definition and trigger event models."""

import math
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from stockwatch.domain.models.enums import AlertType, Condition, IndicatorType
from stockwatch.domain.rules import (
    DEFAULT_COOLDOWN,
    DESCRIPTION_MAX_LENGTH,
    MESSAGE_MAX_LENGTH,
    SUPPORTED_INDICATOR_PERIODS,
)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def describe(symbol: str, condition: Condition | str, target_value: float) -> str:
    """Build the default human-readable description, e.g. 'AAPL crosses above 150.0'."""
    condition_words = Condition(condition).value.replace("_", " ")
    return f"{symbol.strip().upper()} {condition_words} {target_value}"


def definition_problems(alert: "AlertDefinition") -> list[str]:
    """List the reasons an alert definition is invalid.

    Validation runs at creation, but the monitor also calls this for
    definitions that reached it without validation (e.g. built with
    ``model_construct``) so it can skip them instead of crashing.

    Args:
        alert: Alert definition to check

    Returns:
        List of problems (empty when the definition is valid)
    """
    problems: list[str] = []

    if not alert.symbol:
        problems.append("symbol is required")

    if alert.target_value is None or not math.isfinite(alert.target_value):
        problems.append("target_value must be a finite number")

    if alert.alert_type == AlertType.TECHNICAL:
        if alert.indicator_type is None:
            problems.append("indicator_type is required for technical alerts")
        elif alert.indicator_period is not None:
            allowed = SUPPORTED_INDICATOR_PERIODS[IndicatorType(alert.indicator_type).value]
            if alert.indicator_period not in allowed:
                problems.append(
                    f"indicator_period {alert.indicator_period} not supported for "
                    f"{IndicatorType(alert.indicator_type).value} (allowed: {list(allowed)})"
                )
    else:
        if alert.indicator_type is not None:
            problems.append("indicator_type is only allowed for technical alerts")
        if alert.indicator_period is not None:
            problems.append("indicator_period is only allowed for technical alerts")

    if alert.cooldown_period < timedelta(0):
        problems.append("cooldown_period must not be negative")

    return problems


class AlertDefinition(BaseModel):
    """A user's threshold alert on one symbol.

    Definition fields belong to the user. ``trigger_count`` and
    ``last_triggered`` are only ever changed by the engine.
    """

    model_config = {"frozen": True}

    id: UUID = Field(default_factory=uuid4)
    owner_id: str
    symbol: str = Field(..., min_length=1)
    alert_type: AlertType
    indicator_type: IndicatorType | None = None
    indicator_period: int | None = Field(default=None, ge=1, le=200)
    condition: Condition
    target_value: float
    cooldown_period: timedelta = DEFAULT_COOLDOWN
    is_active: bool = True
    trigger_count: int = Field(default=0, ge=0)
    last_triggered: datetime | None = None
    expires_at: datetime | None = None
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    message: str | None = Field(default=None, max_length=MESSAGE_MAX_LENGTH)
    attention_reason: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="before")
    @classmethod
    def default_description(cls, data: Any) -> Any:
        """Generate a description when none is given."""
        if isinstance(data, dict) and not data.get("description"):
            try:
                data = {
                    **data,
                    "description": describe(
                        data["symbol"], data["condition"], data["target_value"]
                    ),
                }
            except (KeyError, ValueError, AttributeError):
                # Leave it to field validation to report what is missing
                pass
        return data

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Symbols are stored upper case, without surrounding whitespace."""
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be blank")
        return v

    @field_validator("last_triggered", "expires_at", "created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @model_validator(mode="after")
    def check_definition(self) -> "AlertDefinition":
        """Reject mismatched alert_type / indicator combinations."""
        problems = definition_problems(self)
        if problems:
            raise ValueError("; ".join(problems))
        return self

    @property
    def is_crossover(self) -> bool:
        """Whether the condition needs a previous sample."""
        return self.condition in (Condition.CROSSES_ABOVE, Condition.CROSSES_BELOW)

    @property
    def cooldown_ends_at(self) -> datetime | None:
        """When the current cooldown ends, or None if never triggered."""
        if self.last_triggered is None:
            return None
        return self.last_triggered + self.cooldown_period


class TriggerEvent(BaseModel):
    """Emitted once per trigger and handed to the notification sink."""

    model_config = {"frozen": True}

    alert_id: UUID
    owner_id: str
    symbol: str
    alert_type: AlertType
    indicator_type: IndicatorType | None = None
    condition: Condition
    target_value: float
    metric_value: float
    previous_value: float | None = None
    trigger_count: int
    description: str = ""
    message: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class AlertStats(BaseModel):
    """Per-owner alert statistics."""

    total_alerts: int = 0
    active_alerts: int = 0
    triggered_alerts: int = 0
    total_triggers: int = 0
