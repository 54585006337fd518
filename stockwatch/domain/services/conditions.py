"""Condition evaluation for alert thresholds.

Rules:
- above:          current > target
- below:          current < target
- equals:         |current - target| < epsilon
- crosses_above:  previous <= target < current
- crosses_below:  previous >= target > current

A missing current value is insufficient data and never triggers. A
crossover without a previous sample is a plain negative: one observation
cannot show a cross.
"""

from dataclasses import dataclass

from stockwatch.domain.models.enums import Condition, ConditionResult
from stockwatch.domain.rules import PRICE_EPSILON


@dataclass(frozen=True)
class ConditionCheck:
    """Result of checking one condition."""

    result: ConditionResult
    reason: str

    @property
    def is_met(self) -> bool:
        """Whether the condition fired."""
        return self.result == ConditionResult.MET

    @property
    def is_insufficient(self) -> bool:
        """Whether the check could not run for lack of data."""
        return self.result == ConditionResult.INSUFFICIENT_DATA


def evaluate_condition(
    current: float | None,
    condition: Condition,
    target: float,
    previous: float | None = None,
    epsilon: float = PRICE_EPSILON,
) -> ConditionCheck:
    """Check a metric value against an alert condition.

    Pure function: the same inputs always give the same result.

    Args:
        current: Current metric value (None = insufficient data)
        condition: Comparison to apply
        target: Alert target value
        previous: Metric value one sample earlier (needed for crossovers)
        epsilon: Tolerance for `equals`

    Returns:
        ConditionCheck with result and a human-readable reason
    """
    if current is None:
        return ConditionCheck(ConditionResult.INSUFFICIENT_DATA, "metric not available yet")

    condition = Condition(condition)

    if condition == Condition.ABOVE:
        met = current > target
        reason = f"{current:g} {'>' if met else '<='} {target:g}"

    elif condition == Condition.BELOW:
        met = current < target
        reason = f"{current:g} {'<' if met else '>='} {target:g}"

    elif condition == Condition.EQUALS:
        diff = abs(current - target)
        met = diff < epsilon
        reason = f"|{current:g} - {target:g}| = {diff:g} {'<' if met else '>='} {epsilon:g}"

    elif condition == Condition.CROSSES_ABOVE:
        if previous is None:
            return ConditionCheck(ConditionResult.NOT_MET, "no previous sample to detect a cross")
        met = previous <= target < current
        reason = (
            f"crossed above {target:g} ({previous:g} -> {current:g})"
            if met
            else f"no cross above {target:g} ({previous:g} -> {current:g})"
        )

    elif condition == Condition.CROSSES_BELOW:
        if previous is None:
            return ConditionCheck(ConditionResult.NOT_MET, "no previous sample to detect a cross")
        met = previous >= target > current
        reason = (
            f"crossed below {target:g} ({previous:g} -> {current:g})"
            if met
            else f"no cross below {target:g} ({previous:g} -> {current:g})"
        )

    else:  # pragma: no cover - exhaustive over Condition
        raise ValueError(f"Unknown condition: {condition}")

    return ConditionCheck(ConditionResult.MET if met else ConditionResult.NOT_MET, reason)
