"""Alert lifecycle state machine.

States:
    ACTIVE -> (trigger) -> COOLING_DOWN -> (cooldown elapsed) -> ACTIVE
    ACTIVE | COOLING_DOWN -> (pause) -> INACTIVE -> (resume) -> ACTIVE
    any -> EXPIRED (wall clock passes expires_at; terminal)

Status is never stored. It is a pure function of is_active,
last_triggered + cooldown_period and expires_at versus `now`, checked
in this order:
1. EXPIRED      - expires_at < now
2. INACTIVE     - is_active is False
3. COOLING_DOWN - now < last_triggered + cooldown_period
4. ACTIVE

Triggering does not deactivate an alert: once the cooldown elapses it
can fire again. All operations return new AlertDefinition copies.
"""

from dataclasses import dataclass
from datetime import datetime

from stockwatch.domain.models.alert import AlertDefinition, TriggerEvent
from stockwatch.domain.models.enums import AlertStatus, EvaluationOutcome
from stockwatch.domain.models.indicators import MetricSnapshot
from stockwatch.domain.services.alert_evaluator import (
    EvaluationResult,
    evaluate_alert,
    evaluate_on_snapshot,
)


def effective_status(alert: AlertDefinition, now: datetime) -> AlertStatus:
    """Compute an alert's status at `now`.

    Args:
        alert: Alert definition
        now: Aware timestamp to evaluate at

    Returns:
        AlertStatus
    """
    if alert.expires_at is not None and alert.expires_at < now:
        return AlertStatus.EXPIRED

    if not alert.is_active:
        return AlertStatus.INACTIVE

    cooldown_ends = alert.cooldown_ends_at
    if cooldown_ends is not None and now < cooldown_ends:
        return AlertStatus.COOLING_DOWN

    return AlertStatus.ACTIVE


@dataclass(frozen=True)
class AlertTransition:
    """Outcome of running one alert through the state machine."""

    alert: AlertDefinition  # Updated copy (unchanged if no trigger)
    status_before: AlertStatus
    evaluation: EvaluationResult
    event: TriggerEvent | None = None

    @property
    def triggered(self) -> bool:
        """Whether this transition fired the alert."""
        return self.event is not None


class AlertStateMachine:
    """Domain service for alert lifecycle transitions.

    Only ACTIVE alerts are evaluated. Everything else is reported as
    SKIPPED without touching the evaluator.
    """

    def status(self, alert: AlertDefinition, now: datetime) -> AlertStatus:
        """Effective status of an alert at `now`."""
        return effective_status(alert, now)

    def is_evaluable(self, alert: AlertDefinition, now: datetime) -> bool:
        """Whether the alert belongs in this cycle's working set."""
        return effective_status(alert, now) == AlertStatus.ACTIVE

    def evaluate(
        self,
        alert: AlertDefinition,
        current_value: float | None,
        previous_value: float | None,
        now: datetime,
    ) -> AlertTransition:
        """Evaluate an alert against metric values and apply any trigger.

        Args:
            alert: Alert definition
            current_value: Current metric value
            previous_value: Metric one sample earlier
            now: Evaluation time

        Returns:
            AlertTransition with the updated alert and optional TriggerEvent
        """
        status = effective_status(alert, now)
        if status != AlertStatus.ACTIVE:
            return self._skipped(alert, status)

        return self._apply(alert, status, evaluate_alert(alert, current_value, previous_value), now)

    def evaluate_snapshot(
        self,
        alert: AlertDefinition,
        snapshot: MetricSnapshot,
        now: datetime,
    ) -> AlertTransition:
        """Evaluate an alert against a symbol's metric snapshot.

        Args:
            alert: Alert definition (same symbol as snapshot)
            snapshot: Metrics shared by all alerts on the symbol this tick
            now: Evaluation time

        Returns:
            AlertTransition
        """
        status = effective_status(alert, now)
        if status != AlertStatus.ACTIVE:
            return self._skipped(alert, status)

        return self._apply(alert, status, evaluate_on_snapshot(alert, snapshot), now)

    def trigger(
        self,
        alert: AlertDefinition,
        metric_value: float,
        now: datetime,
        previous_value: float | None = None,
    ) -> tuple[AlertDefinition, TriggerEvent]:
        """Record a trigger: bump trigger_count, stamp last_triggered, emit an event.

        Args:
            alert: Alert that fired
            metric_value: Metric value that satisfied the condition
            now: Trigger time
            previous_value: Previous metric sample, if any

        Returns:
            Tuple of (updated alert, TriggerEvent)
        """
        updated = alert.model_copy(
            update={
                "trigger_count": alert.trigger_count + 1,
                "last_triggered": now,
            }
        )
        event = TriggerEvent(
            alert_id=alert.id,
            owner_id=alert.owner_id,
            symbol=alert.symbol,
            alert_type=alert.alert_type,
            indicator_type=alert.indicator_type,
            condition=alert.condition,
            target_value=alert.target_value,
            metric_value=metric_value,
            previous_value=previous_value,
            trigger_count=updated.trigger_count,
            description=alert.description,
            message=alert.message,
            timestamp=now,
        )
        return updated, event

    def pause(self, alert: AlertDefinition, now: datetime) -> AlertDefinition:
        """User pauses the alert."""
        return alert.model_copy(update={"is_active": False, "updated_at": now})

    def resume(self, alert: AlertDefinition, now: datetime) -> AlertDefinition:
        """User resumes a paused alert. Expired alerts stay expired."""
        return alert.model_copy(update={"is_active": True, "updated_at": now})

    def reset(self, alert: AlertDefinition, now: datetime) -> AlertDefinition:
        """Clear trigger history so the alert is immediately eligible again."""
        return alert.model_copy(
            update={"trigger_count": 0, "last_triggered": None, "updated_at": now}
        )

    def _skipped(self, alert: AlertDefinition, status: AlertStatus) -> AlertTransition:
        return AlertTransition(
            alert=alert,
            status_before=status,
            evaluation=EvaluationResult(
                alert_id=str(alert.id),
                outcome=EvaluationOutcome.SKIPPED,
                reason=f"alert is {status.value}",
            ),
        )

    def _apply(
        self,
        alert: AlertDefinition,
        status: AlertStatus,
        evaluation: EvaluationResult,
        now: datetime,
    ) -> AlertTransition:
        if not evaluation.should_trigger or evaluation.current_value is None:
            return AlertTransition(alert=alert, status_before=status, evaluation=evaluation)

        updated, event = self.trigger(
            alert,
            metric_value=evaluation.current_value,
            now=now,
            previous_value=evaluation.previous_value,
        )
        return AlertTransition(
            alert=updated,
            status_before=status,
            evaluation=evaluation,
            event=event,
        )
