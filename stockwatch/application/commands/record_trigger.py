"""Trigger recording command.

Persists the trigger state produced by the state machine and hands the
TriggerEvent to the notification sink. The trigger is committed before
the notification goes out: a failed delivery is logged, never retried
by re-triggering the alert.
"""

from dataclasses import dataclass

from stockwatch.domain.errors import TriggerStateConflictError
from stockwatch.domain.interfaces.notifier import Notifier
from stockwatch.domain.interfaces.repositories import AlertRepository
from stockwatch.domain.models.alert import AlertDefinition, TriggerEvent
from stockwatch.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RecordTriggerResult:
    """Result of recording one trigger."""

    event: TriggerEvent
    persisted: bool
    notified: bool
    error: str | None = None


class TriggerRecorder:
    """Command to commit a trigger and notify the alert's owner.

    This command:
    1. Writes trigger_count / last_triggered with an optimistic check
    2. Notifies the owner if the write won
    3. Logs (and reports) delivery failures without undoing the trigger
    """

    def __init__(self, alert_repo: AlertRepository, notifier: Notifier) -> None:
        """Initialize the recorder.

        Args:
            alert_repo: Alert store
            notifier: Notification sink
        """
        self._alert_repo = alert_repo
        self._notifier = notifier

    async def record(
        self,
        original: AlertDefinition,
        updated: AlertDefinition,
        event: TriggerEvent,
    ) -> RecordTriggerResult:
        """Commit a trigger and deliver its event.

        Args:
            original: Alert as read at the start of the tick
            updated: Alert after the trigger transition
            event: Event emitted by the transition

        Returns:
            RecordTriggerResult
        """
        try:
            await self._alert_repo.update_trigger_state(
                alert_id=original.id,
                expected_trigger_count=original.trigger_count,
                trigger_count=updated.trigger_count,
                last_triggered=updated.last_triggered,
            )
        except TriggerStateConflictError as e:
            logger.warning(f"Trigger not recorded for {event.symbol}: {e}")
            return RecordTriggerResult(
                event=event, persisted=False, notified=False, error=str(e)
            )

        logger.info(
            f"TRIGGERED {event.symbol} alert {event.alert_id}: {event.description} "
            f"(value={event.metric_value:g}, count={event.trigger_count})"
        )

        try:
            await self._notifier.notify(event.owner_id, event)
        except Exception as e:
            # Any sink failure counts as a delivery failure
            logger.error(
                f"Notification via {self._notifier.channel} failed for alert {event.alert_id}: {e}"
            )
            return RecordTriggerResult(event=event, persisted=True, notified=False, error=str(e))

        return RecordTriggerResult(event=event, persisted=True, notified=True)
