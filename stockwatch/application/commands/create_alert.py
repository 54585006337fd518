"""Alert management commands: create, edit, pause, resume, reset, delete.

These are the user-side writers of the alert store. They touch definition
fields only; trigger state belongs to the monitor.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from stockwatch.domain.errors import InvalidAlertDefinitionError
from stockwatch.domain.interfaces.repositories import AlertRepository
from stockwatch.domain.models.alert import AlertDefinition, describe, utc_now
from stockwatch.domain.models.enums import AlertType, Condition, IndicatorType
from stockwatch.domain.rules import DEFAULT_COOLDOWN
from stockwatch.domain.services.alert_state import AlertStateMachine
from stockwatch.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Fields a user may change on an existing alert
EDITABLE_FIELDS = frozenset(
    {
        "symbol",
        "alert_type",
        "indicator_type",
        "indicator_period",
        "condition",
        "target_value",
        "cooldown_period",
        "expires_at",
        "description",
        "message",
    }
)


def _problems_from(error: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into readable messages."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value").removeprefix("Value error, ")
        problems.append(f"{location}: {message}" if location else message)
    return problems


@dataclass
class CreateAlertRequest:
    """User input for a new alert."""

    owner_id: str
    symbol: str
    alert_type: AlertType | str
    condition: Condition | str
    target_value: float
    indicator_type: IndicatorType | str | None = None
    indicator_period: int | None = None
    cooldown_period: timedelta | None = None
    expires_at: datetime | None = None
    description: str | None = None
    message: str | None = None


class AlertNotFoundError(LookupError):
    """Raised when a command targets an alert that does not exist."""

    def __init__(self, alert_id: UUID) -> None:
        super().__init__(f"Alert {alert_id} not found")
        self.alert_id = alert_id


class CreateAlertCommand:
    """Validates and stores user alert definitions.

    Invalid definitions are rejected here with InvalidAlertDefinitionError,
    so the monitor only ever sees well-formed alerts.
    """

    def __init__(
        self,
        alert_repo: AlertRepository,
        default_cooldown: timedelta = DEFAULT_COOLDOWN,
    ) -> None:
        """Initialize the command.

        Args:
            alert_repo: Alert store
            default_cooldown: Cooldown for alerts created without one
        """
        self._alert_repo = alert_repo
        self._default_cooldown = default_cooldown
        self._state_machine = AlertStateMachine()

    async def execute(
        self,
        request: CreateAlertRequest,
        now: datetime | None = None,
    ) -> AlertDefinition:
        """Create and persist a new alert.

        Args:
            request: User input
            now: Creation time (defaults to current UTC time)

        Returns:
            The stored AlertDefinition

        Raises:
            InvalidAlertDefinitionError: If the definition is rejected
        """
        now = now or utc_now()

        data: dict[str, Any] = {
            "owner_id": request.owner_id,
            "symbol": request.symbol,
            "alert_type": request.alert_type,
            "indicator_type": request.indicator_type,
            "indicator_period": request.indicator_period,
            "condition": request.condition,
            "target_value": request.target_value,
            "cooldown_period": (
                request.cooldown_period
                if request.cooldown_period is not None
                else self._default_cooldown
            ),
            "expires_at": request.expires_at,
            "message": request.message,
            "created_at": now,
            "updated_at": now,
        }
        if request.description:
            data["description"] = request.description

        alert = self._build(data)
        await self._alert_repo.save(alert)

        logger.info(f"Created alert {alert.id} for {alert.owner_id}: {alert.description}")
        return alert

    async def update(
        self,
        alert_id: UUID,
        changes: dict[str, Any],
        now: datetime | None = None,
    ) -> AlertDefinition:
        """Apply user edits to an existing alert.

        Editing clears any attention flag, since the user has now looked at
        the alert. A generated description follows the edit; a custom one
        is kept unless the edit replaces it.

        Raises:
            AlertNotFoundError: If the alert does not exist
            InvalidAlertDefinitionError: If the edit is rejected
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidAlertDefinitionError(
                [f"{name}: field cannot be edited" for name in sorted(unknown)]
            )

        current = await self._get(alert_id)
        now = now or utc_now()

        data = current.model_dump()
        data.update(changes)
        data["attention_reason"] = None
        data["updated_at"] = now
        generated = describe(current.symbol, current.condition, current.target_value)
        if "description" not in changes and current.description == generated:
            data["description"] = ""

        alert = self._build(data)
        await self._alert_repo.save(alert)

        logger.info(f"Updated alert {alert.id}: {sorted(changes)}")
        return alert

    async def pause(self, alert_id: UUID, now: datetime | None = None) -> AlertDefinition:
        """Deactivate an alert."""
        alert = self._state_machine.pause(await self._get(alert_id), now or utc_now())
        await self._alert_repo.save(alert)
        return alert

    async def resume(self, alert_id: UUID, now: datetime | None = None) -> AlertDefinition:
        """Reactivate a paused alert."""
        alert = self._state_machine.resume(await self._get(alert_id), now or utc_now())
        await self._alert_repo.save(alert)
        return alert

    async def reset(self, alert_id: UUID, now: datetime | None = None) -> AlertDefinition:
        """Clear an alert's trigger history.

        Uses the optimistic trigger-state write, so a reset racing a
        monitor trigger fails instead of silently losing either write.

        Raises:
            TriggerStateConflictError: If the monitor triggered it meanwhile
        """
        current = await self._get(alert_id)
        alert = self._state_machine.reset(current, now or utc_now())
        await self._alert_repo.update_trigger_state(
            alert_id=alert.id,
            expected_trigger_count=current.trigger_count,
            trigger_count=alert.trigger_count,
            last_triggered=alert.last_triggered,
        )
        await self._alert_repo.save(alert)
        return alert

    async def delete(self, alert_id: UUID) -> None:
        """Delete an alert."""
        await self._get(alert_id)
        await self._alert_repo.delete(alert_id)
        logger.info(f"Deleted alert {alert_id}")

    async def _get(self, alert_id: UUID) -> AlertDefinition:
        alert = await self._alert_repo.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def _build(self, data: dict[str, Any]) -> AlertDefinition:
        try:
            return AlertDefinition(**data)
        except ValidationError as e:
            raise InvalidAlertDefinitionError(_problems_from(e)) from e
