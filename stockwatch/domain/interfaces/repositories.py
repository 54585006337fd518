"""Repository interfaces (ports) for data persistence."""

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from stockwatch.domain.models.alert import AlertDefinition, AlertStats


class AlertRepository(ABC):
    """Repository interface for alert definitions.

    Two writers share this store: users edit definition fields through
    the management API, and the monitor updates trigger state. Trigger
    state is written column-wise with an optimistic check so neither
    side overwrites the other.
    """

    @abstractmethod
    async def save(self, alert: AlertDefinition) -> None:
        """Insert or update an alert's definition fields.

        Does not overwrite trigger_count / last_triggered of an existing row.
        """
        ...

    @abstractmethod
    async def get(self, alert_id: UUID) -> AlertDefinition | None:
        """Get an alert by id."""
        ...

    @abstractmethod
    async def list_active_alerts(self) -> list[AlertDefinition]:
        """List alerts the monitor should consider.

        Returns alerts with is_active set that have not expired. Cooldown
        filtering is left to the caller, which knows the tick time.
        """
        ...

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[AlertDefinition]:
        """List all alerts belonging to an owner, newest first."""
        ...

    @abstractmethod
    async def update_trigger_state(
        self,
        alert_id: UUID,
        expected_trigger_count: int,
        trigger_count: int,
        last_triggered: datetime | None,
    ) -> None:
        """Write trigger state if nobody else changed it first.

        Args:
            alert_id: Alert to update
            expected_trigger_count: trigger_count the caller read
            trigger_count: New trigger count
            last_triggered: New last-triggered timestamp

        Raises:
            TriggerStateConflictError: If the stored trigger_count differs
        """
        ...

    @abstractmethod
    async def flag_attention(self, alert_id: UUID, reason: str) -> None:
        """Flag an alert for user attention (e.g. its symbol no longer exists)."""
        ...

    @abstractmethod
    async def delete(self, alert_id: UUID) -> None:
        """Delete an alert."""
        ...

    @abstractmethod
    async def get_stats(self, owner_id: str) -> AlertStats:
        """Aggregate alert counts for an owner."""
        ...
