"""PostgreSQL implementation of AlertRepository."""

from datetime import datetime, timedelta
from uuid import UUID

from pydantic import ValidationError

from stockwatch.domain.errors import TriggerStateConflictError
from stockwatch.domain.interfaces.repositories import AlertRepository
from stockwatch.domain.models.alert import AlertDefinition, AlertStats
from stockwatch.domain.models.enums import AlertType, Condition, IndicatorType
from stockwatch.infrastructure.database import execute, execute_rowcount, fetch, fetchrow
from stockwatch.infrastructure.logging import get_logger

logger = get_logger(__name__)

_COLUMNS = """
    id, owner_id, symbol, alert_type, indicator_type, indicator_period,
    condition, target_value, cooldown_seconds, is_active, trigger_count,
    last_triggered, expires_at, description, message, attention_reason,
    created_at, updated_at
"""


class PostgresAlertRepository(AlertRepository):
    """PostgreSQL implementation of alert definition persistence.

    Definition writes and trigger-state writes touch disjoint columns, so
    user edits and monitor triggers cannot overwrite each other.
    """

    async def save(self, alert: AlertDefinition) -> None:
        """Insert an alert, or update its definition fields."""
        await execute(
            f"""
            INSERT INTO alert_definitions ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11,
                    $12, $13, $14, $15, $16, $17, $18)
            ON CONFLICT (id) DO UPDATE SET
                symbol = EXCLUDED.symbol,
                alert_type = EXCLUDED.alert_type,
                indicator_type = EXCLUDED.indicator_type,
                indicator_period = EXCLUDED.indicator_period,
                condition = EXCLUDED.condition,
                target_value = EXCLUDED.target_value,
                cooldown_seconds = EXCLUDED.cooldown_seconds,
                is_active = EXCLUDED.is_active,
                expires_at = EXCLUDED.expires_at,
                description = EXCLUDED.description,
                message = EXCLUDED.message,
                attention_reason = EXCLUDED.attention_reason,
                updated_at = EXCLUDED.updated_at
            """,
            alert.id,
            alert.owner_id,
            alert.symbol,
            alert.alert_type.value,
            alert.indicator_type.value if alert.indicator_type else None,
            alert.indicator_period,
            alert.condition.value,
            alert.target_value,
            int(alert.cooldown_period.total_seconds()),
            alert.is_active,
            alert.trigger_count,
            alert.last_triggered,
            alert.expires_at,
            alert.description,
            alert.message,
            alert.attention_reason,
            alert.created_at,
            alert.updated_at,
        )

    async def get(self, alert_id: UUID) -> AlertDefinition | None:
        """Get an alert by id."""
        row = await fetchrow(
            f"SELECT {_COLUMNS} FROM alert_definitions WHERE id = $1",
            alert_id,
        )
        return self._row_to_alert(row) if row else None

    async def list_active_alerts(self) -> list[AlertDefinition]:
        """List active, unexpired alerts. Invalid rows are logged and skipped."""
        rows = await fetch(
            f"""
            SELECT {_COLUMNS}
            FROM alert_definitions
            WHERE is_active = TRUE
              AND (expires_at IS NULL OR expires_at >= NOW())
            ORDER BY symbol, created_at
            """
        )
        return self._rows_to_alerts(rows)

    async def list_by_owner(self, owner_id: str) -> list[AlertDefinition]:
        """List an owner's alerts, newest first."""
        rows = await fetch(
            f"""
            SELECT {_COLUMNS}
            FROM alert_definitions
            WHERE owner_id = $1
            ORDER BY created_at DESC
            """,
            owner_id,
        )
        return self._rows_to_alerts(rows)

    async def update_trigger_state(
        self,
        alert_id: UUID,
        expected_trigger_count: int,
        trigger_count: int,
        last_triggered: datetime | None,
    ) -> None:
        """Compare-and-set trigger state on trigger_count."""
        updated = await execute_rowcount(
            """
            UPDATE alert_definitions
            SET trigger_count = $3, last_triggered = $4
            WHERE id = $1 AND trigger_count = $2
            """,
            alert_id,
            expected_trigger_count,
            trigger_count,
            last_triggered,
        )
        if updated == 0:
            raise TriggerStateConflictError(alert_id, expected_trigger_count)

    async def flag_attention(self, alert_id: UUID, reason: str) -> None:
        """Record why an alert needs the user's attention."""
        await execute(
            "UPDATE alert_definitions SET attention_reason = $2 WHERE id = $1",
            alert_id,
            reason,
        )

    async def delete(self, alert_id: UUID) -> None:
        """Delete an alert."""
        await execute("DELETE FROM alert_definitions WHERE id = $1", alert_id)

    async def get_stats(self, owner_id: str) -> AlertStats:
        """Aggregate an owner's alert counts."""
        row = await fetchrow(
            """
            SELECT
                COUNT(*) AS total_alerts,
                COUNT(*) FILTER (WHERE is_active) AS active_alerts,
                COUNT(*) FILTER (WHERE last_triggered IS NOT NULL) AS triggered_alerts,
                COALESCE(SUM(trigger_count), 0) AS total_triggers
            FROM alert_definitions
            WHERE owner_id = $1
            """,
            owner_id,
        )
        if row is None:
            return AlertStats()
        return AlertStats(
            total_alerts=row["total_alerts"],
            active_alerts=row["active_alerts"],
            triggered_alerts=row["triggered_alerts"],
            total_triggers=row["total_triggers"],
        )

    def _rows_to_alerts(self, rows) -> list[AlertDefinition]:
        """Convert rows, skipping (and reporting) any that fail validation."""
        alerts: list[AlertDefinition] = []
        for row in rows:
            try:
                alerts.append(self._row_to_alert(row))
            except (ValidationError, ValueError) as e:
                logger.error(f"Skipping invalid alert definition {row['id']}: {e}")
        return alerts

    def _row_to_alert(self, row) -> AlertDefinition:
        """Convert database row to AlertDefinition model."""
        return AlertDefinition(
            id=row["id"] if isinstance(row["id"], UUID) else UUID(row["id"]),
            owner_id=row["owner_id"],
            symbol=row["symbol"],
            alert_type=AlertType(row["alert_type"]),
            indicator_type=IndicatorType(row["indicator_type"]) if row["indicator_type"] else None,
            indicator_period=row["indicator_period"],
            condition=Condition(row["condition"]),
            target_value=float(row["target_value"]),
            cooldown_period=timedelta(seconds=row["cooldown_seconds"]),
            is_active=row["is_active"],
            trigger_count=row["trigger_count"],
            last_triggered=row["last_triggered"],
            expires_at=row["expires_at"],
            description=row["description"] or "",
            message=row["message"],
            attention_reason=row["attention_reason"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
