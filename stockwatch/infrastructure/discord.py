"""Discord webhook notifications for triggered alerts."""

import httpx

from stockwatch.domain.errors import NotificationError
from stockwatch.domain.interfaces.notifier import Notifier
from stockwatch.domain.models.alert import TriggerEvent
from stockwatch.domain.models.enums import AlertType, Condition
from stockwatch.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _format_value(event: TriggerEvent, value: float) -> str:
    """Format a metric value the way users read it."""
    if event.alert_type == AlertType.PRICE:
        return f"${value:,.2f}"
    if event.alert_type == AlertType.VOLUME:
        return f"{value:,.0f}"
    if event.alert_type == AlertType.CHANGE:
        return f"{value:+.2f}%"
    return f"{value:.4g}"


def build_payload(event: TriggerEvent) -> dict:
    """Build the Discord webhook payload for a trigger event.

    Args:
        event: Trigger event to describe

    Returns:
        JSON-serialisable webhook body with a single embed
    """
    rising = event.condition in (Condition.ABOVE, Condition.CROSSES_ABOVE)
    emoji = "🟢" if rising else "🔴" if event.condition != Condition.EQUALS else "🔔"

    metric = event.alert_type.value.upper()
    if event.indicator_type is not None:
        metric = event.indicator_type.value.upper()

    fields = [
        {"name": metric, "value": _format_value(event, event.metric_value), "inline": True},
        {"name": "Target", "value": _format_value(event, event.target_value), "inline": True},
        {"name": "Condition", "value": event.condition.value.replace("_", " "), "inline": True},
        {"name": "Times triggered", "value": str(event.trigger_count), "inline": True},
    ]
    if event.previous_value is not None:
        fields.append(
            {
                "name": "Previous",
                "value": _format_value(event, event.previous_value),
                "inline": True,
            }
        )

    embed = {
        "title": f"{emoji} {event.symbol} - {event.description or metric}",
        "description": event.message or "Alert condition met",
        "color": 0x00FF00 if rising else 0xFF0000,
        "fields": fields,
        "timestamp": event.timestamp.isoformat(),
    }

    return {"embeds": [embed]}


class DiscordNotifier(Notifier):
    """Posts trigger events to a Discord webhook."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the notifier.

        Args:
            webhook_url: Discord webhook URL
            timeout: Request timeout in seconds
            client: Optional shared client (a fresh one per call otherwise)
        """
        self._webhook_url = webhook_url
        self._timeout = timeout
        self._client = client

    @property
    def channel(self) -> str:
        """Delivery channel name."""
        return "discord"

    async def notify(self, owner_id: str, event: TriggerEvent) -> None:
        """Post the event to the webhook.

        Raises:
            NotificationError: If no webhook is configured, the request
                fails, or Discord does not answer 204
        """
        if not self._webhook_url:
            raise NotificationError("Discord webhook URL not configured")

        payload = build_payload(event)

        try:
            if self._client is not None:
                response = await self._client.post(
                    self._webhook_url, json=payload, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self._webhook_url, json=payload, timeout=self._timeout
                    )
        except httpx.HTTPError as e:
            raise NotificationError(f"Discord notification failed: {e}") from e

        if response.status_code != 204:
            raise NotificationError(
                f"Discord webhook returned {response.status_code} for alert {event.alert_id}"
            )

        logger.info(f"Notified {owner_id} via Discord: {event.symbol} alert {event.alert_id}")


class LoggingNotifier(Notifier):
    """Logs trigger events instead of delivering them (dry runs, local use)."""

    @property
    def channel(self) -> str:
        """Delivery channel name."""
        return "log"

    async def notify(self, owner_id: str, event: TriggerEvent) -> None:
        """Log the event."""
        logger.info(
            f"[dry-run] {event.symbol}: {event.description} "
            f"(value={event.metric_value:g}, owner={owner_id}, count={event.trigger_count})"
        )
