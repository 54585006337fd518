"""Notification sink interface (port)."""

from abc import ABC, abstractmethod

from stockwatch.domain.models.alert import TriggerEvent


class Notifier(ABC):
    """Delivers trigger events to alert owners.

    Fire-and-forget from the engine's perspective: a failed delivery is
    logged, never retried by re-triggering the alert.
    """

    @property
    @abstractmethod
    def channel(self) -> str:
        """Name of the delivery channel (e.g., 'discord')."""
        ...

    @abstractmethod
    async def notify(self, owner_id: str, event: TriggerEvent) -> None:
        """Deliver a trigger event.

        Args:
            owner_id: Alert owner to notify
            event: Trigger event to deliver

        Raises:
            NotificationError: If delivery failed
        """
        ...
