"""Market hours gate for the monitoring scheduler.

Ticks are only meaningful Monday-Friday between the configured open and
close (inclusive), in the exchange's local time zone.
"""

from datetime import datetime, time
from zoneinfo import ZoneInfo

from stockwatch.domain.rules import (
    DEFAULT_MARKET_CLOSE,
    DEFAULT_MARKET_OPEN,
    DEFAULT_MARKET_TIMEZONE,
)


class MarketHours:
    """Regular trading session for one exchange."""

    def __init__(
        self,
        timezone: str = DEFAULT_MARKET_TIMEZONE,
        open_time: time = DEFAULT_MARKET_OPEN,
        close_time: time = DEFAULT_MARKET_CLOSE,
    ):
        """Initialize market hours.

        Args:
            timezone: IANA zone of the exchange (default America/New_York)
            open_time: Session open, local time
            close_time: Session close, local time
        """
        if close_time <= open_time:
            raise ValueError(f"close_time {close_time} must be after open_time {open_time}")

        self.timezone = ZoneInfo(timezone)
        self.open_time = open_time
        self.close_time = close_time

    def local_time(self, now: datetime) -> datetime:
        """Convert an aware timestamp to exchange-local time."""
        return now.astimezone(self.timezone)

    def is_open(self, now: datetime) -> bool:
        """Check whether the market is open at `now`.

        Args:
            now: Aware timestamp

        Returns:
            True on weekdays between open and close (inclusive)
        """
        local = self.local_time(now)

        # Saturday = 5, Sunday = 6
        if local.weekday() >= 5:
            return False

        return self.open_time <= local.time() <= self.close_time


def parse_clock(value: str) -> time:
    """Parse 'HH:MM' into a time."""
    hour, minute = value.split(":")
    return time(int(hour), int(minute))
