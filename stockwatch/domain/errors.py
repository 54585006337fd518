"""Exception taxonomy for the alert engine.

Insufficient indicator data is deliberately absent here: it is an expected
warm-up condition and travels as ``None`` / ``EvaluationOutcome.INSUFFICIENT_DATA``.
"""


class StockwatchError(Exception):
    """Base class for alert engine errors."""

    pass


class DataSourceError(StockwatchError):
    """Raised when a price-data source cannot serve a request."""

    def __init__(self, symbol: str, message: str) -> None:
        super().__init__(f"{symbol}: {message}")
        self.symbol = symbol


class DataSourceTransientError(DataSourceError):
    """Timeout, rate limit or network failure. Retried on the next tick."""

    pass


class DataSourceFatalError(DataSourceError):
    """Symbol unknown or permanently without data. Not retried until the alert changes."""

    pass


class InvalidAlertDefinitionError(StockwatchError, ValueError):
    """Raised when an alert definition is rejected at creation time."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


class NotificationError(StockwatchError):
    """Raised by a notifier when delivery fails."""

    pass


class TriggerStateConflictError(StockwatchError):
    """Raised when an optimistic trigger-state update loses a race."""

    def __init__(self, alert_id, expected_trigger_count: int) -> None:
        super().__init__(
            f"Alert {alert_id} trigger state changed concurrently "
            f"(expected trigger_count={expected_trigger_count})"
        )
        self.alert_id = alert_id
        self.expected_trigger_count = expected_trigger_count
