"""Computed indicator models.

These are derived values, recomputed every evaluation cycle and never
treated as authoritative state. ``None`` means the indicator could not be
computed for the available window (insufficient data).
"""

from datetime import date, datetime

from pydantic import BaseModel


class MACDValue(BaseModel):
    """MACD line. Signal and histogram need a MACD history and are never computed."""

    model_config = {"frozen": True}

    value: float
    signal: float | None = None
    histogram: float | None = None


class BollingerBands(BaseModel):
    """Bollinger Bands around an SMA middle band."""

    model_config = {"frozen": True}

    upper: float
    middle: float
    lower: float

    @property
    def width(self) -> float:
        """Distance between upper and lower band."""
        return self.upper - self.lower

    def percent_b(self, price: float) -> float | None:
        """Position of price within the bands (0 = lower, 1 = upper).

        Returns:
            %B, or None when the bands have zero width
        """
        if self.width == 0:
            return None
        return (price - self.lower) / self.width


class IndicatorSet(BaseModel):
    """Indicator snapshot for a price series as of its last bar."""

    model_config = {"frozen": True}

    as_of: date | None = None
    sma20: float | None = None
    sma50: float | None = None
    ema12: float | None = None
    ema26: float | None = None
    rsi14: float | None = None
    macd: MACDValue | None = None
    bollinger: BollingerBands | None = None


class MetricSnapshot(BaseModel):
    """Everything alerts on one symbol are evaluated against in one tick.

    Computed once per symbol per tick so every alert on the symbol sees
    the same data. ``previous`` values come from the same series one bar back.
    """

    model_config = {"frozen": True}

    symbol: str
    computed_at: datetime
    bar_count: int

    current: IndicatorSet
    previous: IndicatorSet

    price: float | None = None
    previous_price: float | None = None
    volume: float | None = None
    previous_volume: float | None = None
    change_percent: float | None = None
    previous_change_percent: float | None = None
