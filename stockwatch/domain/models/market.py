"""Market data domain models."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class PriceBar(BaseModel):
    """OHLCV price bar - immutable value object."""

    model_config = {"frozen": True}

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_ohlc(self) -> "PriceBar":
        """Validate low <= open, close <= high once every price is known.

        Non-finite prices pass here and are dropped by the bar-quality checks.
        """
        if self.high < self.low:
            raise ValueError("high must be >= low")
        if self.high < self.open or self.high < self.close:
            raise ValueError("high must be >= open and close")
        if self.low > self.open or self.low > self.close:
            raise ValueError("low must be <= open and close")
        return self


class Quote(BaseModel):
    """Latest quote for a symbol, as served by the price-data source."""

    model_config = {"frozen": True}

    symbol: str
    price: float = Field(..., gt=0)
    change: float = 0.0
    change_percent: float = 0.0
    volume: int = Field(default=0, ge=0)
    timestamp: datetime


class PriceSeries(BaseModel):
    """Ordered bars for one symbol - the unit indicators operate on.

    Dates must be strictly increasing. Gaps are allowed: indicators work
    positionally, not by calendar.
    """

    model_config = {"frozen": True}

    symbol: str
    bars: tuple[PriceBar, ...] = ()

    @field_validator("bars")
    @classmethod
    def dates_strictly_increasing(cls, v: tuple[PriceBar, ...]) -> tuple[PriceBar, ...]:
        """Validate bars are ordered oldest first with no duplicate dates."""
        for prev, bar in zip(v, v[1:]):
            if bar.date <= prev.date:
                raise ValueError(f"bar dates must be strictly increasing ({prev.date} >= {bar.date})")
        return v

    def __len__(self) -> int:
        return len(self.bars)

    @property
    def closes(self) -> list[float]:
        """Close prices, oldest first."""
        return [bar.close for bar in self.bars]

    @property
    def volumes(self) -> list[int]:
        """Volumes, oldest first."""
        return [bar.volume for bar in self.bars]

    @property
    def last_bar(self) -> PriceBar | None:
        """Most recent bar, or None for an empty series."""
        return self.bars[-1] if self.bars else None

    def without_last(self) -> "PriceSeries":
        """Return the series as it looked one bar earlier."""
        return PriceSeries(symbol=self.symbol, bars=self.bars[:-1])

    def with_quote(self, quote: Quote | None) -> "PriceSeries":
        """Merge the latest quote into the series.

        - Quote dated after the last bar: appended as a flat synthetic bar.
        - Quote dated on the last bar's day: replaces that bar's close/volume
          (intraday refresh), widening high/low if needed.
        - Quote dated before the last bar, or no quote: series unchanged.

        Args:
            quote: Latest quote, or None

        Returns:
            New PriceSeries including the quote
        """
        if quote is None:
            return self

        quote_date = quote.timestamp.date()
        last = self.last_bar

        if last is None or quote_date > last.date:
            synthetic = PriceBar(
                date=quote_date,
                open=quote.price,
                high=quote.price,
                low=quote.price,
                close=quote.price,
                volume=quote.volume,
            )
            return PriceSeries(symbol=self.symbol, bars=self.bars + (synthetic,))

        if quote_date == last.date:
            refreshed = PriceBar(
                date=last.date,
                open=last.open,
                high=max(last.high, quote.price),
                low=min(last.low, quote.price),
                close=quote.price,
                volume=quote.volume or last.volume,
            )
            return PriceSeries(symbol=self.symbol, bars=self.bars[:-1] + (refreshed,))

        return self
