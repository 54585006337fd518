"""Technical indicator calculations.

Pure functions over a close-price sequence ordered oldest first. Each
returns ``None`` when the sequence is too short for the requested period
(insufficient data); callers must tolerate warm-up windows.

Formulas:
- SMA: mean of the last `period` closes
- EMA: seeded with the SMA of the FIRST `period` closes, then
  ema = (price - ema) × 2/(period+1) + ema over every later close
- RSI: simple average of the last `period` gains/losses (not Wilder's smoothing)
- MACD: EMA(12) - EMA(26), line only
- Bollinger: SMA(20) ± 2 × population standard deviation of the same window

EMA depends on the whole history through its seed. Always pass the full
available series; an EMA over the last N bars is a different number.
"""

import math
from datetime import datetime
from typing import Sequence

from stockwatch.domain.models.indicators import (
    BollingerBands,
    IndicatorSet,
    MACDValue,
    MetricSnapshot,
)
from stockwatch.domain.models.market import PriceSeries
from stockwatch.domain.rules import (
    BOLLINGER_MULTIPLIER,
    BOLLINGER_PERIOD,
    EMA_FAST_PERIOD,
    EMA_SLOW_PERIOD,
    MACD_FAST_PERIOD,
    MACD_SLOW_PERIOD,
    RSI_PERIOD,
    SMA_LONG_PERIOD,
    SMA_SHORT_PERIOD,
)


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")


def calculate_sma(prices: Sequence[float], period: int) -> float | None:
    """Calculate Simple Moving Average of the last `period` prices.

    Args:
        prices: Close prices, oldest first
        period: Number of trailing prices to average

    Returns:
        SMA value, or None if fewer than `period` prices
    """
    _check_period(period)
    if len(prices) < period:
        return None

    window = prices[-period:]
    return sum(window) / period


def calculate_ema(prices: Sequence[float], period: int) -> float | None:
    """Calculate Exponential Moving Average over the whole series.

    Args:
        prices: Close prices, oldest first (the full available history)
        period: EMA period

    Returns:
        EMA as of the last price, or None if fewer than `period` prices
    """
    _check_period(period)
    if len(prices) < period:
        return None

    multiplier = 2 / (period + 1)

    # First EMA is the SMA of the first `period` prices
    ema = sum(prices[:period]) / period

    for price in prices[period:]:
        ema = (price - ema) * multiplier + ema

    return ema


def calculate_rsi(prices: Sequence[float], period: int = RSI_PERIOD) -> float | None:
    """Calculate Relative Strength Index from trailing simple averages.

    RSI = 100 - 100 / (1 + avg_gain / avg_loss), and 100 when avg_loss is 0.

    Args:
        prices: Close prices, oldest first
        period: Number of trailing price changes to average (default 14)

    Returns:
        RSI in [0, 100], or None if fewer than `period + 1` prices
    """
    _check_period(period)
    if len(prices) < period + 1:
        return None

    gains: list[float] = []
    losses: list[float] = []
    for prev, price in zip(prices, prices[1:]):
        delta = price - prev
        gains.append(max(delta, 0.0))
        losses.append(max(-delta, 0.0))

    avg_gain = sum(gains[-period:]) / period
    avg_loss = sum(losses[-period:]) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def calculate_macd(
    prices: Sequence[float],
    fast_period: int = MACD_FAST_PERIOD,
    slow_period: int = MACD_SLOW_PERIOD,
) -> MACDValue | None:
    """Calculate the MACD line.

    Only the line is computed. The signal line would need a history of
    MACD values, so signal and histogram are always None.

    Args:
        prices: Close prices, oldest first
        fast_period: Fast EMA period (default 12)
        slow_period: Slow EMA period (default 26)

    Returns:
        MACDValue, or None if either EMA lacks data
    """
    fast = calculate_ema(prices, fast_period)
    slow = calculate_ema(prices, slow_period)
    if fast is None or slow is None:
        return None

    return MACDValue(value=fast - slow)


def calculate_bollinger_bands(
    prices: Sequence[float],
    period: int = BOLLINGER_PERIOD,
    multiplier: float = BOLLINGER_MULTIPLIER,
) -> BollingerBands | None:
    """Calculate Bollinger Bands.

    Middle = SMA(period). Std dev is the population standard deviation
    (divide by `period`) of the same trailing window.

    Args:
        prices: Close prices, oldest first
        period: Window length (default 20)
        multiplier: Band width in standard deviations (default 2)

    Returns:
        BollingerBands, or None if fewer than `period` prices
    """
    middle = calculate_sma(prices, period)
    if middle is None:
        return None

    window = prices[-period:]
    variance = sum((price - middle) ** 2 for price in window) / period
    std_dev = math.sqrt(variance)

    return BollingerBands(
        upper=middle + multiplier * std_dev,
        middle=middle,
        lower=middle - multiplier * std_dev,
    )


def percent_change(prices: Sequence[float]) -> float | None:
    """Percent change of the last price vs the one before it.

    Returns:
        Change in percent, or None with fewer than 2 prices or a zero base
    """
    if len(prices) < 2 or prices[-2] == 0:
        return None
    return (prices[-1] - prices[-2]) / prices[-2] * 100


def compute_indicators(series: PriceSeries) -> IndicatorSet:
    """Compute the full indicator set for a series as of its last bar.

    Args:
        series: Price series, oldest first

    Returns:
        IndicatorSet; fields without enough data are None
    """
    closes = series.closes
    last_bar = series.last_bar

    return IndicatorSet(
        as_of=last_bar.date if last_bar else None,
        sma20=calculate_sma(closes, SMA_SHORT_PERIOD),
        sma50=calculate_sma(closes, SMA_LONG_PERIOD),
        ema12=calculate_ema(closes, EMA_FAST_PERIOD),
        ema26=calculate_ema(closes, EMA_SLOW_PERIOD),
        rsi14=calculate_rsi(closes, RSI_PERIOD),
        macd=calculate_macd(closes),
        bollinger=calculate_bollinger_bands(closes),
    )


def build_snapshot(series: PriceSeries, computed_at: datetime) -> MetricSnapshot:
    """Compute every metric alerts may compare against, for now and one bar back.

    Args:
        series: Working series (history with the latest quote merged in)
        computed_at: Timestamp for the snapshot

    Returns:
        MetricSnapshot shared by all alerts on the symbol
    """
    closes = series.closes
    volumes = series.volumes
    previous_series = series.without_last() if len(series) > 0 else series

    return MetricSnapshot(
        symbol=series.symbol,
        computed_at=computed_at,
        bar_count=len(series),
        current=compute_indicators(series),
        previous=compute_indicators(previous_series),
        price=closes[-1] if closes else None,
        previous_price=closes[-2] if len(closes) >= 2 else None,
        volume=float(volumes[-1]) if volumes else None,
        previous_volume=float(volumes[-2]) if len(volumes) >= 2 else None,
        change_percent=percent_change(closes),
        previous_change_percent=percent_change(closes[:-1]),
    )
