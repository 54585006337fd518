"""Alert engine rules configuration.

Indicator periods, comparison tolerances and scheduling defaults are
defined here as constants so they are explicit and testable.
"""

from datetime import time, timedelta
from typing import Final

# =============================================================================
# INDICATOR PERIODS
# =============================================================================

SMA_SHORT_PERIOD: Final[int] = 20
SMA_LONG_PERIOD: Final[int] = 50

EMA_FAST_PERIOD: Final[int] = 12
EMA_SLOW_PERIOD: Final[int] = 26

RSI_PERIOD: Final[int] = 14

# MACD line = EMA(fast) - EMA(slow). Signal line is never computed.
MACD_FAST_PERIOD: Final[int] = EMA_FAST_PERIOD
MACD_SLOW_PERIOD: Final[int] = EMA_SLOW_PERIOD

BOLLINGER_PERIOD: Final[int] = 20
BOLLINGER_MULTIPLIER: Final[float] = 2.0

# Periods an alert may select via indicator_period, per indicator.
# Only periods carried by the shared IndicatorSet are allowed.
SUPPORTED_INDICATOR_PERIODS: Final[dict[str, tuple[int, ...]]] = {
    "sma": (SMA_SHORT_PERIOD, SMA_LONG_PERIOD),
    "ema": (EMA_FAST_PERIOD, EMA_SLOW_PERIOD),
    "rsi": (RSI_PERIOD,),
    "bollinger": (BOLLINGER_PERIOD,),
    "macd": (),
}


# =============================================================================
# CONDITION TOLERANCES
# =============================================================================

# `equals` tolerance for price-like magnitudes (price, volume, change, SMA, EMA, MACD)
PRICE_EPSILON: Final[float] = 0.01

# `equals` tolerance for dimensionless indicators (RSI, Bollinger %B)
INDICATOR_EPSILON: Final[float] = 0.001


# =============================================================================
# ALERT LIFECYCLE
# =============================================================================

DEFAULT_COOLDOWN: Final[timedelta] = timedelta(minutes=60)

DESCRIPTION_MAX_LENGTH: Final[int] = 200
MESSAGE_MAX_LENGTH: Final[int] = 500


# =============================================================================
# MONITORING SCHEDULE
# =============================================================================

DEFAULT_CHECK_INTERVAL: Final[timedelta] = timedelta(minutes=15)

# Enough closes for the slowest EMA (26) with room for warm-up
MIN_HISTORY_BARS: Final[int] = 60

DEFAULT_MARKET_TIMEZONE: Final[str] = "America/New_York"
DEFAULT_MARKET_OPEN: Final[time] = time(9, 30)
DEFAULT_MARKET_CLOSE: Final[time] = time(16, 0)
