"""Yahoo Finance price-data source."""

import asyncio
import math
from zoneinfo import ZoneInfo

import yfinance as yf

from stockwatch.domain.errors import DataSourceFatalError, DataSourceTransientError
from stockwatch.domain.interfaces.data_feed import PriceDataSource
from stockwatch.domain.models.market import PriceBar, Quote
from stockwatch.domain.rules import DEFAULT_MARKET_TIMEZONE
from stockwatch.domain.services.validation import filter_valid_bars, order_bars
from stockwatch.infrastructure.logging import get_logger

logger = get_logger(__name__)


class YahooPriceSource(PriceDataSource):
    """Yahoo Finance implementation of the price-data source.

    yfinance is synchronous, so every call runs in the default thread pool.

    Error mapping:
    - Any exception raised while talking to Yahoo -> DataSourceTransientError
    - Yahoo answers but has no data for the symbol -> DataSourceFatalError
    """

    def __init__(
        self,
        auto_adjust: bool = True,
        market_timezone: str = DEFAULT_MARKET_TIMEZONE,
    ):
        """Initialize Yahoo Finance source.

        Args:
            auto_adjust: Adjust history for splits/dividends
            market_timezone: Zone used to stamp quotes (bar dates are exchange-local)
        """
        self._auto_adjust = auto_adjust
        self._tz = ZoneInfo(market_timezone)

    @property
    def source_name(self) -> str:
        """Return data source name."""
        return "yahoo"

    async def get_quote(self, symbol: str) -> Quote:
        """Get the latest quote from Yahoo.

        Args:
            symbol: Ticker symbol

        Returns:
            Quote stamped with the exchange-local time of the last trading
            session, so a weekend quote carries Friday's date.
        """
        loop = asyncio.get_running_loop()
        try:
            info = await loop.run_in_executor(None, lambda: self._fetch_fast_info(symbol))
        except Exception as e:
            raise DataSourceTransientError(symbol, f"Yahoo quote request failed: {e}") from e

        price = info.get("last_price")
        if not price or not math.isfinite(price) or price <= 0:
            raise DataSourceFatalError(symbol, "No price from Yahoo")

        session = info.get("session")
        if session is None:
            raise DataSourceTransientError(symbol, "No recent session from Yahoo")
        timestamp = session.to_pydatetime() if hasattr(session, "to_pydatetime") else session
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=self._tz)
        else:
            timestamp = timestamp.astimezone(self._tz)

        previous_close = info.get("previous_close") or 0.0
        change = price - previous_close if previous_close else 0.0
        change_percent = (change / previous_close * 100) if previous_close else 0.0

        return Quote(
            symbol=symbol,
            price=float(price),
            change=float(change),
            change_percent=float(change_percent),
            volume=int(info.get("last_volume") or 0),
            timestamp=timestamp,
        )

    async def get_history(
        self,
        symbol: str,
        days: int = 60,
        interval: str = "1d",
    ) -> list[PriceBar]:
        """Fetch historical OHLCV bars from Yahoo Finance.

        Args:
            symbol: Ticker symbol
            days: Number of bars wanted
            interval: Bar interval

        Returns:
            List of PriceBar objects, oldest first.
        """
        # Calendar buffer for weekends/holidays
        period = f"{int(days * 1.5) + 10}d"

        loop = asyncio.get_running_loop()
        try:
            df = await loop.run_in_executor(
                None,
                lambda: self._fetch_history(symbol, period, interval),
            )
        except Exception as e:
            raise DataSourceTransientError(symbol, f"Yahoo history request failed: {e}") from e

        if df is None or df.empty:
            raise DataSourceFatalError(symbol, "No history from Yahoo")

        bars: list[PriceBar] = []
        for idx, row in df.iterrows():
            try:
                bar = PriceBar(
                    date=idx.date() if hasattr(idx, "date") else idx,
                    open=float(row["Open"]),
                    high=float(row["High"]),
                    low=float(row["Low"]),
                    close=float(row["Close"]),
                    volume=int(row["Volume"]) if row["Volume"] > 0 else 0,
                )
            except (ValueError, TypeError) as e:
                logger.debug(f"Skipping malformed Yahoo bar for {symbol} at {idx}: {e}")
                continue
            bars.append(bar)

        bars = order_bars(filter_valid_bars(bars))
        if not bars:
            raise DataSourceFatalError(symbol, "No valid bars from Yahoo")

        # Return only requested number of bars
        return bars[-days:] if len(bars) > days else bars

    def _fetch_history(self, symbol: str, period: str, interval: str):
        """Synchronous Yahoo Finance history fetch."""
        ticker = yf.Ticker(symbol)
        return ticker.history(
            period=period,
            interval=interval,
            auto_adjust=self._auto_adjust,
        )

    def _fetch_fast_info(self, symbol: str) -> dict:
        """Synchronous quote fetch, with the timestamp of the last session bar."""
        ticker = yf.Ticker(symbol)
        info = ticker.fast_info
        recent = ticker.history(period="1d")
        return {
            "last_price": getattr(info, "last_price", None),
            "previous_close": getattr(info, "previous_close", None),
            "last_volume": getattr(info, "last_volume", None),
            "session": recent.index[-1] if recent is not None and not recent.empty else None,
        }
