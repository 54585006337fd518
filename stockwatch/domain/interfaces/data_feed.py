"""Price-data source interface (port) - defines how to fetch market data."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stockwatch.domain.models.market import PriceBar, Quote


class PriceDataSource(ABC):
    """Abstract interface for market data sources.

    This is a port in Clean Architecture - defines what the domain needs
    without specifying implementation details.

    Implementations must raise DataSourceTransientError for timeouts,
    rate limits and network failures, and DataSourceFatalError when the
    symbol does not exist or has no data at all.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return the name of this data source (e.g., 'yahoo')."""
        ...

    @abstractmethod
    async def get_quote(self, symbol: str) -> "Quote":
        """Get the latest quote for a symbol.

        Args:
            symbol: Ticker symbol (e.g., 'AAPL')

        Returns:
            Quote with price, change, change percent, volume and timestamp.
        """
        ...

    @abstractmethod
    async def get_history(
        self,
        symbol: str,
        days: int = 60,
        interval: str = "1d",
    ) -> list["PriceBar"]:
        """Fetch historical OHLCV bars for a symbol.

        Args:
            symbol: Ticker symbol
            days: Number of bars of history to fetch
            interval: Bar interval (default daily)

        Returns:
            List of PriceBar objects, oldest first.
        """
        ...
