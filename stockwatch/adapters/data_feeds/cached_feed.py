"""Caching wrapper around a price-data source."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Generic, TypeVar

from stockwatch.domain.interfaces.data_feed import PriceDataSource
from stockwatch.domain.models.alert import utc_now
from stockwatch.domain.models.market import PriceBar, Quote
from stockwatch.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _Entry(Generic[T]):
    value: T
    fetched_at: datetime


class CachedPriceSource(PriceDataSource):
    """Serves recent quotes/history from memory, bounded by a freshness window.

    An entry older than its TTL is never served: it is refetched, and if
    the refetch fails the error propagates rather than falling back to
    stale data. Errors are not cached.
    """

    def __init__(
        self,
        source: PriceDataSource,
        quote_ttl: timedelta = timedelta(minutes=5),
        history_ttl: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the cache.

        Args:
            source: Underlying price-data source
            quote_ttl: Maximum age of a cached quote
            history_ttl: Maximum age of cached history
            clock: Time source (injectable for tests)
        """
        self._source = source
        self._quote_ttl = quote_ttl
        self._history_ttl = history_ttl
        self._clock = clock

        self._quotes: dict[str, _Entry[Quote]] = {}
        self._history: dict[tuple[str, int, str], _Entry[list[PriceBar]]] = {}

    @property
    def source_name(self) -> str:
        """Name of the wrapped source."""
        return self._source.source_name

    async def get_quote(self, symbol: str) -> Quote:
        """Get a quote, from cache if fresh."""
        entry = self._quotes.get(symbol)
        if entry is not None and self._is_fresh(entry, self._quote_ttl):
            logger.debug(f"Quote cache hit for {symbol}")
            return entry.value

        quote = await self._source.get_quote(symbol)
        self._quotes[symbol] = _Entry(quote, self._clock())
        return quote

    async def get_history(
        self,
        symbol: str,
        days: int = 60,
        interval: str = "1d",
    ) -> list[PriceBar]:
        """Get history, from cache if fresh."""
        key = (symbol, days, interval)
        entry = self._history.get(key)
        if entry is not None and self._is_fresh(entry, self._history_ttl):
            logger.debug(f"History cache hit for {symbol}")
            return list(entry.value)

        bars = await self._source.get_history(symbol, days, interval)
        self._history[key] = _Entry(list(bars), self._clock())
        return bars

    def invalidate(self, symbol: str | None = None) -> None:
        """Drop cached entries for one symbol, or everything."""
        if symbol is None:
            self._quotes.clear()
            self._history.clear()
            return

        self._quotes.pop(symbol, None)
        for key in [k for k in self._history if k[0] == symbol]:
            del self._history[key]

    def _is_fresh(self, entry: _Entry, ttl: timedelta) -> bool:
        return self._clock() - entry.fetched_at < ttl
