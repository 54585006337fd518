"""Unit tests for CachedPriceSource."""

from datetime import UTC, datetime, timedelta

import pytest

from stockwatch.adapters.data_feeds.cached_feed import CachedPriceSource
from stockwatch.domain.errors import DataSourceTransientError


class Clock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = datetime(2024, 6, 3, 14, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(price_source, clock):
    price_source.set_closes("XYZ", [10.0, 11.0, 12.0])
    return CachedPriceSource(
        price_source,
        quote_ttl=timedelta(minutes=5),
        history_ttl=timedelta(minutes=15),
        clock=clock,
    )


class TestQuoteCache:
    """Tests for quote caching."""

    async def test_fresh_quote_served_from_cache(self, cache, price_source, clock):
        first = await cache.get_quote("XYZ")
        clock.advance(minutes=4)
        second = await cache.get_quote("XYZ")

        assert first == second
        assert price_source.quote_calls == ["XYZ"]

    async def test_stale_quote_refetched(self, cache, price_source, clock):
        await cache.get_quote("XYZ")
        clock.advance(minutes=5)
        await cache.get_quote("XYZ")

        assert price_source.quote_calls == ["XYZ", "XYZ"]

    async def test_stale_quote_not_served_when_refetch_fails(self, cache, price_source, clock):
        """An expired entry is never a fallback for a failed fetch."""
        await cache.get_quote("XYZ")
        clock.advance(minutes=10)
        price_source.errors["XYZ"] = DataSourceTransientError("XYZ", "timeout")

        with pytest.raises(DataSourceTransientError):
            await cache.get_quote("XYZ")

    async def test_errors_not_cached(self, cache, price_source):
        price_source.errors["XYZ"] = DataSourceTransientError("XYZ", "timeout")
        with pytest.raises(DataSourceTransientError):
            await cache.get_quote("XYZ")

        del price_source.errors["XYZ"]
        quote = await cache.get_quote("XYZ")

        assert quote.price == 12.0
        assert price_source.quote_calls == ["XYZ", "XYZ"]


class TestHistoryCache:
    """Tests for history caching."""

    async def test_history_cached_per_request(self, cache, price_source, clock):
        await cache.get_history("XYZ", days=60)
        clock.advance(minutes=10)
        await cache.get_history("XYZ", days=60)
        await cache.get_history("XYZ", days=30)

        assert price_source.history_calls == ["XYZ", "XYZ"]

    async def test_history_expires(self, cache, price_source, clock):
        await cache.get_history("XYZ")
        clock.advance(minutes=15)
        await cache.get_history("XYZ")

        assert price_source.history_calls == ["XYZ", "XYZ"]

    async def test_cached_list_is_a_copy(self, cache):
        bars = await cache.get_history("XYZ")
        bars.clear()

        assert len(await cache.get_history("XYZ")) == 3


class TestInvalidate:
    """Tests for cache invalidation."""

    async def test_invalidate_symbol(self, cache, price_source):
        price_source.set_closes("ABC", [1.0, 2.0])
        await cache.get_quote("XYZ")
        await cache.get_quote("ABC")
        await cache.get_history("XYZ")

        cache.invalidate("XYZ")
        await cache.get_quote("XYZ")
        await cache.get_quote("ABC")
        await cache.get_history("XYZ")

        assert price_source.quote_calls == ["XYZ", "ABC", "XYZ"]
        assert price_source.history_calls == ["XYZ", "XYZ"]

    async def test_invalidate_all(self, cache, price_source):
        await cache.get_quote("XYZ")
        cache.invalidate()
        await cache.get_quote("XYZ")

        assert price_source.quote_calls == ["XYZ", "XYZ"]

    def test_source_name(self, cache):
        assert cache.source_name == "fake"
