"""PostgreSQL connection pool for the alert store."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg
from asyncpg import Pool

from stockwatch.infrastructure.config import get_settings

_pool: Pool | None = None
_pool_lock = asyncio.Lock()


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Session setup: all timestamps are exchanged in UTC."""
    await conn.execute("SET TIME ZONE 'UTC'")


async def get_pool() -> Pool:
    """Get or create the shared connection pool."""
    global _pool

    if _pool is not None:
        return _pool

    async with _pool_lock:
        # Another task may have created it while we waited
        if _pool is not None:
            return _pool

        settings = get_settings()
        _pool = await asyncpg.create_pool(
            str(settings.database_url),
            min_size=1,
            max_size=settings.database_pool_size,
            command_timeout=30,
            init=_init_connection,
        )
        return _pool


async def close_pool() -> None:
    """Close the connection pool, if open."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """Borrow a pooled connection."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


def affected_rows(status: str) -> int:
    """Row count from a command status tag such as 'UPDATE 1' or 'INSERT 0 1'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


async def execute(query: str, *args) -> str:
    """Run a statement and return its status tag."""
    async with get_connection() as conn:
        return await conn.execute(query, *args)


async def execute_rowcount(query: str, *args) -> int:
    """Run a statement and return how many rows it touched."""
    return affected_rows(await execute(query, *args))


async def fetch(query: str, *args) -> list[asyncpg.Record]:
    """Run a query and return all rows."""
    async with get_connection() as conn:
        return await conn.fetch(query, *args)


async def fetchrow(query: str, *args) -> asyncpg.Record | None:
    """Run a query and return the first row, if any."""
    async with get_connection() as conn:
        return await conn.fetchrow(query, *args)
