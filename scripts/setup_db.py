#!/usr/bin/env python3
"""Create or upgrade the alert store schema.

Each file in stockwatch/infrastructure/migrations is applied once, in name
order, and recorded in schema_migrations in the same transaction.

Usage:
    python scripts/setup_db.py            # apply pending migrations
    python scripts/setup_db.py --status   # list applied / pending, change nothing
"""

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv(Path(__file__).parent.parent / ".env")

import asyncpg

from stockwatch.infrastructure.database import close_pool, get_connection
from stockwatch.infrastructure.logging import configure_logging, get_logger

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "stockwatch" / "infrastructure" / "migrations"

TRACKING_TABLE = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version VARCHAR(100) PRIMARY KEY,
        applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


async def applied_versions(conn: asyncpg.Connection) -> set[str]:
    """Versions already recorded as applied."""
    await conn.execute(TRACKING_TABLE)
    rows = await conn.fetch("SELECT version FROM schema_migrations")
    return {row["version"] for row in rows}


def pending(applied: set[str]) -> list[Path]:
    """Migration files not yet applied, oldest first."""
    return [path for path in sorted(MIGRATIONS_DIR.glob("*.sql")) if path.stem not in applied]


async def apply(conn: asyncpg.Connection, path: Path) -> None:
    """Apply one migration and record it atomically."""
    async with conn.transaction():
        await conn.execute(path.read_text())
        await conn.execute("INSERT INTO schema_migrations (version) VALUES ($1)", path.stem)


async def main() -> int:
    parser = argparse.ArgumentParser(description="Apply alert store migrations")
    parser.add_argument("--status", action="store_true", help="Show migration status only")
    args = parser.parse_args()

    configure_logging("INFO", "text")

    try:
        async with get_connection() as conn:
            applied = await applied_versions(conn)
            todo = pending(applied)

            if args.status:
                for version in sorted(applied):
                    logger.info(f"applied  {version}")
                for path in todo:
                    logger.info(f"pending  {path.stem}")
                return 0

            if not todo:
                logger.info("Schema is up to date")
                return 0

            for path in todo:
                logger.info(f"Applying {path.stem}")
                await apply(conn, path)

            logger.info(f"Applied {len(todo)} migration(s)")
            return 0

    except (OSError, asyncpg.PostgresError) as e:
        logger.error(f"Migration failed: {e}")
        return 1
    finally:
        await close_pool()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
