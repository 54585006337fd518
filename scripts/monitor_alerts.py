#!/usr/bin/env python3
"""Alert monitoring script.

Runs the alert monitor: every interval during market hours it checks all
active alerts against fresh Yahoo Finance data and posts triggered alerts
to Discord.

Usage:
    python scripts/monitor_alerts.py [--once] [--interval MINUTES] [--dry-run]

Options:
    --once          Run a single tick and exit (for cron)
    --interval N    Tick interval in minutes (default: MONITOR_INTERVAL_MINUTES)
    --dry-run       Log triggered alerts instead of posting to Discord
    --ignore-hours  Run ticks outside market hours
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env before settings are read
load_dotenv(Path(__file__).parent.parent / ".env")

from stockwatch.adapters.data_feeds.cached_feed import CachedPriceSource
from stockwatch.adapters.data_feeds.yahoo_feed import YahooPriceSource
from stockwatch.adapters.repositories.alert_repository import PostgresAlertRepository
from stockwatch.application.workflows.monitoring_loop import AlertMonitor, TickResult
from stockwatch.domain.services.market_hours import MarketHours, parse_clock
from stockwatch.infrastructure.config import get_settings
from stockwatch.infrastructure.database import close_pool
from stockwatch.infrastructure.discord import DiscordNotifier, LoggingNotifier
from stockwatch.infrastructure.logging import configure_logging, get_logger

logger = get_logger(__name__)


def log_tick(result: TickResult) -> None:
    """Log a one-line summary of a tick."""
    logger.info(
        f"Tick finished in {result.duration}: {result.alerts_triggered} triggered, "
        f"{result.alerts_insufficient_data} waiting for data, "
        f"{result.notifications_failed} notification failures"
    )
    for error in result.errors:
        logger.info(f"  - {error}")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Monitor stock alerts")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    parser.add_argument("--interval", type=float, default=None, help="Tick interval in minutes")
    parser.add_argument(
        "--dry-run", action="store_true", help="Log triggered alerts instead of notifying"
    )
    parser.add_argument(
        "--ignore-hours", action="store_true", help="Run ticks outside market hours"
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    interval = (
        timedelta(minutes=args.interval) if args.interval else settings.monitor_interval
    )

    logger.info("Starting stock alert monitor")
    logger.info(f"Mode: {'Single tick' if args.once else f'Continuous (every {interval})'}")

    if args.dry_run:
        logger.info(">>> DRY RUN MODE - notifications are logged, not sent <<<")
        notifier = LoggingNotifier()
    else:
        if not settings.discord_webhook_url:
            logger.error("DISCORD_WEBHOOK_URL is not set (use --dry-run to log instead)")
            return 1
        notifier = DiscordNotifier(
            settings.discord_webhook_url, timeout=settings.notification_timeout_seconds
        )

    data_source = CachedPriceSource(
        YahooPriceSource(
            auto_adjust=settings.yahoo_auto_adjust,
            market_timezone=settings.market_timezone,
        ),
        quote_ttl=timedelta(seconds=settings.quote_cache_ttl_seconds),
        history_ttl=timedelta(seconds=settings.history_cache_ttl_seconds),
    )

    market_hours = None
    if settings.market_hours_only and not args.ignore_hours:
        market_hours = MarketHours(
            timezone=settings.market_timezone,
            open_time=parse_clock(settings.market_open),
            close_time=parse_clock(settings.market_close),
        )

    monitor = AlertMonitor(
        alert_repo=PostgresAlertRepository(),
        data_source=data_source,
        notifier=notifier,
        interval=interval,
        tick_timeout=timedelta(seconds=settings.monitor_tick_timeout_seconds),
        max_concurrency=settings.monitor_max_concurrency,
        history_bars=settings.monitor_history_bars,
        market_hours=market_hours,
    )

    try:
        if args.once:
            result = await monitor.run_tick()
            log_tick(result)
            return 1 if result.has_errors and result.symbols_processed == 0 else 0

        run = await monitor.start(on_tick_complete=log_tick)
        return 0 if not run.errors else 1

    except (KeyboardInterrupt, asyncio.CancelledError):
        monitor.stop()
        logger.info("Monitoring stopped by user")
        return 0
    finally:
        await close_pool()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
