"""Alert monitoring loop.

Runs on a fixed interval during market hours. Each tick:
1. Loads active alerts and drops those cooling down or expired
2. Groups them by symbol (one data fetch per symbol per tick)
3. Builds one MetricSnapshot per symbol, shared by all its alerts
4. Evaluates every alert and records triggers
5. Notifies owners of triggered alerts

Symbols are processed concurrently under a bounded semaphore. A failure
on one symbol never aborts the tick for the others. Ticks never overlap,
and a tick that runs past its timeout abandons the symbols still in
flight; they are simply retried on the next tick. The timeout bounds
fetching and evaluation only: triggers found before it are always
committed and notified, so an abandoned symbol has nothing half-recorded.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable
from uuid import UUID

from stockwatch.application.commands.record_trigger import TriggerRecorder
from stockwatch.application.queries.market_snapshot import load_snapshot
from stockwatch.domain.errors import DataSourceFatalError, DataSourceTransientError
from stockwatch.domain.interfaces.data_feed import PriceDataSource
from stockwatch.domain.interfaces.notifier import Notifier
from stockwatch.domain.interfaces.repositories import AlertRepository
from stockwatch.domain.models.alert import AlertDefinition, TriggerEvent, utc_now
from stockwatch.domain.models.enums import EvaluationOutcome
from stockwatch.domain.models.indicators import MetricSnapshot
from stockwatch.domain.rules import DEFAULT_CHECK_INTERVAL, MIN_HISTORY_BARS
from stockwatch.domain.services.alert_state import AlertStateMachine, AlertTransition
from stockwatch.domain.services.market_hours import MarketHours
from stockwatch.infrastructure.logging import get_logger

logger = get_logger(__name__)

Fingerprint = frozenset[tuple[UUID, datetime]]


class MonitorStatus(str, Enum):
    """Status of the monitoring loop."""

    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class SymbolResult:
    """Outcome of processing one symbol within a tick."""

    symbol: str
    processed: bool = False
    alerts_evaluated: int = 0
    alerts_insufficient_data: int = 0
    # Triggers found this tick, recorded after the deadline
    triggers: list[tuple[AlertDefinition, AlertTransition]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class TickResult:
    """Result of a single monitoring tick."""

    started_at: datetime
    completed_at: datetime | None = None
    symbols_processed: int = 0
    symbols_skipped: int = 0
    symbols_abandoned: int = 0
    alerts_evaluated: int = 0
    alerts_triggered: int = 0
    alerts_insufficient_data: int = 0
    notifications_failed: int = 0
    events: list[TriggerEvent] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def duration(self) -> timedelta | None:
        """Wall-clock length of the tick."""
        if self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    @property
    def has_errors(self) -> bool:
        """Check if anything went wrong this tick."""
        return len(self.errors) > 0

    def add(self, symbol_result: SymbolResult) -> None:
        """Fold one symbol's outcome into the tick totals."""
        if symbol_result.processed:
            self.symbols_processed += 1
        self.alerts_evaluated += symbol_result.alerts_evaluated
        self.alerts_insufficient_data += symbol_result.alerts_insufficient_data
        self.errors.extend(symbol_result.errors)


@dataclass
class MonitorState:
    """Externally observable state of the monitor (admin status view)."""

    status: MonitorStatus
    market_open: bool
    ticks_completed: int
    last_tick: TickResult | None
    next_tick_at: datetime | None
    fatal_symbols: list[str]


@dataclass
class MonitorRunResult:
    """Result of a monitoring loop run."""

    status: MonitorStatus
    started_at: datetime
    stopped_at: datetime | None = None
    ticks_completed: int = 0
    ticks_skipped: int = 0
    total_triggers: int = 0
    errors: list[str] = field(default_factory=list)


def fingerprint(alerts: list[AlertDefinition]) -> Fingerprint:
    """Identify a symbol's alert definitions, so edits can be detected."""
    return frozenset((alert.id, alert.updated_at) for alert in alerts)


class AlertMonitor:
    """Periodic evaluator for every active alert.

    The monitor is the only writer of trigger state. It reads alerts fresh
    on every tick, so a tick can always be abandoned and rerun safely.
    """

    def __init__(
        self,
        alert_repo: AlertRepository,
        data_source: PriceDataSource,
        notifier: Notifier,
        interval: timedelta = DEFAULT_CHECK_INTERVAL,
        tick_timeout: timedelta = timedelta(minutes=10),
        max_concurrency: int = 5,
        history_bars: int = MIN_HISTORY_BARS,
        market_hours: MarketHours | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the monitor.

        Args:
            alert_repo: Alert store
            data_source: Price-data source
            notifier: Notification sink for trigger events
            interval: Time between tick starts
            tick_timeout: Abandon unfinished symbols after this long
            max_concurrency: Symbols fetched in parallel
            history_bars: Bars of history requested per symbol
            market_hours: Gate ticks to the trading session (None = always run)
            clock: Time source (injectable for tests)
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._alert_repo = alert_repo
        self._data_source = data_source
        self._interval = interval
        self._tick_timeout = tick_timeout
        self._max_concurrency = max_concurrency
        self._history_bars = history_bars
        self._market_hours = market_hours
        self._clock = clock

        self._state_machine = AlertStateMachine()
        self._recorder = TriggerRecorder(alert_repo, notifier)

        self._tick_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._status = MonitorStatus.STOPPED
        self._ticks_completed = 0
        self._last_tick: TickResult | None = None
        self._next_tick_at: datetime | None = None

        # symbol -> fingerprint of its alerts when the source said it does not exist
        self._fatal_symbols: dict[str, Fingerprint] = {}

    @property
    def is_running(self) -> bool:
        """Check if the loop is running."""
        return self._status == MonitorStatus.RUNNING

    def status(self, now: datetime | None = None) -> MonitorState:
        """Snapshot of the monitor's state.

        Args:
            now: Time to evaluate market hours at (defaults to the clock)
        """
        now = now or self._clock()
        return MonitorState(
            status=self._status,
            market_open=self.is_market_open(now),
            ticks_completed=self._ticks_completed,
            last_tick=self._last_tick,
            next_tick_at=self._next_tick_at,
            fatal_symbols=sorted(self._fatal_symbols),
        )

    def is_market_open(self, now: datetime) -> bool:
        """Whether ticks should run at `now`."""
        return self._market_hours is None or self._market_hours.is_open(now)

    async def start(
        self,
        max_cycles: int | None = None,
        on_tick_complete: Callable[[TickResult], None] | None = None,
    ) -> MonitorRunResult:
        """Run ticks on the configured interval until stopped.

        Args:
            max_cycles: Optional maximum loop iterations (None = run until stopped)
            on_tick_complete: Optional callback after each tick

        Returns:
            MonitorRunResult when the loop ends
        """
        self._status = MonitorStatus.RUNNING
        self._stop_event.clear()

        result = MonitorRunResult(status=self._status, started_at=self._clock())
        cycles = 0

        logger.info(
            f"Alert monitor started (interval={self._interval}, "
            f"timeout={self._tick_timeout}, concurrency={self._max_concurrency})"
        )

        try:
            while not self._stop_event.is_set():
                if max_cycles is not None and cycles >= max_cycles:
                    break

                tick_start = self._clock()
                if self.is_market_open(tick_start):
                    tick = await self.run_tick(tick_start)
                    result.ticks_completed += 1
                    result.total_triggers += tick.alerts_triggered
                    if on_tick_complete:
                        on_tick_complete(tick)
                else:
                    logger.info("Market closed, skipping tick")
                    result.ticks_skipped += 1

                cycles += 1

                elapsed = self._clock() - tick_start
                delay = max(self._interval - elapsed, timedelta(0))
                self._next_tick_at = tick_start + max(self._interval, elapsed)

                if max_cycles is not None and cycles >= max_cycles:
                    break
                await self._sleep(delay)

        except Exception as e:
            logger.exception(f"Monitoring loop error: {e}")
            self._status = MonitorStatus.ERROR
            result.errors.append(f"Monitoring loop error: {e}")

        if self._status != MonitorStatus.ERROR:
            self._status = MonitorStatus.STOPPED
        self._next_tick_at = None

        result.status = self._status
        result.stopped_at = self._clock()
        logger.info(
            f"Alert monitor stopped after {result.ticks_completed} ticks "
            f"({result.total_triggers} triggers)"
        )
        return result

    def stop(self) -> None:
        """Request the loop to stop after the current tick."""
        self._stop_event.set()

    async def run_tick(self, now: datetime | None = None) -> TickResult:
        """Run one monitoring tick.

        Concurrent calls are serialised; a second caller waits for the
        running tick to finish before starting its own.

        Args:
            now: Tick time (defaults to the clock)

        Returns:
            TickResult
        """
        async with self._tick_lock:
            now = now or self._clock()
            result = TickResult(started_at=now)

            try:
                alerts = await self._alert_repo.list_active_alerts()
            except Exception as e:
                logger.error(f"Could not load active alerts: {e}")
                result.errors.append(f"Could not load active alerts: {e}")
                return self._finish(result)

            by_symbol: dict[str, list[AlertDefinition]] = defaultdict(list)
            for alert in alerts:
                by_symbol[alert.symbol].append(alert)

            self._forget_fixed_symbols(by_symbol)

            work: dict[str, list[AlertDefinition]] = {}
            for symbol, symbol_alerts in by_symbol.items():
                if self._fatal_symbols.get(symbol) == fingerprint(symbol_alerts):
                    logger.debug(f"Skipping {symbol}: marked unavailable until its alerts change")
                    result.symbols_skipped += 1
                    continue

                evaluable = [a for a in symbol_alerts if self._state_machine.is_evaluable(a, now)]
                if evaluable:
                    work[symbol] = evaluable

            logger.info(
                f"Tick started: {len(alerts)} active alerts, {len(work)} symbols to check"
            )

            if work:
                await self._process_symbols(work, by_symbol, now, result)

            return self._finish(result)

    async def _process_symbols(
        self,
        work: dict[str, list[AlertDefinition]],
        by_symbol: dict[str, list[AlertDefinition]],
        now: datetime,
        result: TickResult,
    ) -> None:
        """Process symbols in parallel, abandoning stragglers at the timeout."""
        semaphore = asyncio.Semaphore(self._max_concurrency)
        tasks = {
            asyncio.create_task(
                self._process_symbol(symbol, alerts, by_symbol[symbol], now, semaphore)
            ): symbol
            for symbol, alerts in work.items()
        }

        done, pending = await asyncio.wait(
            tasks.keys(), timeout=self._tick_timeout.total_seconds()
        )

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            abandoned = sorted(tasks[task] for task in pending)
            logger.warning(
                f"Tick timeout after {self._tick_timeout}: abandoned {len(abandoned)} "
                f"symbols until next tick ({', '.join(abandoned)})"
            )
            result.symbols_abandoned += len(abandoned)

        triggers: list[tuple[AlertDefinition, AlertTransition]] = []
        for task in done:
            symbol = tasks[task]
            exc = task.exception()
            if exc is not None:
                logger.error(f"Unexpected error processing {symbol}: {exc}")
                result.errors.append(f"{symbol}: {exc}")
                continue
            symbol_result = task.result()
            result.add(symbol_result)
            triggers.extend(symbol_result.triggers)

        if triggers:
            await self._record_triggers(triggers, result)

    async def _record_triggers(
        self,
        triggers: list[tuple[AlertDefinition, AlertTransition]],
        result: TickResult,
    ) -> None:
        """Commit and notify every trigger found this tick.

        Runs after the tick deadline has been applied and is never cut
        short by it, so a committed trigger is always notified and reported.
        """
        outcomes = await asyncio.gather(
            *(
                self._recorder.record(alert, transition.alert, transition.event)
                for alert, transition in triggers
            ),
            return_exceptions=True,
        )

        for (alert, _), recorded in zip(triggers, outcomes):
            if isinstance(recorded, BaseException):
                logger.error(f"Could not record trigger for alert {alert.id}: {recorded}")
                result.errors.append(f"alert {alert.id}: {recorded}")
                continue
            if not recorded.persisted:
                result.errors.append(f"alert {alert.id}: {recorded.error}")
                continue

            result.alerts_triggered += 1
            result.events.append(recorded.event)
            if not recorded.notified:
                result.notifications_failed += 1
                result.errors.append(f"alert {alert.id} notification failed: {recorded.error}")

    async def _process_symbol(
        self,
        symbol: str,
        alerts: list[AlertDefinition],
        all_alerts: list[AlertDefinition],
        now: datetime,
        semaphore: asyncio.Semaphore,
    ) -> SymbolResult:
        """Fetch one symbol's data and evaluate every alert on it.

        Args:
            symbol: Ticker symbol
            alerts: Alerts on the symbol that are ACTIVE at `now`
            all_alerts: Every listed alert on the symbol (for the fingerprint)
            now: Tick time
            semaphore: Concurrency bound shared by the tick

        Returns:
            SymbolResult
        """
        outcome = SymbolResult(symbol=symbol)

        async with semaphore:
            try:
                snapshot = await load_snapshot(
                    self._data_source, symbol, now, self._history_bars
                )
            except DataSourceTransientError as e:
                logger.warning(f"Data unavailable for {symbol}, retrying next tick: {e}")
                outcome.errors.append(str(e))
                return outcome
            except DataSourceFatalError as e:
                logger.error(f"Symbol {symbol} unavailable, skipping until its alerts change: {e}")
                outcome.errors.append(str(e))
                self._fatal_symbols[symbol] = fingerprint(all_alerts)
                await self._flag_attention(all_alerts, f"Market data unavailable: {e}")
                return outcome

        outcome.processed = True

        for alert in alerts:
            try:
                self._evaluate_alert(alert, snapshot, now, outcome)
            except Exception as e:
                logger.error(f"Error evaluating alert {alert.id} on {symbol}: {e}")
                outcome.errors.append(f"{symbol} alert {alert.id}: {e}")

        return outcome

    def _evaluate_alert(
        self,
        alert: AlertDefinition,
        snapshot: MetricSnapshot,
        now: datetime,
        outcome: SymbolResult,
    ) -> None:
        """Evaluate one alert against its symbol's snapshot, queueing any trigger."""
        transition = self._state_machine.evaluate_snapshot(alert, snapshot, now)
        evaluation = transition.evaluation

        if evaluation.outcome == EvaluationOutcome.SKIPPED:
            return

        if evaluation.outcome == EvaluationOutcome.INVALID_DEFINITION:
            logger.error(f"Skipping invalid alert {alert.id}: {evaluation.reason}")
            outcome.errors.append(f"alert {alert.id} invalid: {evaluation.reason}")
            return

        outcome.alerts_evaluated += 1

        if evaluation.outcome == EvaluationOutcome.INSUFFICIENT_DATA:
            logger.debug(f"Insufficient data for alert {alert.id}: {evaluation.reason}")
            outcome.alerts_insufficient_data += 1
            return

        if transition.triggered:
            outcome.triggers.append((alert, transition))

    async def _flag_attention(self, alerts: list[AlertDefinition], reason: str) -> None:
        for alert in alerts:
            try:
                await self._alert_repo.flag_attention(alert.id, reason)
            except Exception as e:
                logger.error(f"Could not flag alert {alert.id} for attention: {e}")

    def _forget_fixed_symbols(self, by_symbol: dict[str, list[AlertDefinition]]) -> None:
        """Drop fatal markers for symbols whose alerts changed or disappeared."""
        for symbol in list(self._fatal_symbols):
            alerts = by_symbol.get(symbol)
            if not alerts or fingerprint(alerts) != self._fatal_symbols[symbol]:
                logger.info(f"Alerts on {symbol} changed, will retry it")
                del self._fatal_symbols[symbol]

    def _finish(self, result: TickResult) -> TickResult:
        result.completed_at = self._clock()
        self._last_tick = result
        self._ticks_completed += 1
        logger.info(
            f"Tick complete: {result.symbols_processed} symbols processed, "
            f"{result.symbols_skipped} skipped, {result.symbols_abandoned} abandoned, "
            f"{result.alerts_evaluated} alerts evaluated, "
            f"{result.alerts_triggered} triggered, {len(result.errors)} errors"
        )
        return result

    async def _sleep(self, delay: timedelta) -> None:
        """Wait for the next tick, waking early if stop() is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay.total_seconds())
        except asyncio.TimeoutError:
            pass
