"""
Scheduler: drives the engine with two independent periodic tasks.

UpdateCycle (every update_interval_sec):
    fetch snapshot -> spread -> placement ranges -> reconcile fills ->
    credit freed assets -> top up free slots on both sides

BalanceReport (every balance_interval_sec):
    read-only snapshot of balances and open orders

Concurrency:
    Single asyncio loop. The snapshot fetch is the only await inside a
    cycle. Each update tick runs as its own task; a tick that starts while
    another cycle is in flight is skipped, never queued. The busy flag is
    set before the first await and cleared in a finally block, so a failed
    or cancelled cycle cannot starve later ticks.

    BalanceReport is not excluded against UpdateCycle and may observe a
    partially updated state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Set

from spreadmaker.core.errors import EmptySide, FeedUnavailable
from spreadmaker.core.models import BalanceSnapshot, Order, RawMarketEntry, Side, SpreadMargins
from spreadmaker.execution import ledger
from spreadmaker.execution.order_book import EngineState
from spreadmaker.execution.order_placer import OrderPlacer
from spreadmaker.execution.reconciler import PositionReconciler
from spreadmaker.infra.logging_cfg import LOGGER_NAME, dumps
from spreadmaker.monitoring.metrics_rich import RichMetrics
from spreadmaker.strategy.placement import OrderPricer, compute_side_ranges
from spreadmaker.strategy.spread import compute_spread

log = logging.getLogger(LOGGER_NAME)

SnapshotFetcher = Callable[[], Awaitable[List[RawMarketEntry]]]


class CycleOutcome(Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    ABORTED = "aborted"


@dataclass
class CycleResult:
    """Result of a single update cycle."""
    success: bool
    outcome: CycleOutcome
    margins: Optional[SpreadMargins] = None
    filled_bids: List[Order] = field(default_factory=list)
    filled_asks: List[Order] = field(default_factory=list)
    placed_bids: List[Order] = field(default_factory=list)
    placed_asks: List[Order] = field(default_factory=list)
    error: Optional[str] = None
    duration_ms: float = 0.0


@dataclass
class SchedulerConfig:
    """Configuration for Scheduler."""
    update_interval_sec: float = 5.0
    balance_interval_sec: float = 30.0

    # Slots per side
    allowed_active_orders: int = 5

    # Total placement range in percent (half on each side of the best price)
    order_range_pct: Decimal = Decimal(5)

    # Logging callback: (event, level=INFO, **fields)
    log_event_callback: Optional[Callable[..., None]] = None


class Scheduler:
    """
    Owns one EngineState and runs update cycles and balance reports on it.

    Usage:
        scheduler = Scheduler(feed.fetch, EngineState(Account(quote, base)), config)
        await scheduler.run()          # until stop()
        result = await scheduler.run_once()
    """

    def __init__(
        self,
        fetch_snapshot: SnapshotFetcher,
        state: EngineState,
        config: Optional[SchedulerConfig] = None,
        pricer: Optional[OrderPricer] = None,
        metrics: Optional[RichMetrics] = None,
    ) -> None:
        self.config = config or SchedulerConfig()
        self.state = state
        self.metrics = metrics or RichMetrics()
        self._fetch = fetch_snapshot
        self._log_event = self.config.log_event_callback or self._default_log

        self.reconciler = PositionReconciler(log_event=self._log_event)
        self.placer = OrderPlacer(
            self.config.allowed_active_orders,
            pricer=pricer,
            log_event=self._log_event,
        )

        self._busy = False
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._fatal: Optional[BaseException] = None
        self._cycle_count = 0
        self._skipped_count = 0

    def _default_log(self, event: str, level: int = logging.INFO, **kwargs: Any) -> None:
        log.log(level, dumps({"event": event, **kwargs}))

    @property
    def busy(self) -> bool:
        """True while an update cycle is in flight."""
        return self._busy

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def skipped_count(self) -> int:
        return self._skipped_count

    # -------------------------------------------------------------------------
    # Update cycle
    # -------------------------------------------------------------------------

    async def run_update_cycle(self) -> CycleResult:
        """
        Run one reconciliation + placement cycle unless one is already running.

        EmptySide and FeedUnavailable abort the cycle before any state is
        touched; other exceptions propagate.
        """
        if self._busy:
            self._skipped_count += 1
            self.metrics.cycles_total.labels(outcome=CycleOutcome.SKIPPED.value).inc()
            self._log_event("update_cycle_skipped", level=logging.WARNING, skipped=self._skipped_count)
            return CycleResult(success=False, outcome=CycleOutcome.SKIPPED, error="cycle_in_flight")

        self._busy = True
        self._cycle_count += 1
        start = time.perf_counter()
        try:
            result = await self._update_cycle()
        except (EmptySide, FeedUnavailable) as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            self.metrics.cycles_total.labels(outcome=CycleOutcome.ABORTED.value).inc()
            self.metrics.cycle_errors.labels(error_type=type(exc).__name__).inc()
            self._log_event(
                "update_cycle_aborted",
                level=logging.ERROR,
                cycle=self._cycle_count,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return CycleResult(
                success=False,
                outcome=CycleOutcome.ABORTED,
                error=str(exc),
                duration_ms=duration_ms,
            )
        finally:
            self._busy = False

        result.duration_ms = (time.perf_counter() - start) * 1000
        self.metrics.cycles_total.labels(outcome=CycleOutcome.COMPLETED.value).inc()
        self.metrics.cycle_duration_ms.observe(result.duration_ms)
        self._log_event(
            "update_cycle_complete",
            level=logging.DEBUG,
            cycle=self._cycle_count,
            filled=len(result.filled_bids) + len(result.filled_asks),
            placed=len(result.placed_bids) + len(result.placed_asks),
            duration_ms=round(result.duration_ms, 1),
        )
        return result

    async def _update_cycle(self) -> CycleResult:
        entries = await self._fetch()

        # Nothing below awaits; the rest of the cycle is atomic on the loop.
        margins = compute_spread(entries)
        self.metrics.best_price.labels(side="bid").set(float(margins.highest_bid))
        self.metrics.best_price.labels(side="ask").set(float(margins.lowest_ask))
        self._log_event(
            "best_prices",
            highest_bid=margins.highest_bid,
            lowest_ask=margins.lowest_ask,
        )

        bid_range, ask_range = compute_side_ranges(margins, self.config.order_range_pct)
        self._log_event(
            "placement_ranges",
            bid_low=bid_range.low,
            bid_high=bid_range.high,
            ask_low=ask_range.low,
            ask_high=ask_range.high,
        )

        rec = self.reconciler.reconcile(self.state.book, margins.highest_bid, margins.lowest_ask)
        if not rec.freed.is_empty:
            ledger.credit_freed(self.state.account, rec.freed)
        self.metrics.orders_filled.labels(side="bid").inc(len(rec.filled_bids))
        self.metrics.orders_filled.labels(side="ask").inc(len(rec.filled_asks))

        placed_bids = self.placer.top_up(self.state, Side.BID, bid_range)
        placed_asks = self.placer.top_up(self.state, Side.ASK, ask_range)
        self.metrics.orders_placed.labels(side="bid").inc(len(placed_bids))
        self.metrics.orders_placed.labels(side="ask").inc(len(placed_asks))

        return CycleResult(
            success=True,
            outcome=CycleOutcome.COMPLETED,
            margins=margins,
            filled_bids=rec.filled_bids,
            filled_asks=rec.filled_asks,
            placed_bids=placed_bids,
            placed_asks=placed_asks,
        )

    # -------------------------------------------------------------------------
    # Balance report
    # -------------------------------------------------------------------------

    def report_balances(self) -> BalanceSnapshot:
        """Log and export the current balances. Never mutates state."""
        snap = self.state.snapshot(timestamp_ms=int(time.time() * 1000))
        self.metrics.record_balances(snap)
        self._log_event("balance_report", **snap.to_dict())
        return snap

    # -------------------------------------------------------------------------
    # Timers
    # -------------------------------------------------------------------------

    def trigger_update(self) -> asyncio.Task:
        """Start an update cycle task for the current tick."""
        task = asyncio.create_task(self.run_update_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._on_cycle_done)
        return task

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        self._cycle_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        self._log_event(
            "update_cycle_crashed",
            level=logging.CRITICAL,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        if self._fatal is None:
            self._fatal = exc
        self.stop()

    async def _every(self, interval: float, tick: Callable[[], Any]) -> None:
        """Call tick now and then every interval seconds, without drift."""
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while self._running:
            tick()
            next_at += interval
            await asyncio.sleep(max(0.0, next_at - loop.time()))

    async def run(self) -> None:
        """
        Run both periodic tasks until stop().

        Raises:
            The first unexpected exception raised inside an update cycle.
        """
        self._running = True
        self._stop_event = asyncio.Event()
        self._log_event(
            "scheduler_start",
            update_interval=self.config.update_interval_sec,
            balance_interval=self.config.balance_interval_sec,
            slots=self.config.allowed_active_orders,
        )
        timers = [
            asyncio.create_task(self._every(self.config.update_interval_sec, self.trigger_update)),
            asyncio.create_task(self._every(self.config.balance_interval_sec, self.report_balances)),
        ]
        try:
            await self._stop_event.wait()
        finally:
            self._running = False
            pending = timers + list(self._cycle_tasks)
            for t in pending:
                t.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self._log_event("scheduler_stop", cycles=self._cycle_count, skipped=self._skipped_count)

        if self._fatal is not None:
            raise self._fatal

    async def run_once(self) -> CycleResult:
        """Single update cycle followed by a balance report."""
        result = await self.run_update_cycle()
        self.report_balances()
        return result

    def stop(self) -> None:
        """Signal both timers to stop."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
