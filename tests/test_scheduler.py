"""
Tests for Scheduler - update cycles, overlap protection and balance reports.

Tests cover:
- Full cycle: spread, ranges, placement into free slots
- Fill reconciliation recycling capital into new orders
- Abort paths leave state untouched and clear the busy flag
- Overlapping ticks are skipped, not queued
- Timer loop start/stop and crash propagation
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from spreadmaker.core.errors import FeedUnavailable
from spreadmaker.core.models import Account, Side
from spreadmaker.execution.order_book import EngineState
from spreadmaker.infra.orderbook_feed import OrderbookFeed
from spreadmaker.orchestrator.scheduler import CycleOutcome, Scheduler, SchedulerConfig
from spreadmaker.strategy.placement import OrderPricer
from tests.helpers import FixedRandom, make_entries

SNAPSHOT = make_entries([[1, 299, 2.5], [2, 300, 1], [3, 302, -1], [4, 305, -0.5]])
# Market moved away on both sides: every resting order crosses
MOVED = make_entries([[1, 250, 1], [2, 400, -1]])
ONLY_BIDS = make_entries([[1, 300, 1], [2, 301, 2]])


class EventRecorder:
    def __init__(self):
        self.events = []

    def __call__(self, event, level=None, **kwargs):
        self.events.append((event, kwargs))

    def names(self):
        return [e for e, _ in self.events]


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def config(recorder):
    return SchedulerConfig(
        update_interval_sec=0.01,
        balance_interval_sec=0.01,
        allowed_active_orders=2,
        order_range_pct=Decimal(5),
        log_event_callback=recorder,
    )


@pytest.fixture
def state():
    return EngineState(Account(quote=Decimal("1000.00"), base=Decimal("2")))


def make_scheduler(fetch, state, config):
    return Scheduler(fetch, state, config, pricer=OrderPricer(FixedRandom("0.5")))


class TestUpdateCycle:
    @pytest.mark.asyncio
    async def test_first_cycle_fills_all_slots(self, state, config, recorder):
        """Empty book gets topped up on both sides from the full balance."""
        fetch = AsyncMock(return_value=SNAPSHOT)
        sched = make_scheduler(fetch, state, config)

        result = await sched.run_update_cycle()

        assert result.success
        assert result.outcome is CycleOutcome.COMPLETED
        assert result.margins.highest_bid == Decimal(300)
        assert result.margins.lowest_ask == Decimal(302)
        assert len(result.placed_bids) == 2
        assert len(result.placed_asks) == 2
        assert state.book.count(Side.BID) == 2
        assert state.book.count(Side.ASK) == 2
        assert state.account.quote == 0
        assert state.account.base == 0
        assert [o.input_amount for o in state.book.bids] == [Decimal("500.00")] * 2
        assert [o.input_amount for o in state.book.asks] == [Decimal(1)] * 2
        assert "best_prices" in recorder.names()
        assert "placement_ranges" in recorder.names()

    @pytest.mark.asyncio
    async def test_bids_never_above_asks(self, state, config):
        """Midpoint clamp keeps every placed bid at or below every placed ask."""
        fetch = AsyncMock(return_value=SNAPSHOT)
        sched = Scheduler(fetch, state, config, pricer=OrderPricer(FixedRandom("0.999", "0.001")))

        await sched.run_update_cycle()

        assert max(o.price for o in state.book.bids) <= Decimal(301)
        assert min(o.price for o in state.book.asks) >= Decimal(301)

    @pytest.mark.asyncio
    async def test_fills_recycle_capital(self, state, config):
        """Crossed orders are removed, their outputs credited, and slots refilled."""
        fetch = AsyncMock(side_effect=[SNAPSHOT, MOVED])
        sched = make_scheduler(fetch, state, config)

        await sched.run_update_cycle()
        first_bids = list(state.book.bids)
        first_asks = list(state.book.asks)
        expected_base = sum(o.output_amount for o in first_bids)
        expected_quote = sum(o.output_amount for o in first_asks)

        result = await sched.run_update_cycle()

        assert result.filled_bids == first_bids
        assert result.filled_asks == first_asks
        # Freed assets are committed again to the new orders
        assert sum(o.input_amount for o in result.placed_bids) == expected_quote
        assert sum(o.input_amount for o in result.placed_asks) == expected_base
        assert state.book.count(Side.BID) == 2
        assert state.book.count(Side.ASK) == 2
        assert not any(o in state.book.bids for o in first_bids)

    @pytest.mark.asyncio
    async def test_resting_orders_inside_market_are_kept(self, state, config):
        fetch = AsyncMock(return_value=SNAPSHOT)
        sched = make_scheduler(fetch, state, config)

        await sched.run_update_cycle()
        before = (list(state.book.bids), list(state.book.asks))
        result = await sched.run_update_cycle()

        # A 0.5 draw puts bids near 296.84 (< 300) and asks near 305.28 (>= 302)
        assert result.filled_bids == []
        assert result.filled_asks == []
        assert result.placed_bids == [] and result.placed_asks == []
        assert (state.book.bids, state.book.asks) == before


class TestAbortPaths:
    @pytest.mark.asyncio
    async def test_empty_side_aborts_without_mutation(self, state, config, recorder):
        fetch = AsyncMock(return_value=ONLY_BIDS)
        sched = make_scheduler(fetch, state, config)

        result = await sched.run_update_cycle()

        assert not result.success
        assert result.outcome is CycleOutcome.ABORTED
        assert "No asks" in result.error
        assert state.account == Account(quote=Decimal("1000.00"), base=Decimal("2"))
        assert state.book.bids == [] and state.book.asks == []
        assert not sched.busy
        assert "update_cycle_aborted" in recorder.names()

    @pytest.mark.asyncio
    async def test_feed_unavailable_retries_next_tick(self, state, config):
        fetch = AsyncMock(side_effect=[FeedUnavailable("order book request failed", status=503), SNAPSHOT])
        sched = make_scheduler(fetch, state, config)

        first = await sched.run_update_cycle()
        second = await sched.run_update_cycle()

        assert first.outcome is CycleOutcome.ABORTED
        assert "503" in first.error
        assert second.outcome is CycleOutcome.COMPLETED
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_abort_keeps_existing_orders(self, state, config):
        fetch = AsyncMock(side_effect=[SNAPSHOT, FeedUnavailable("timeout")])
        sched = make_scheduler(fetch, state, config)

        await sched.run_update_cycle()
        bids, asks = list(state.book.bids), list(state.book.asks)
        await sched.run_update_cycle()

        assert state.book.bids == bids
        assert state.book.asks == asks

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates_and_clears_busy(self, state, config):
        fetch = AsyncMock(side_effect=[RuntimeError("boom"), SNAPSHOT])
        sched = make_scheduler(fetch, state, config)

        with pytest.raises(RuntimeError):
            await sched.run_update_cycle()
        assert not sched.busy

        result = await sched.run_update_cycle()
        assert result.outcome is CycleOutcome.COMPLETED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            "[[1, NaN, 1], [2, 300, 1], [3, 302, -1]]",
            "[[1, 0, 1], [3, 302, -1]]",
            "[[1, 300, 1], [3, Infinity, -1]]",
        ],
    )
    async def test_unusable_feed_numbers_abort_cycle(self, state, config, body):
        bodies = ["[[1, 299, 2.5], [2, 300, 1], [3, 302, -1], [4, 305, -0.5]]", body]
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=bodies.pop(0)))
        client = httpx.AsyncClient(transport=transport)
        feed = OrderbookFeed("https://example.test/book", client=client)
        sched = make_scheduler(feed.fetch, state, config)

        await sched.run_update_cycle()
        account = Account(state.account.quote, state.account.base)
        bids, asks = list(state.book.bids), list(state.book.asks)

        result = await sched.run_update_cycle()

        assert result.outcome is CycleOutcome.ABORTED
        assert state.account == account
        assert state.book.bids == bids
        assert state.book.asks == asks
        assert not sched.busy
        await client.aclose()


class TestOverlapGuard:
    @pytest.mark.asyncio
    async def test_tick_during_in_flight_cycle_is_skipped(self, state, config, recorder):
        gate = asyncio.Event()
        calls = 0

        async def slow_fetch():
            nonlocal calls
            calls += 1
            await gate.wait()
            return SNAPSHOT

        sched = make_scheduler(slow_fetch, state, config)

        first = asyncio.create_task(sched.run_update_cycle())
        await asyncio.sleep(0)
        assert sched.busy

        second = await sched.run_update_cycle()

        assert second.outcome is CycleOutcome.SKIPPED
        assert calls == 1
        assert sched.skipped_count == 1
        assert "update_cycle_skipped" in recorder.names()

        gate.set()
        result = await first
        assert result.outcome is CycleOutcome.COMPLETED
        assert not sched.busy

        third = await sched.run_update_cycle()
        assert third.outcome is CycleOutcome.COMPLETED
        assert calls == 2

    @pytest.mark.asyncio
    async def test_cancelled_cycle_clears_busy(self, state, config):
        async def hung_fetch():
            await asyncio.Event().wait()

        sched = make_scheduler(hung_fetch, state, config)
        task = asyncio.create_task(sched.run_update_cycle())
        await asyncio.sleep(0)
        assert sched.busy

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not sched.busy


class TestBalanceReport:
    @pytest.mark.asyncio
    async def test_report_is_read_only(self, state, config, recorder):
        fetch = AsyncMock(return_value=SNAPSHOT)
        sched = make_scheduler(fetch, state, config)
        await sched.run_update_cycle()
        account_before = Account(state.account.quote, state.account.base)

        snap = sched.report_balances()

        assert snap.open_bids == 2
        assert snap.open_asks == 2
        assert snap.committed_quote == Decimal("1000.00")
        assert snap.committed_base == Decimal(2)
        assert state.account == account_before
        assert recorder.names()[-1] == "balance_report"

    @pytest.mark.asyncio
    async def test_run_once(self, state, config, recorder):
        fetch = AsyncMock(return_value=SNAPSHOT)
        sched = make_scheduler(fetch, state, config)

        result = await sched.run_once()

        assert result.outcome is CycleOutcome.COMPLETED
        assert fetch.await_count == 1
        assert recorder.names()[-1] == "balance_report"


class TestTimers:
    @pytest.mark.asyncio
    async def test_run_until_stopped(self, state, config, recorder):
        fetch = AsyncMock(return_value=SNAPSHOT)
        sched = make_scheduler(fetch, state, config)

        task = asyncio.create_task(sched.run())
        await asyncio.sleep(0.08)
        assert sched.is_running
        sched.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert not sched.is_running
        assert fetch.await_count >= 2
        assert "balance_report" in recorder.names()
        assert recorder.names()[-1] == "scheduler_stop"

    @pytest.mark.asyncio
    async def test_hung_fetch_skips_later_ticks(self, state, config):
        calls = 0

        async def hung_fetch():
            nonlocal calls
            calls += 1
            await asyncio.Event().wait()

        sched = make_scheduler(hung_fetch, state, config)
        task = asyncio.create_task(sched.run())
        await asyncio.sleep(0.08)
        sched.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert calls == 1
        assert sched.skipped_count >= 2
        assert not sched.busy

    @pytest.mark.asyncio
    async def test_crash_in_cycle_stops_run(self, state, config, recorder):
        fetch = AsyncMock(side_effect=RuntimeError("bad state"))
        sched = make_scheduler(fetch, state, config)

        with pytest.raises(RuntimeError, match="bad state"):
            await asyncio.wait_for(sched.run(), timeout=1.0)
        assert "update_cycle_crashed" in recorder.names()
        assert not sched.is_running
