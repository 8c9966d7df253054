"""Tests for clock and timer primitives."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from tickwork.scheduling.clock import AsyncioClock, ManualClock

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestManualClock:
    """Tests for ManualClock."""

    def test_now_is_start(self):
        assert ManualClock(START).now() == START

    def test_naive_start_treated_as_utc(self):
        clock = ManualClock(datetime(2024, 1, 1))

        assert clock.now() == START

    def test_advance_moves_time(self):
        clock = ManualClock(START)

        clock.advance(milliseconds=1500)

        assert clock.now() == START + timedelta(seconds=1.5)

    def test_advance_accepts_timedelta(self):
        clock = ManualClock(START)

        clock.advance(timedelta(minutes=1))

        assert clock.now() == START + timedelta(minutes=1)

    def test_cannot_move_backwards(self):
        with pytest.raises(ValueError):
            ManualClock(START).advance(seconds=-1)

    def test_timer_never_fires_inline(self):
        """Should not fire a due timer at arming time."""
        clock = ManualClock(START)
        calls = []

        clock.call_at(START, lambda: calls.append(1))

        assert calls == []
        assert clock.pending == 1
        assert clock.run_pending() == 1
        assert calls == [1]

    def test_fires_in_timestamp_order(self):
        """Should fire timers by due time, ties in arming order."""
        clock = ManualClock(START)
        calls = []

        clock.call_at(START + timedelta(seconds=3), lambda: calls.append("c"))
        clock.call_at(START + timedelta(seconds=1), lambda: calls.append("a"))
        clock.call_at(START + timedelta(seconds=1), lambda: calls.append("b"))

        fired = clock.advance(seconds=5)

        assert fired == 3
        assert calls == ["a", "b", "c"]

    def test_now_is_due_time_while_firing(self):
        clock = ManualClock(START)
        seen = []

        clock.call_at(START + timedelta(seconds=2), lambda: seen.append(clock.now()))
        clock.advance(seconds=10)

        assert seen == [START + timedelta(seconds=2)]
        assert clock.now() == START + timedelta(seconds=10)

    def test_timers_outside_window_wait(self):
        clock = ManualClock(START)
        calls = []

        clock.call_at(START + timedelta(seconds=10), lambda: calls.append(1))
        clock.advance(seconds=9)

        assert calls == []
        assert clock.next_deadline == START + timedelta(seconds=10)

        clock.advance(seconds=1)

        assert calls == [1]
        assert clock.next_deadline is None

    def test_cancelled_timer_does_not_fire(self):
        clock = ManualClock(START)
        calls = []

        timer = clock.call_at(START + timedelta(seconds=1), lambda: calls.append(1))
        timer.cancel()

        assert clock.pending == 0
        assert clock.advance(seconds=2) == 0
        assert calls == []

    def test_timer_armed_while_firing_fires_in_same_advance(self):
        """Should fire chained timers that fall inside the window."""
        clock = ManualClock(START)
        calls = []

        def chain():
            calls.append(clock.now())
            if len(calls) < 5:
                clock.call_at(clock.now() + timedelta(seconds=1), chain)

        clock.call_at(START + timedelta(seconds=1), chain)
        clock.advance(seconds=3)

        assert calls == [START + timedelta(seconds=s) for s in (1, 2, 3)]

    def test_overdue_timer_fires_without_rewinding(self):
        clock = ManualClock(START)
        seen = []

        clock.advance(seconds=5)
        clock.call_at(START, lambda: seen.append(clock.now()))
        clock.run_pending()

        assert seen == [START + timedelta(seconds=5)]


class TestAsyncioClock:
    """Tests for AsyncioClock."""

    def test_now_is_aware_utc(self):
        now = AsyncioClock().now()

        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_call_at_runs_on_loop(self):
        """Should run the callback through the event loop."""
        clock = AsyncioClock()
        fired = asyncio.Event()

        clock.call_at(clock.now() + timedelta(milliseconds=10), fired.set)

        assert not fired.is_set()
        await asyncio.wait_for(fired.wait(), timeout=2)

    @pytest.mark.asyncio
    async def test_past_deadline_is_deferred_not_inline(self):
        clock = AsyncioClock()
        calls = []

        clock.call_at(clock.now() - timedelta(seconds=1), lambda: calls.append(1))

        assert calls == []
        await asyncio.sleep(0.01)
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_cancel(self):
        clock = AsyncioClock()
        calls = []

        handle = clock.call_at(clock.now(), lambda: calls.append(1))
        handle.cancel()
        await asyncio.sleep(0.01)

        assert calls == []

    def test_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            AsyncioClock().call_at(datetime.now(timezone.utc), lambda: None)
