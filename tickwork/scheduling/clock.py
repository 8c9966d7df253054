"""Clock and timer primitives used by the scheduler.

The scheduler never reads ambient time directly. It asks a Clock for
"now" and for timers, which makes firing fully deterministic under a
ManualClock.

Provides:
- Clock / TimerHandle: the protocol the scheduler depends on
- AsyncioClock: wall clock (UTC) with timers on the running event loop
- ManualClock: controllable clock for tests and simulations
"""

import asyncio
import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    """An armed timer that can be disarmed."""

    def cancel(self) -> None: ...


class Clock(Protocol):
    """Source of the current time and of timers."""

    def now(self) -> datetime: ...

    def call_at(self, when: datetime, callback: Callable[[], None]) -> TimerHandle: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AsyncioClock:
    """Production clock backed by the asyncio event loop.

    Timers are scheduled with ``loop.call_later`` so callbacks always run
    on the loop, never inline with the arming call. Must be used from
    code running inside an event loop unless ``loop`` is given.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def now(self) -> datetime:
        return utc_now()

    def call_at(
        self, when: datetime, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        delay = max((when - self.now()).total_seconds(), 0.0)
        return loop.call_later(delay, callback)


class ManualTimer:
    """Timer armed on a ManualClock."""

    __slots__ = ("when", "callback", "cancelled", "fired")

    def __init__(self, when: datetime, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class ManualClock:
    """Test clock that only moves when told to.

    Timers fire during ``advance`` in timestamp order, ties broken by
    arming order. While a timer fires, ``now()`` reports its due time, so
    timers armed from inside a callback that fall within the advanced
    window fire in the same call.

    Example:
        clock = ManualClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        scheduler = Scheduler(clock=clock)
        scheduler.once("j1", 100, callback)
        scheduler.start()
        clock.advance(milliseconds=100)  # callback fires here
    """

    def __init__(self, start: Optional[datetime] = None):
        if start is None:
            start = utc_now()
        elif start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start
        self._queue: List[Tuple[datetime, int, ManualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> datetime:
        return self._now

    def call_at(self, when: datetime, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(when, callback)
        heapq.heappush(self._queue, (when, next(self._sequence), timer))
        return timer

    def advance(self, delta: Optional[timedelta] = None, **kwargs: Any) -> int:
        """Move time forward, firing every timer that comes due.

        Args:
            delta: Amount of time to advance
            **kwargs: ``timedelta`` keyword arguments used when ``delta``
                is omitted (e.g. ``milliseconds=100``)

        Returns:
            Number of timers fired
        """
        if delta is None:
            delta = timedelta(**kwargs)
        if delta < timedelta(0):
            raise ValueError("ManualClock cannot move backwards")

        target = self._now + delta
        fired = self._fire_until(target)
        self._now = target
        return fired

    def run_pending(self) -> int:
        """Fire timers already due at the current instant."""
        return self._fire_until(self._now)

    def _fire_until(self, target: datetime) -> int:
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, when)
            timer.fired = True
            timer.callback()
            fired += 1
        return fired

    @property
    def pending(self) -> int:
        """Number of armed timers that have neither fired nor been cancelled."""
        return sum(1 for _, _, timer in self._queue if timer.active)

    @property
    def next_deadline(self) -> Optional[datetime]:
        deadlines = [when for when, _, timer in self._queue if timer.active]
        return min(deadlines) if deadlines else None
