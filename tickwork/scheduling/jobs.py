"""Job entity: one scheduled unit of work.

A Job describes what to run and when, and tracks its execution state.
It never schedules itself; the Scheduler arms its timers.

Kinds:
- cron: fires on every timestamp matching a CronExpression
- once: fires a single time, ``delay`` after it is armed
- interval: fires every ``period``, aligned to the anchor fixed at arming
  (``anchor + n * period``), so callback latency never accumulates drift

Usage:
    from tickwork.scheduling.jobs import Job

    job = Job.interval("heartbeat", 30_000, send_heartbeat)
    job.arm_anchor(now)
    job.compute_next_run(now)  # now + 30s
"""

import math
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Union

from tickwork.models.job import JobInfo, JobKind, JobState
from tickwork.scheduling.clock import TimerHandle
from tickwork.scheduling.cron import CronExpression
from tickwork.utils.exceptions import ConfigurationError

# Zero-argument unit of work, plain or asynchronous
JobCallback = Callable[[], Union[None, Awaitable[Any]]]


class Job:
    """A registered unit of deferred work.

    Attributes:
        name: Unique key within one scheduler
        kind: JobKind
        callback: Zero-argument callable, may return an awaitable
        expression: Parsed cron expression (cron jobs)
        delay: Delay before the single firing (once jobs)
        period: Repeat period (interval jobs)
        state: JobState
        next_run_at: Absolute time of the next firing, if armed
        anchor: Base for interval arithmetic, fixed when armed
    """

    def __init__(
        self,
        name: str,
        kind: JobKind,
        callback: JobCallback,
        *,
        expression: Optional[CronExpression] = None,
        delay: Optional[timedelta] = None,
        period: Optional[timedelta] = None,
    ):
        if not name:
            raise ConfigurationError("Job name must not be empty")
        if not callable(callback):
            raise ConfigurationError(f"Job {name!r} callback is not callable", name)
        if kind is JobKind.CRON and expression is None:
            raise ConfigurationError(f"Cron job {name!r} requires an expression", name)
        if kind is JobKind.ONCE and (delay is None or delay < timedelta(0)):
            raise ConfigurationError(
                f"Delay for job {name!r} must be greater than or equal to 0", name
            )
        if kind is JobKind.INTERVAL and (period is None or period <= timedelta(0)):
            raise ConfigurationError(
                f"Period for job {name!r} must be greater than 0", name
            )

        self.name = name
        self.kind = kind
        self.callback = callback
        self.expression = expression
        self.delay = delay
        self.period = period

        self.state = JobState.PENDING
        self.next_run_at: Optional[datetime] = None
        self.anchor: Optional[datetime] = None
        self.timer: Optional[TimerHandle] = None
        self.task: Any = None  # in-flight asyncio task of an async callback

        self.run_count = 0
        self.error_count = 0
        self.last_run: Optional[datetime] = None
        self.last_error: Optional[str] = None

        self._once_computed = False

    @classmethod
    def cron(
        cls,
        name: str,
        expression: Union[str, CronExpression],
        callback: JobCallback,
    ) -> "Job":
        if isinstance(expression, str):
            expression = CronExpression(expression)
        return cls(name, JobKind.CRON, callback, expression=expression)

    @classmethod
    def once(cls, name: str, delay_ms: float, callback: JobCallback) -> "Job":
        if not math.isfinite(delay_ms) or delay_ms < 0:
            raise ConfigurationError(
                f"Delay for job {name!r} must be a finite number >= 0", name
            )
        return cls(name, JobKind.ONCE, callback, delay=_duration(name, delay_ms))

    @classmethod
    def interval(cls, name: str, period_ms: float, callback: JobCallback) -> "Job":
        if not math.isfinite(period_ms) or period_ms <= 0:
            raise ConfigurationError(
                f"Period for job {name!r} must be a finite number greater than 0", name
            )
        return cls(name, JobKind.INTERVAL, callback, period=_duration(name, period_ms))

    @property
    def schedule(self) -> str:
        """Human-readable description of the schedule parameter."""
        if self.kind is JobKind.CRON:
            return str(self.expression)
        if self.kind is JobKind.ONCE:
            return f"once after {_format_ms(self.delay)}"
        return f"every {_format_ms(self.period)}"

    @property
    def is_armed(self) -> bool:
        return self.timer is not None

    @property
    def is_running(self) -> bool:
        return self.state is JobState.FIRING

    def arm_anchor(self, now: datetime) -> None:
        """Fix the interval anchor at the moment the job is armed."""
        if self.kind is JobKind.INTERVAL:
            self.anchor = now

    def compute_next_run(self, reference: datetime) -> Optional[datetime]:
        """Compute the next firing strictly after ``reference``.

        Args:
            reference: Current time

        Returns:
            Next firing time, or None when the job has no further runs
            (once job already computed, cron search window exhausted)
        """
        if self.kind is JobKind.CRON:
            assert self.expression is not None
            # Never hand back the slot that is firing right now
            if self.next_run_at is not None and self.next_run_at > reference:
                reference = self.next_run_at
            return self.expression.get_next_date(reference)

        if self.kind is JobKind.ONCE:
            assert self.delay is not None
            if self._once_computed or self.state is JobState.DONE:
                return None
            self._once_computed = True
            return reference + self.delay

        assert self.period is not None
        if self.anchor is None:
            self.anchor = reference
        periods = max((reference - self.anchor) // self.period + 1, 1)
        return self.anchor + self.period * periods

    def mark_firing(self, now: datetime) -> None:
        self.state = JobState.FIRING
        self.last_run = now

    def mark_fired(self) -> None:
        """Record a completed firing; once jobs end in DONE."""
        self.run_count += 1
        if self.kind is JobKind.ONCE:
            self.state = JobState.DONE
        elif self.state is not JobState.DONE:
            self.state = JobState.PENDING

    def mark_done(self) -> None:
        self.state = JobState.DONE
        self.next_run_at = None

    def record_failure(self, error: BaseException) -> None:
        self.error_count += 1
        self.last_error = str(error) or type(error).__name__

    def disarm(self) -> None:
        """Cancel the armed timer and forget the pending next run.

        An unfired once job becomes computable again, so a later start()
        arms it afresh.
        """
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
        self.next_run_at = None
        if self.state is JobState.PENDING:
            self._once_computed = False

    def info(self) -> JobInfo:
        return JobInfo(
            name=self.name,
            kind=self.kind,
            state=self.state,
            schedule=self.schedule,
            next_run_at=self.next_run_at,
            anchor=self.anchor,
            running=self.is_running,
            run_count=self.run_count,
            error_count=self.error_count,
            last_run=self.last_run,
            last_error=self.last_error,
        )

    def __repr__(self) -> str:
        return (
            f"Job(name={self.name!r}, kind={self.kind.value}, "
            f"schedule={self.schedule!r}, state={self.state.value})"
        )


def _format_ms(value: Optional[timedelta]) -> str:
    if value is None:
        return "?"
    ms = value / timedelta(milliseconds=1)
    return f"{ms:g}ms"


def _duration(name: str, ms: float) -> timedelta:
    try:
        return timedelta(milliseconds=ms)
    except OverflowError as e:
        raise ConfigurationError(f"Duration for job {name!r} is too large", name) from e
