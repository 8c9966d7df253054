"""Job scheduler: registry, start/stop lifecycle and timer-arming loop.

Provides:
- Cron, one-off and fixed-period jobs under unique names
- Start/stop lifecycle (stopped -> running -> stopped, restartable)
- Per-job error isolation with an explicit ``on_error`` channel
- Structured logging and Prometheus metrics

Usage:
    scheduler = Scheduler(on_error=lambda err: alert(err.job_name))

    scheduler.schedule("backup", "0 2 * * *", backup_database)
    scheduler.once("warmup", 5_000, warm_caches)
    scheduler.interval("heartbeat", 30_000, send_heartbeat)

    # Inside a running event loop
    scheduler.start()
    ...
    scheduler.stop()
"""

import asyncio
import functools
import inspect
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

import structlog

from tickwork.models.job import JobInfo, JobKind, JobState
from tickwork.observability.context import correlation_id_context, job_correlation_id
from tickwork.observability.logging import configure_logging
from tickwork.observability.metrics import (
    JOB_CALLBACK_DURATION,
    JOB_FIRINGS,
    SCHEDULER_JOBS,
)
from tickwork.scheduling.clock import AsyncioClock, Clock
from tickwork.scheduling.cron import DEFAULT_SEARCH_YEARS, CronExpression
from tickwork.scheduling.jobs import Job, JobCallback
from tickwork.utils.exceptions import CallbackError, ConfigurationError

if TYPE_CHECKING:
    from tickwork.models.config import TickworkConfig

logger = structlog.get_logger()

ErrorHandler = Callable[[CallbackError], None]


class Scheduler:
    """Cooperative, single-threaded job scheduler.

    Timers are armed only while the scheduler is running. Each firing
    invokes the job's callback and then, for recurring jobs, computes
    and arms the next timer. Asynchronous callbacks are started as tasks
    and not awaited, so a slow job never holds back the others.

    All state lives on one execution context and is not locked.
    Registrations, ``cancel`` and ``stop`` issued from inside a running
    callback take effect immediately on the shared registry.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        on_error: Optional[ErrorHandler] = None,
        cron_search_years: int = DEFAULT_SEARCH_YEARS,
        metrics_enabled: bool = True,
    ):
        """Initialize scheduler.

        Args:
            clock: Time and timer source (default: AsyncioClock)
            on_error: Called with a CallbackError whenever a callback fails
            cron_search_years: Search window for cron expressions given
                as strings
            metrics_enabled: Update Prometheus metrics
        """
        self.clock: Clock = clock or AsyncioClock()
        self.on_error = on_error
        self.cron_search_years = cron_search_years
        self.metrics_enabled = metrics_enabled

        self._jobs: Dict[str, Job] = {}
        self._running = False

        logger.info("scheduler_initialized", clock=type(self.clock).__name__)

    @classmethod
    def from_config(
        cls,
        config: "TickworkConfig",
        clock: Optional[Clock] = None,
        on_error: Optional[ErrorHandler] = None,
        apply_logging: bool = True,
    ) -> "Scheduler":
        """Build a scheduler from a loaded configuration.

        Args:
            config: Validated configuration
            clock: Time and timer source (default: AsyncioClock)
            on_error: Called with a CallbackError whenever a callback fails
            apply_logging: Reconfigure structlog from the ``logging`` section
        """
        if apply_logging:
            configure_logging(**config.logging.model_dump())
        return cls(
            clock=clock,
            on_error=on_error,
            cron_search_years=config.scheduler.cron_search_years,
            metrics_enabled=config.scheduler.metrics_enabled,
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def schedule(
        self,
        name: str,
        cron_expression: Union[str, CronExpression],
        callback: JobCallback,
    ) -> Job:
        """Register a cron job.

        Args:
            name: Unique job name
            cron_expression: Five-field cron string or parsed expression
            callback: Zero-argument callable, may be async

        Returns:
            The registered Job

        Raises:
            ConfigurationError: If the name is already registered
            ParseError: If the cron expression is malformed
        """
        self._ensure_unique(name)
        if isinstance(cron_expression, str):
            cron_expression = CronExpression(
                cron_expression, search_years=self.cron_search_years
            )
        return self._add_job(Job.cron(name, cron_expression, callback))

    def once(self, name: str, delay_ms: float, callback: JobCallback) -> Job:
        """Register a job that fires a single time, ``delay_ms`` after arming.

        Raises:
            ConfigurationError: If the name is taken or the delay is negative
        """
        self._ensure_unique(name)
        return self._add_job(Job.once(name, delay_ms, callback))

    def interval(self, name: str, period_ms: float, callback: JobCallback) -> Job:
        """Register a job that fires every ``period_ms``, anchored at arming.

        Raises:
            ConfigurationError: If the name is taken or the period is not positive
        """
        self._ensure_unique(name)
        return self._add_job(Job.interval(name, period_ms, callback))

    def cancel(self, name: str) -> bool:
        """Disarm and remove a job.

        Args:
            name: Job name

        Returns:
            True if the job was removed, False if not found
        """
        job = self._jobs.pop(name, None)
        if job is None:
            logger.warning("job_remove_failed", job_name=name, reason="not_found")
            return False

        job.disarm()
        logger.info("job_removed", job_name=name)
        self._update_metrics()
        return True

    def _ensure_unique(self, name: str) -> None:
        if name in self._jobs:
            raise ConfigurationError(f"Job {name!r} already exists", job_name=name)

    def _add_job(self, job: Job) -> Job:
        self._ensure_unique(job.name)
        self._jobs[job.name] = job

        logger.info(
            "job_added",
            job_name=job.name,
            kind=job.kind.value,
            schedule=job.schedule,
        )

        if self._running:
            self._arm(job, initial=True)

        self._update_metrics()
        return job

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start arming timers for every registered job.

        Interval anchors are fixed to the current time. Calling start()
        while already running is a no-op.
        """
        if self._running:
            logger.warning("scheduler_already_running")
            return

        self._running = True
        for job in list(self._jobs.values()):
            if not job.is_armed:
                self._arm(job, initial=True)

        logger.info("scheduler_started", jobs=len(self._jobs))
        self._update_metrics()

    def stop(self) -> None:
        """Disarm every timer. Jobs stay registered for a later start().

        Callbacks already in flight are not interrupted. Calling stop()
        while stopped is a no-op.
        """
        if not self._running:
            return

        self._running = False
        for job in self._jobs.values():
            job.disarm()

        logger.info("scheduler_stopped", jobs=len(self._jobs))

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_job(self, name: str) -> Optional[JobInfo]:
        job = self._jobs.get(name)
        return job.info() if job else None

    def get_jobs(self) -> List[JobInfo]:
        return [job.info() for job in self._jobs.values()]

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    # ------------------------------------------------------------------
    # Arming and dispatch
    # ------------------------------------------------------------------

    def _is_registered(self, job: Job) -> bool:
        return self._jobs.get(job.name) is job

    def _arm(self, job: Job, initial: bool = False, now: Optional[datetime] = None) -> None:
        """Compute the job's next run and arm a timer for it."""
        if now is None:
            now = self.clock.now()
        if initial:
            job.arm_anchor(now)

        next_run = job.compute_next_run(now)
        if next_run is None:
            if job.kind is JobKind.CRON:
                self._retire(job, "job_exhausted")
            return

        job.next_run_at = next_run
        job.timer = self.clock.call_at(next_run, functools.partial(self._fire, job))
        logger.debug("job_armed", job_name=job.name, next_run=next_run.isoformat())

    def _retire(self, job: Job, event: str) -> None:
        job.mark_done()
        if self._is_registered(job):
            del self._jobs[job.name]
        logger.info(event, job_name=job.name, kind=job.kind.value)
        self._update_metrics()

    def _fire(self, job: Job) -> None:
        """Timer callback: dispatch the job, then arm its next run."""
        scheduled_at = job.next_run_at
        job.timer = None
        if not self._running or not self._is_registered(job):
            return

        now = self.clock.now()
        if scheduled_at is not None and scheduled_at > now:
            # Timer primitives may fire marginally early
            now = scheduled_at

        if job.is_running:
            logger.warning(
                "job_missed",
                job_name=job.name,
                scheduled_run_time=now.isoformat(),
                reason="previous_run_in_flight",
            )
            if self.metrics_enabled:
                JOB_FIRINGS.labels(kind=job.kind.value, status="missed").inc()
        else:
            self._dispatch(job, now)

        self._reschedule(job, now)

    def _reschedule(self, job: Job, now: datetime) -> None:
        if not self._is_registered(job):
            return  # cancelled from inside its own callback
        if job.kind is JobKind.ONCE:
            return  # retired by _finish once its callback completes
        if not self._running or job.is_armed:
            return
        self._arm(job, now=now)

    def _dispatch(self, job: Job, now: datetime) -> None:
        job.mark_firing(now)
        logger.debug("job_firing", job_name=job.name, scheduled_run_time=now.isoformat())
        started = time.perf_counter()

        with correlation_id_context(job_correlation_id(job.name, now)):
            try:
                result = job.callback()
            except Exception as e:
                self._finish(job, started, e)
                return

            if not inspect.isawaitable(result):
                self._finish(job, started, None)
                return

            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                if inspect.iscoroutine(result):
                    result.close()
                self._finish(job, started, e)
                return

            # The task copies the current context, correlation ID included
            task = asyncio.ensure_future(result, loop=loop)
            job.task = task
            task.add_done_callback(functools.partial(self._on_task_done, job, started))

    def _on_task_done(self, job: Job, started: float, task: "asyncio.Future[Any]") -> None:
        job.task = None
        error: Optional[BaseException]
        if task.cancelled():
            error = asyncio.CancelledError(f"Job {job.name!r} task was cancelled")
        else:
            error = task.exception()
        self._finish(job, started, error)

    def _finish(self, job: Job, started: float, error: Optional[BaseException]) -> None:
        duration = time.perf_counter() - started
        job.mark_fired()

        if error is None:
            logger.info(
                "job_executed",
                job_name=job.name,
                duration_seconds=round(duration, 3),
            )
        else:
            job.record_failure(error)
            logger.error(
                "job_failed",
                job_name=job.name,
                error=str(error),
                exc_info=error,
            )
            self._report(CallbackError(job.name, error))

        if self.metrics_enabled:
            status = "success" if error is None else "failed"
            JOB_FIRINGS.labels(kind=job.kind.value, status=status).inc()
            JOB_CALLBACK_DURATION.labels(kind=job.kind.value).observe(duration)
        self._update_metrics()

        if job.kind is JobKind.ONCE and self._is_registered(job):
            self._retire(job, "job_done")

    def _report(self, error: CallbackError) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception:
            # A failing error handler must not break dispatch
            logger.exception("error_handler_failed", job_name=error.job_name)

    def _update_metrics(self) -> None:
        """Update Prometheus job gauges."""
        if not self.metrics_enabled:
            return
        counts = {state: 0 for state in JobState}
        for job in self._jobs.values():
            counts[job.state] += 1
        for state, count in counts.items():
            SCHEDULER_JOBS.labels(state=state.value).set(count)
