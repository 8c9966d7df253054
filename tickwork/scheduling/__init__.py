"""Scheduling engine.

Provides:
- CronExpression: five-field cron parsing and next-date search
- Job: one scheduled unit of work (cron, once, interval)
- Scheduler: job registry, start/stop lifecycle and timer-arming loop
- AsyncioClock / ManualClock: time and timer sources

Usage:
    from tickwork.scheduling import Scheduler

    scheduler = Scheduler()
    scheduler.schedule("nightly_backup", "0 2 * * *", backup)
    scheduler.interval("heartbeat", 30_000, send_heartbeat)

    # Inside a running event loop
    scheduler.start()
"""

from tickwork.scheduling.cron import CronExpression, CronField, parse_cron
from tickwork.scheduling.clock import AsyncioClock, Clock, ManualClock, TimerHandle
from tickwork.scheduling.jobs import Job, JobCallback
from tickwork.scheduling.scheduler import ErrorHandler, Scheduler

__all__ = [
    "CronExpression",
    "CronField",
    "parse_cron",
    "AsyncioClock",
    "Clock",
    "ManualClock",
    "TimerHandle",
    "Job",
    "JobCallback",
    "ErrorHandler",
    "Scheduler",
]
