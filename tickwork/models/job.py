"""Job models shared by the scheduler and its callers.

Provides:
- JobKind: cron / once / interval
- JobState: pending / firing / done
- JobInfo: read-only snapshot of a registered job
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class JobKind(str, Enum):
    CRON = "cron"
    ONCE = "once"
    INTERVAL = "interval"


class JobState(str, Enum):
    """Execution state of a job."""

    PENDING = "pending"  # Registered, timer armed or awaiting start
    FIRING = "firing"  # Callback in flight
    DONE = "done"  # No further runs


class JobInfo(BaseModel):
    """Snapshot of a job, safe to hand out to callers.

    Attributes:
        name: Unique job name within its scheduler.
        kind: Job kind.
        state: Execution state at snapshot time.
        schedule: Human-readable schedule (cron source, delay or period).
        next_run_at: Next scheduled firing, if armed.
        anchor: Base timestamp for interval arithmetic.
        running: True while the callback is in flight.
        run_count: Completed firings (successful or failed).
        error_count: Failed firings.
        last_run: Time the most recent firing started.
        last_error: Message of the most recent failure.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: JobKind
    state: JobState
    schedule: str
    next_run_at: Optional[datetime] = None
    anchor: Optional[datetime] = None
    running: bool = False
    run_count: int = Field(0, ge=0)
    error_count: int = Field(0, ge=0)
    last_run: Optional[datetime] = None
    last_error: Optional[str] = None
