"""Custom exceptions for the tickwork scheduling engine

This module defines the exception hierarchy for job scheduling:
- Base exception for all scheduler errors
- Construction-time errors (cron parsing, job configuration)
- Firing-time errors (callback failures, reported but never raised)

All exceptions inherit from SchedulerError to allow catching all
scheduler-related errors in a single except block when needed.
"""

from typing import Optional


class SchedulerError(Exception):
    """Base exception for all scheduler errors

    Use this to catch any error raised by the engine:
    ```python
    try:
        scheduler.schedule("backup", "0 2 * * *", backup)
    except SchedulerError as e:
        logger.error("registration_failed", error=str(e))
    ```
    """

    pass


class ParseError(SchedulerError, ValueError):
    """Cron expression could not be parsed

    Raised when:
    - The expression does not have exactly five fields
    - A field value is not numeric or is empty
    - A value falls outside the field's valid range
    - A range is reversed or a step is not positive

    Always raised while constructing a CronExpression, never while
    searching for the next date.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[str] = None,
    ) -> None:
        self.field = field
        self.value = value
        if field is not None:
            message = f"Invalid {field} field {value!r}: {message}"
        super().__init__(message)


class ConfigurationError(SchedulerError, ValueError):
    """Job registration was rejected

    Raised when:
    - A job name is already registered on the scheduler
    - A one-off delay is negative
    - An interval period is zero or negative

    The job is never added to the registry when this is raised.
    """

    def __init__(self, message: str, job_name: Optional[str] = None) -> None:
        self.job_name = job_name
        super().__init__(message)


class CallbackError(SchedulerError):
    """A job callback failed during firing

    Wraps the original exception (available as ``__cause__`` and
    ``original``). Delivered to the scheduler's ``on_error`` handler;
    the dispatch loop never re-raises it and the job keeps its future
    firings.
    """

    def __init__(self, job_name: str, original: BaseException) -> None:
        self.job_name = job_name
        self.original = original
        super().__init__(f"Job {job_name!r} failed: {original}")
        self.__cause__ = original
