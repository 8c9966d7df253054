"""Correlation ID context for tracing job firings.

Every firing runs under its own correlation ID, stored in a ContextVar so
it follows the callback into any asyncio task it creates.

Usage:
    from tickwork.observability.context import correlation_id_context

    with correlation_id_context(job_correlation_id("backup", now)):
        run_callback()
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import Generator, Optional

_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context.

    Args:
        corr_id: Correlation ID to use. Generates a UUID4 if None.

    Returns:
        The correlation ID that was set.
    """
    if corr_id is None:
        corr_id = str(uuid.uuid4())
    _correlation_id_var.set(corr_id)
    return corr_id


def get_correlation_id() -> Optional[str]:
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


@contextmanager
def correlation_id_context(
    corr_id: Optional[str] = None,
) -> Generator[str, None, None]:
    """Scope a correlation ID; the previous value is restored on exit.

    Args:
        corr_id: Correlation ID to use. Generates a UUID4 if None.

    Yields:
        The correlation ID active inside the block.
    """
    if corr_id is None:
        corr_id = str(uuid.uuid4())

    token = _correlation_id_var.set(corr_id)
    try:
        yield corr_id
    finally:
        _correlation_id_var.reset(token)


def job_correlation_id(job_name: str, fired_at: datetime) -> str:
    """Build the correlation ID for one firing, e.g. ``backup-20240101-020000``."""
    return f"{job_name}-{fired_at.strftime('%Y%m%d-%H%M%S')}"
