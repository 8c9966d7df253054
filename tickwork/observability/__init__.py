"""Observability for the scheduler.

Provides:
- Correlation ID context management (one ID per job firing)
- Structured logging configuration (structlog)
- Prometheus metrics for jobs and firings

Usage:
    from tickwork.observability import configure_logging, get_logger

    configure_logging(level="DEBUG", json_output=False)
    logger = get_logger("scheduler")
"""

from tickwork.observability.context import (
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
    correlation_id_context,
    job_correlation_id,
)
from tickwork.observability.logging import (
    get_logger,
    configure_logging,
    add_correlation_id_processor,
    bind_context,
    clear_context,
)
from tickwork.observability.metrics import (
    SCHEDULER_JOBS,
    JOB_FIRINGS,
    JOB_CALLBACK_DURATION,
    get_metrics_text,
    get_metrics_content_type,
)

__all__ = [
    # Context
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "correlation_id_context",
    "job_correlation_id",
    # Logging
    "get_logger",
    "configure_logging",
    "add_correlation_id_processor",
    "bind_context",
    "clear_context",
    # Metrics
    "SCHEDULER_JOBS",
    "JOB_FIRINGS",
    "JOB_CALLBACK_DURATION",
    "get_metrics_text",
    "get_metrics_content_type",
]
