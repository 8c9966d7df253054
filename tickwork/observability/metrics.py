"""Prometheus metrics for the scheduler.

Defines:
- SCHEDULER_JOBS: registered jobs by state
- JOB_FIRINGS: firings by job kind and outcome
- JOB_CALLBACK_DURATION: callback runtime by job kind

Usage:
    from tickwork.observability.metrics import JOB_FIRINGS, get_metrics_text

    JOB_FIRINGS.labels(kind="cron", status="success").inc()
    payload = get_metrics_text()
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with the default registry
REGISTRY = CollectorRegistry(auto_describe=True)

SCHEDULER_JOBS = Gauge(
    name="tickwork_scheduler_jobs",
    documentation="Number of registered jobs",
    labelnames=["state"],  # pending, firing, done
    registry=REGISTRY,
)

JOB_FIRINGS = Counter(
    name="tickwork_job_firings_total",
    documentation="Total job firings",
    labelnames=["kind", "status"],  # cron/once/interval, success/failed/missed
    registry=REGISTRY,
)

JOB_CALLBACK_DURATION = Histogram(
    name="tickwork_job_callback_duration_seconds",
    documentation="Job callback duration in seconds",
    labelnames=["kind"],
    buckets=(0.001, 0.01, 0.1, 0.5, 1, 5, 30, 60, 300, float("inf")),
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Generate metrics in Prometheus exposition format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
