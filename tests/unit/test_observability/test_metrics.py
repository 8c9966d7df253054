"""Tests for Prometheus metrics."""

from prometheus_client import CollectorRegistry

from tickwork.observability.metrics import (
    JOB_CALLBACK_DURATION,
    JOB_FIRINGS,
    REGISTRY,
    SCHEDULER_JOBS,
    get_metrics_content_type,
    get_metrics_text,
)


class TestMetrics:
    """Tests for metric definitions."""

    def test_job_firings_counter(self):
        counter = JOB_FIRINGS.labels(kind="cron", status="missed")
        before = counter._value.get()

        counter.inc()

        assert counter._value.get() == before + 1

    def test_scheduler_jobs_gauge(self):
        gauge = SCHEDULER_JOBS.labels(state="done")

        gauge.set(3)

        assert gauge._value.get() == 3

    def test_callback_duration_histogram(self):
        histogram = JOB_CALLBACK_DURATION.labels(kind="interval")
        before = histogram._sum.get()

        histogram.observe(0.25)

        assert histogram._sum.get() == before + 0.25


class TestMetricsUtilities:
    """Tests for exposition helpers."""

    def test_registry_is_private(self):
        assert isinstance(REGISTRY, CollectorRegistry)

    def test_get_metrics_text_contains_metric_names(self):
        JOB_FIRINGS.labels(kind="once", status="success").inc(0)

        text = get_metrics_text().decode("utf-8")

        assert "tickwork_job_firings_total" in text
        assert "tickwork_scheduler_jobs" in text
        assert "tickwork_job_callback_duration_seconds" in text

    def test_get_metrics_content_type(self):
        assert get_metrics_content_type().startswith("text/plain")
