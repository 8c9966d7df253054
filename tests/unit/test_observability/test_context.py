"""Tests for correlation ID context management."""

import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from tickwork.observability.context import (
    clear_correlation_id,
    correlation_id_context,
    get_correlation_id,
    job_correlation_id,
    set_correlation_id,
)


class TestSetCorrelationId:
    """Tests for set_correlation_id function."""

    def test_generates_uuid_when_no_id_provided(self):
        """Should generate a valid UUID when no ID is provided."""
        clear_correlation_id()

        result = set_correlation_id()

        assert str(uuid.UUID(result)) == result
        assert get_correlation_id() == result
        clear_correlation_id()

    def test_uses_provided_id(self):
        """Should use the provided ID instead of generating."""
        result = set_correlation_id("backup-20240101-020000")

        assert result == "backup-20240101-020000"
        assert get_correlation_id() == "backup-20240101-020000"
        clear_correlation_id()

    def test_clear(self):
        set_correlation_id("x")

        clear_correlation_id()

        assert get_correlation_id() is None


class TestCorrelationIdContext:
    """Tests for correlation_id_context manager."""

    def test_sets_id_inside_block(self):
        clear_correlation_id()

        with correlation_id_context("inner") as corr_id:
            assert corr_id == "inner"
            assert get_correlation_id() == "inner"

        assert get_correlation_id() is None

    def test_restores_previous_id(self):
        """Should restore the outer ID, not clear it."""
        set_correlation_id("outer")

        with correlation_id_context("inner"):
            pass

        assert get_correlation_id() == "outer"
        clear_correlation_id()

    def test_restores_on_exception(self):
        clear_correlation_id()

        with pytest.raises(RuntimeError):
            with correlation_id_context("inner"):
                raise RuntimeError("boom")

        assert get_correlation_id() is None

    def test_generates_id_when_none(self):
        with correlation_id_context() as corr_id:
            assert uuid.UUID(corr_id)

    @pytest.mark.asyncio
    async def test_task_inherits_id(self):
        """Tasks created inside the block should keep the ID."""
        seen = []

        async def capture():
            await asyncio.sleep(0)
            seen.append(get_correlation_id())

        with correlation_id_context("job-1"):
            task = asyncio.ensure_future(capture())
        await task

        assert seen == ["job-1"]


class TestJobCorrelationId:
    """Tests for job_correlation_id."""

    def test_format(self):
        fired_at = datetime(2024, 1, 1, 2, 0, 5, tzinfo=timezone.utc)

        assert job_correlation_id("backup", fired_at) == "backup-20240101-020005"
