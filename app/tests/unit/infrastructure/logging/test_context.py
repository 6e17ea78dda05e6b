"""Unit tests for infrastructure.logging.context module.

Tests cover:
- bind_request_context() context manager
- get_correlation_id()
- clear_request_context()
- Context isolation and cleanup
"""

import uuid

import pytest
import structlog

from infrastructure.logging.context import (
    bind_request_context,
    clear_request_context,
    get_correlation_id,
)


@pytest.mark.unit
class TestBindRequestContext:
    """Test suite for bind_request_context context manager."""

    def test_auto_generates_correlation_id(self):
        with bind_request_context() as correlation_id:
            assert get_correlation_id() == correlation_id
            uuid.UUID(correlation_id)

    def test_uses_provided_correlation_id(self):
        with bind_request_context(correlation_id="dispatch-123"):
            assert get_correlation_id() == "dispatch-123"

    def test_binds_notification_fields(self):
        with bind_request_context(
            user_id="u1", workspace_id="w1", notification_type="agent_error"
        ):
            ctx = structlog.contextvars.get_contextvars()

            assert ctx["user_id"] == "u1"
            assert ctx["workspace_id"] == "w1"
            assert ctx["notification_type"] == "agent_error"

    def test_skips_none_values(self):
        with bind_request_context(notification_type="story_completed"):
            ctx = structlog.contextvars.get_contextvars()

            assert "user_id" not in ctx
            assert "workspace_id" not in ctx

    def test_binds_extra_context(self):
        with bind_request_context(job_id="job-1"):
            assert structlog.contextvars.get_contextvars()["job_id"] == "job-1"

    def test_clears_after_exit(self):
        with bind_request_context(notification_type="story_completed"):
            pass

        ctx = structlog.contextvars.get_contextvars()
        assert "notification_type" not in ctx
        assert get_correlation_id() is None

    def test_clears_when_block_raises(self):
        with pytest.raises(RuntimeError):
            with bind_request_context(notification_type="agent_error"):
                raise RuntimeError("boom")

        assert get_correlation_id() is None


@pytest.mark.unit
class TestClearRequestContext:
    """Tests for clear_request_context()."""

    def test_removes_all_context(self):
        structlog.contextvars.bind_contextvars(correlation_id="x", job="y")

        clear_request_context()

        assert structlog.contextvars.get_contextvars() == {}

    def test_idempotent(self):
        clear_request_context()
        clear_request_context()

        assert get_correlation_id() is None
