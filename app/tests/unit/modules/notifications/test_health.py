"""Unit tests for the chat integration health state machine."""

import pytest

from modules.notifications.domain import IntegrationStatus
from tests.factories.notifications import make_integration


@pytest.mark.unit
class TestIntegrationHealthTracker:
    """Tests for record_success(), record_failure() and mark_invalid()."""

    @pytest.mark.asyncio
    async def test_three_consecutive_failures_flip_to_error(
        self, health_tracker, integration_repository
    ):
        integration = await integration_repository.save(make_integration())

        for _ in range(2):
            integration = await health_tracker.record_failure(integration, "timeout")
            assert integration.status == IntegrationStatus.ACTIVE

        integration = await health_tracker.record_failure(integration, "timeout")

        assert integration.status == IntegrationStatus.ERROR
        assert integration.error_count == 3
        stored = await integration_repository.get("ws-1", "discord")
        assert stored.status == IntegrationStatus.ERROR

    @pytest.mark.asyncio
    async def test_success_resets_counter(self, health_tracker, clock):
        integration = make_integration(error_count=2)

        integration = await health_tracker.record_success(integration)

        assert integration.error_count == 0
        assert integration.message_count == 1
        assert integration.last_message_at == clock.now()

    @pytest.mark.asyncio
    async def test_success_recovers_error_status(self, health_tracker):
        integration = make_integration(status=IntegrationStatus.ERROR, error_count=3)

        integration = await health_tracker.record_success(integration)

        assert integration.status == IntegrationStatus.ACTIVE
        assert integration.error_count == 0

    @pytest.mark.asyncio
    async def test_failures_interrupted_by_success_do_not_trip(self, health_tracker):
        integration = make_integration()

        integration = await health_tracker.record_failure(integration, "e1")
        integration = await health_tracker.record_failure(integration, "e2")
        integration = await health_tracker.record_success(integration)
        integration = await health_tracker.record_failure(integration, "e3")

        assert integration.status == IntegrationStatus.ACTIVE
        assert integration.error_count == 1

    @pytest.mark.asyncio
    async def test_mark_invalid_is_immediate(self, health_tracker):
        integration = await health_tracker.mark_invalid(make_integration(), "HTTP 404")

        assert integration.status == IntegrationStatus.INVALID_WEBHOOK
        assert integration.last_error == "HTTP 404"

    @pytest.mark.asyncio
    async def test_failure_keeps_invalid_status(self, health_tracker):
        integration = make_integration(status=IntegrationStatus.INVALID_WEBHOOK)

        for _ in range(3):
            integration = await health_tracker.record_failure(integration, "boom")

        assert integration.status == IntegrationStatus.INVALID_WEBHOOK
