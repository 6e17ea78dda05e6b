"""Shared fixtures for integration tests.

Integration tests wire the real engine through ``build_notification_engine``
over the in-memory key-value store, replacing only the outer boundaries:
push delivery, the Discord webhook endpoint and the Slack client.
"""

import httpx
import pytest
import pytest_asyncio

from modules.notifications.container import build_notification_engine
from modules.notifications.health import InMemoryIntegrationRepository
from modules.notifications.recipients import InMemoryMembershipRepository
from tests.fixtures.notification_channels import FakeInAppChannel, FakePushChannel


class RecordingWebhook:
    """httpx.MockTransport handler answering with queued status codes (default 204)."""

    def __init__(self):
        self.requests = []
        self.status_codes = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.status_codes.pop(0) if self.status_codes else 204
        return httpx.Response(status)


@pytest.fixture
def webhook():
    return RecordingWebhook()


@pytest.fixture
def push():
    return FakePushChannel()


@pytest.fixture
def in_app():
    return FakeInAppChannel()


@pytest.fixture
def integrations():
    return InMemoryIntegrationRepository()


@pytest.fixture
def memberships():
    return InMemoryMembershipRepository()


@pytest_asyncio.fixture
async def engine(settings, memory_store, clock, webhook, push, in_app, integrations, memberships):
    """Fully wired engine; quiet-hours checks and the job queue follow the test clock."""
    engine = build_notification_engine(
        settings,
        store=memory_store,
        integration_repository=integrations,
        membership_repository=memberships,
        push=push,
        in_app=in_app,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(webhook)),
    )
    engine.quiet_hours.clock = clock.now
    engine.queue.time_fn = clock.time
    yield engine
    await engine.close()
