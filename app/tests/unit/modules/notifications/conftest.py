"""Fixtures for notification engine unit tests.

Every component runs against the in-memory key-value store and the test
clock from the root conftest, so TTL expiry and quiet-hours windows are
driven by ``clock.advance`` / ``clock.set`` rather than real time.
"""

from unittest.mock import AsyncMock

import pytest

from infrastructure.queue import JobQueue, QueueConfig
from modules.notifications.batching import BatchQueue
from modules.notifications.dispatcher import NotificationDispatcher
from modules.notifications.health import (
    InMemoryIntegrationRepository,
    IntegrationHealthTracker,
)
from modules.notifications.preferences import (
    InMemoryPreferenceRepository,
    PreferenceStore,
)
from modules.notifications.quiet_hours import QuietHoursEngine
from modules.notifications.rate_limit import RateLimiter
from tests.fixtures.notification_channels import FakeInAppChannel, FakePushChannel


@pytest.fixture
def preference_repository():
    return InMemoryPreferenceRepository()


@pytest.fixture
def preference_store(preference_repository, memory_store, clock):
    return PreferenceStore(preference_repository, memory_store, clock=clock.now)


@pytest.fixture
def quiet_hours_engine(memory_store, clock):
    return QuietHoursEngine(memory_store, clock=clock.now)


@pytest.fixture
def batch_queue(memory_store, clock):
    return BatchQueue(memory_store, time_fn=clock.time)


@pytest.fixture
def rate_limiter(memory_store, clock):
    return RateLimiter(memory_store, time_fn=clock.time)


@pytest.fixture
def integration_repository():
    return InMemoryIntegrationRepository()


@pytest.fixture
def health_tracker(integration_repository, clock):
    return IntegrationHealthTracker(integration_repository, clock=clock.now)


@pytest.fixture
def job_queue(memory_store, clock):
    return JobQueue(memory_store, QueueConfig(), time_fn=clock.time)


@pytest.fixture
def push_channel():
    return FakePushChannel()


@pytest.fixture
def in_app_channel():
    return FakeInAppChannel()


@pytest.fixture
def retry_processor():
    """Retry processor double; only enqueue_delivery is used by the dispatcher."""
    processor = AsyncMock()
    processor.enqueue_delivery.return_value = "job-1"
    return processor


@pytest.fixture
def make_dispatcher(
    preference_store, quiet_hours_engine, batch_queue, in_app_channel, push_channel
):
    """Factory building a dispatcher over the shared components.

    Example:
        dispatcher = make_dispatcher(chat_channels={"slack": slack})
    """

    def _factory(**overrides) -> NotificationDispatcher:
        kwargs = {
            "preferences": preference_store,
            "quiet_hours": quiet_hours_engine,
            "batch_queue": batch_queue,
            "in_app": in_app_channel,
            "push": push_channel,
        }
        kwargs.update(overrides)
        return NotificationDispatcher(**kwargs)

    return _factory
