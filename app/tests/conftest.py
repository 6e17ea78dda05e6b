"""Root fixtures shared by every test level.

Provides a controllable clock, an in-memory key-value store driven by that
clock, and a Settings instance that never reads the developer's .env.
"""

from datetime import datetime, timezone

import pytest
import structlog

from infrastructure.configuration import Settings
from infrastructure.kvstore import InMemoryKeyValueStore

# 2025-01-15 12:00:00 UTC, a Wednesday.
DEFAULT_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock exposing both epoch and datetime views."""

    def __init__(self, start: datetime = DEFAULT_NOW):
        self._now = start.timestamp()

    def time(self) -> float:
        return self._now

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._now, tz=timezone.utc)

    def set(self, moment: datetime) -> None:
        self._now = moment.timestamp()

    def advance(self, seconds: float) -> None:
        self._now += seconds


@pytest.fixture
def clock():
    """Clock starting at 2025-01-15 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    """In-memory store whose TTLs follow the test clock."""
    return InMemoryKeyValueStore(time_fn=clock.time)


@pytest.fixture
def settings():
    """Settings with defaults only."""
    return Settings(_env_file=None)


@pytest.fixture(autouse=True)
def _clear_log_context():
    yield
    structlog.contextvars.clear_contextvars()
