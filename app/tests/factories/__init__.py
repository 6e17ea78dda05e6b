"""Test data factories for deterministic test data generation."""

from tests.factories.notifications import (
    make_batched,
    make_event,
    make_integration,
    make_interaction,
    make_preferences,
    make_queued,
    make_quiet_hours,
    make_recipient,
)

__all__ = [
    "make_batched",
    "make_event",
    "make_integration",
    "make_interaction",
    "make_preferences",
    "make_queued",
    "make_quiet_hours",
    "make_recipient",
]
