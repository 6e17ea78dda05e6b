"""Unit tests for the quiet hours engine.

Tests cover:
- is_time_between() window arithmetic, including midnight crossing
- Timezone conversion and invalid timezone fallback
- get_status() / calculate_end_time()
- Bypass rules for critical types
- Hold queue: queue_for_later(), flush ordering, TTL, workspace filter
- Digest summaries
"""

from datetime import datetime, timezone

import pytest

from modules.notifications.domain import NotificationType
from modules.notifications.quiet_hours import (
    is_time_between,
    resolve_timezone,
    should_bypass_quiet_hours,
)
from tests.factories.notifications import (
    make_event,
    make_preferences,
    make_queued,
    make_quiet_hours,
    make_recipient,
)


def _utc(hour, minute=0, day=15):
    return datetime(2025, 1, day, hour, minute, tzinfo=timezone.utc)


@pytest.mark.unit
class TestIsTimeBetween:
    """Tests for is_time_between()."""

    @pytest.mark.parametrize(
        "current,start,end,expected",
        [
            ("23:00", "22:00", "08:00", True),
            ("03:00", "22:00", "08:00", True),
            ("12:00", "22:00", "08:00", False),
            ("22:00", "22:00", "08:00", True),
            ("08:00", "22:00", "08:00", False),
            ("07:59", "22:00", "08:00", True),
            ("13:00", "12:00", "14:00", True),
            ("14:00", "12:00", "14:00", False),
            ("11:59", "12:00", "14:00", False),
        ],
    )
    def test_window_membership(self, current, start, end, expected):
        assert is_time_between(current, start, end) is expected

    def test_empty_window_contains_nothing(self):
        assert is_time_between("10:00", "10:00", "10:00") is False


@pytest.mark.unit
class TestBypass:
    """Tests for should_bypass_quiet_hours()."""

    @pytest.mark.parametrize(
        "notification_type,except_critical,expected",
        [
            (NotificationType.AGENT_ERROR, True, True),
            (NotificationType.DEPLOYMENT_FAILED, True, True),
            (NotificationType.AGENT_ERROR, False, False),
            (NotificationType.STORY_COMPLETED, True, False),
            (NotificationType.STORY_COMPLETED, False, False),
        ],
    )
    def test_only_critical_types_bypass(self, notification_type, except_critical, expected):
        assert should_bypass_quiet_hours(notification_type, except_critical) is expected

    def test_engine_delegates(self, quiet_hours_engine):
        assert quiet_hours_engine.should_bypass_quiet_hours("agent_error", True)


@pytest.mark.unit
class TestWindowChecks:
    """Tests for is_in_quiet_hours() and get_status()."""

    def test_disabled_config_is_never_quiet(self, quiet_hours_engine, clock):
        clock.set(_utc(23))
        prefs = make_preferences(quiet_hours=make_quiet_hours(enabled=False))

        assert not quiet_hours_engine.is_in_quiet_hours("u1", prefs)

    def test_window_evaluated_in_configured_timezone(self, quiet_hours_engine, clock):
        # 12:00 UTC is 23:00 in Sydney (UTC+11 in January).
        clock.set(_utc(12))
        sydney = make_preferences(quiet_hours=make_quiet_hours(timezone="Australia/Sydney"))
        utc = make_preferences(quiet_hours=make_quiet_hours(timezone="UTC"))

        assert quiet_hours_engine.is_in_quiet_hours("u1", sydney)
        assert not quiet_hours_engine.is_in_quiet_hours("u1", utc)

    def test_invalid_timezone_falls_back_to_utc(self, quiet_hours_engine, clock):
        clock.set(_utc(23))
        prefs = make_preferences(quiet_hours=make_quiet_hours(timezone="Mars/Olympus"))

        assert resolve_timezone("Mars/Olympus").zone == "UTC"
        assert quiet_hours_engine.is_in_quiet_hours("u1", prefs)

    def test_status_outside_window(self, quiet_hours_engine, clock):
        clock.set(_utc(12))
        status = quiet_hours_engine.get_status("u1", make_preferences(quiet_hours=make_quiet_hours()))

        assert status.in_quiet_hours is False
        assert status.ends_at is None

    def test_status_after_start_rolls_end_to_next_day(self, quiet_hours_engine, clock):
        clock.set(_utc(23))
        status = quiet_hours_engine.get_status("u1", make_preferences(quiet_hours=make_quiet_hours()))

        assert status.in_quiet_hours is True
        assert status.ends_at == "2025-01-16T08:00:00+00:00"
        assert status.timezone == "UTC"

    def test_status_after_midnight_ends_same_day(self, quiet_hours_engine, clock):
        clock.set(_utc(3))
        status = quiet_hours_engine.get_status("u1", make_preferences(quiet_hours=make_quiet_hours()))

        assert status.ends_at == "2025-01-15T08:00:00+00:00"

    def test_end_time_is_localized(self, quiet_hours_engine, clock):
        # 12:00 UTC -> 07:00 in New York (UTC-5), inside 22:00-08:00.
        clock.set(_utc(12))
        config = make_quiet_hours(timezone="America/New_York")

        ends_at = quiet_hours_engine.calculate_end_time(config)

        assert ends_at.isoformat() == "2025-01-15T08:00:00-05:00"

    def test_same_day_window_end(self, quiet_hours_engine, clock):
        clock.set(_utc(13))
        config = make_quiet_hours(start_time="12:00", end_time="14:00")

        assert quiet_hours_engine.calculate_end_time(config) == _utc(14)


@pytest.mark.unit
class TestHoldQueue:
    """Tests for queue_for_later() and flush_queued_notifications()."""

    @pytest.mark.asyncio
    async def test_flush_returns_items_sorted_and_clears(self, quiet_hours_engine, clock):
        recipient = make_recipient("u1", "ws-1")
        await quiet_hours_engine.queue_for_later(recipient, make_event("agent_message"))
        clock.advance(5)
        await quiet_hours_engine.queue_for_later(recipient, make_event("story_completed"))
        clock.advance(5)
        await quiet_hours_engine.queue_for_later(recipient, make_event("story_completed"))

        items = await quiet_hours_engine.flush_queued_notifications("u1")

        assert [i.type for i in items] == ["agent_message", "story_completed", "story_completed"]
        assert [i.timestamp for i in items] == sorted(i.timestamp for i in items)
        assert await quiet_hours_engine.flush_queued_notifications("u1") == []

    @pytest.mark.asyncio
    async def test_same_millisecond_items_are_both_kept(self, quiet_hours_engine):
        recipient = make_recipient("u1")
        await quiet_hours_engine.queue_for_later(recipient, make_event())
        await quiet_hours_engine.queue_for_later(recipient, make_event())

        assert await quiet_hours_engine.count_queued_notifications("u1") == 2

    @pytest.mark.asyncio
    async def test_held_items_expire_after_twelve_hours(self, quiet_hours_engine, clock):
        await quiet_hours_engine.queue_for_later(make_recipient("u1"), make_event())

        clock.advance(12 * 3600)

        assert await quiet_hours_engine.flush_queued_notifications("u1") == []

    @pytest.mark.asyncio
    async def test_flush_by_workspace_leaves_other_workspaces(self, quiet_hours_engine):
        await quiet_hours_engine.queue_for_later(make_recipient("u1", "ws-1"), make_event())
        await quiet_hours_engine.queue_for_later(make_recipient("u1", "ws-2"), make_event())

        items = await quiet_hours_engine.flush_queued_notifications("u1", "ws-1")

        assert [i.workspace_id for i in items] == ["ws-1"]
        remaining = await quiet_hours_engine.get_queued_notifications("u1")
        assert [i.workspace_id for i in remaining] == ["ws-2"]

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, quiet_hours_engine):
        await quiet_hours_engine.queue_for_later(make_recipient("u1"), make_event())
        await quiet_hours_engine.queue_for_later(make_recipient("u2"), make_event())

        await quiet_hours_engine.flush_queued_notifications("u1")

        assert await quiet_hours_engine.users_with_queued_notifications() == ["u2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", ["u[1]", "u*", "u?"])
    async def test_user_ids_with_glob_characters_match_literally(self, quiet_hours_engine, user_id):
        await quiet_hours_engine.queue_for_later(make_recipient(user_id), make_event())
        await quiet_hours_engine.queue_for_later(make_recipient("u1"), make_event())
        await quiet_hours_engine.queue_for_later(make_recipient("u1:x"), make_event())

        assert await quiet_hours_engine.count_queued_notifications(user_id) == 1
        items = await quiet_hours_engine.flush_queued_notifications(user_id)

        assert len(items) == 1
        assert sorted(await quiet_hours_engine.users_with_queued_notifications()) == ["u1", "u1:x"]

    @pytest.mark.asyncio
    async def test_user_id_prefix_of_another_is_isolated(self, quiet_hours_engine):
        await quiet_hours_engine.queue_for_later(make_recipient("u1"), make_event())
        await quiet_hours_engine.queue_for_later(make_recipient("u1:x"), make_event())

        assert await quiet_hours_engine.count_queued_notifications("u1") == 1
        assert len(await quiet_hours_engine.flush_queued_notifications("u1")) == 1
        assert await quiet_hours_engine.count_queued_notifications("u1:x") == 1

    @pytest.mark.asyncio
    async def test_corrupted_entry_is_dropped(self, quiet_hours_engine, memory_store):
        await quiet_hours_engine.queue_for_later(make_recipient("u1"), make_event())
        await memory_store.set("quiet-hours:u1:1-broken", "not-json")

        items = await quiet_hours_engine.flush_queued_notifications("u1")

        assert len(items) == 1
        assert await memory_store.scan("quiet-hours:u1:*") == []


@pytest.mark.unit
class TestDigest:
    """Tests for build_digest_summary()."""

    def test_digest_counts_by_type(self, quiet_hours_engine):
        items = [
            make_queued("story_completed", timestamp=1),
            make_queued("agent_message", timestamp=2),
            make_queued("story_completed", timestamp=3),
        ]

        digest = quiet_hours_engine.build_digest_summary(items)

        assert digest.count == 3
        assert digest.by_type == {"story_completed": 2, "agent_message": 1}
        assert digest.title == "3 notifications during quiet hours"
        assert digest.body == "You missed: 2 story completed, 1 agent message"

    def test_single_item_title(self, quiet_hours_engine):
        digest = quiet_hours_engine.build_digest_summary([make_queued()])

        assert digest.title == "1 notification during quiet hours"
