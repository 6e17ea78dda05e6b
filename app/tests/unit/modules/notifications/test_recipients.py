"""Unit tests for RecipientResolver."""

import pytest

from modules.notifications.domain import NotificationType, NotificationUrgency
from modules.notifications.recipients import (
    InMemoryMembershipRepository,
    RecipientResolver,
    RecipientScope,
)


@pytest.fixture
def memberships():
    repo = InMemoryMembershipRepository()
    repo.add_workspace_member("ws-1", "alice")
    repo.add_workspace_member("ws-1", "bob")
    repo.add_project_member("ws-1", "proj-1", "carol")
    repo.add_project_member("ws-1", "proj-1", "alice")
    return repo


@pytest.fixture
def resolver(memberships):
    return RecipientResolver(memberships)


@pytest.mark.unit
class TestResolve:
    @pytest.mark.asyncio
    async def test_workspace_scope_returns_all_members(self, resolver):
        recipients = await resolver.resolve(RecipientScope(workspace_id="ws-1"))

        assert [r.user_id for r in recipients] == ["alice", "bob", "carol"]
        assert {r.workspace_id for r in recipients} == {"ws-1"}

    @pytest.mark.asyncio
    async def test_project_scope_returns_project_members(self, resolver):
        recipients = await resolver.resolve(
            RecipientScope(workspace_id="ws-1", project_id="proj-1")
        )

        assert [r.user_id for r in recipients] == ["carol", "alice"]

    @pytest.mark.asyncio
    async def test_user_scope_wins_over_project(self, resolver):
        recipients = await resolver.resolve(
            RecipientScope(workspace_id="ws-1", project_id="proj-1", user_id="dave")
        )

        assert [r.user_id for r in recipients] == ["dave"]

    @pytest.mark.asyncio
    async def test_unknown_workspace_is_empty(self, resolver):
        assert await resolver.resolve(RecipientScope(workspace_id="ws-missing")) == []


@pytest.mark.unit
class TestBuildEvent:
    @pytest.mark.asyncio
    async def test_builds_event_for_scope(self, resolver):
        event = await resolver.build_event(
            NotificationType.DEPLOYMENT_FAILED,
            {"projectName": "api"},
            RecipientScope(workspace_id="ws-1", project_id="proj-1"),
            urgency=NotificationUrgency.HIGH,
            batchable=False,
        )

        assert event.type == "deployment_failed"
        assert event.payload == {"projectName": "api"}
        assert [r.user_id for r in event.recipients] == ["carol", "alice"]
        assert event.urgency == NotificationUrgency.HIGH
        assert event.batchable is False
