"""Recipient resolution for trigger producers.

Triggers describe who an event concerns (a workspace, a project, a single
user); the resolver turns that scope into concrete recipients and builds
the NotificationEvent handed to the dispatcher.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel

from infrastructure.logging import get_module_logger
from modules.notifications.domain.models import NotificationEvent, Recipient
from modules.notifications.domain.types import NotificationUrgency, TypeLike

logger = get_module_logger()


class RecipientScope(BaseModel):
    """Who an event concerns.

    ``user_id`` addresses one user; ``project_id`` addresses the project's
    members; with neither, every workspace member is addressed.
    """

    workspace_id: str
    project_id: Optional[str] = None
    user_id: Optional[str] = None


class MembershipRepository(ABC):
    @abstractmethod
    async def list_workspace_members(self, workspace_id: str) -> List[str]:
        pass

    @abstractmethod
    async def list_project_members(self, workspace_id: str, project_id: str) -> List[str]:
        pass


class InMemoryMembershipRepository(MembershipRepository):
    def __init__(self) -> None:
        self._workspaces: Dict[str, List[str]] = {}
        self._projects: Dict[Tuple[str, str], List[str]] = {}

    def add_workspace_member(self, workspace_id: str, user_id: str) -> None:
        members = self._workspaces.setdefault(workspace_id, [])
        if user_id not in members:
            members.append(user_id)

    def add_project_member(self, workspace_id: str, project_id: str, user_id: str) -> None:
        self.add_workspace_member(workspace_id, user_id)
        members = self._projects.setdefault((workspace_id, project_id), [])
        if user_id not in members:
            members.append(user_id)

    async def list_workspace_members(self, workspace_id: str) -> List[str]:
        return list(self._workspaces.get(workspace_id, []))

    async def list_project_members(self, workspace_id: str, project_id: str) -> List[str]:
        return list(self._projects.get((workspace_id, project_id), []))


class RecipientResolver:
    """Resolve a scope into recipients and build dispatchable events.

    Attributes:
        memberships: Workspace/project membership lookup
    """

    def __init__(self, memberships: MembershipRepository) -> None:
        self.memberships = memberships

    async def resolve(self, scope: RecipientScope) -> List[Recipient]:
        """Distinct recipients for ``scope``, in membership order."""
        if scope.user_id:
            user_ids = [scope.user_id]
        elif scope.project_id:
            user_ids = await self.memberships.list_project_members(
                scope.workspace_id, scope.project_id
            )
        else:
            user_ids = await self.memberships.list_workspace_members(scope.workspace_id)

        seen: Set[str] = set()
        recipients = []
        for user_id in user_ids:
            if user_id in seen:
                continue
            seen.add(user_id)
            recipients.append(Recipient(user_id=user_id, workspace_id=scope.workspace_id))

        if not recipients:
            logger.info(
                "recipients_resolved_empty",
                workspace_id=scope.workspace_id,
                project_id=scope.project_id,
            )
        return recipients

    async def build_event(
        self,
        notification_type: TypeLike,
        payload: Dict[str, Any],
        scope: RecipientScope,
        urgency: NotificationUrgency = NotificationUrgency.NORMAL,
        batchable: bool = True,
    ) -> NotificationEvent:
        recipients = await self.resolve(scope)
        return NotificationEvent(
            type=notification_type,
            payload=payload,
            recipients=tuple(recipients),
            urgency=urgency,
            batchable=batchable,
        )
