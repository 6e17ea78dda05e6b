"""Chat integration persistence port and health tracking.

Consecutive failures move an active integration to ``error`` after the
threshold; the next successful send moves it back. Credential and target
rejections (HTTP 401/403/404, revoked tokens) mark it ``invalid_webhook``,
which only an out-of-band reconnection clears.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from infrastructure.logging import get_module_logger
from modules.notifications.domain.models import ChatIntegration, IntegrationStatus

logger = get_module_logger()

FAILURE_THRESHOLD = 3


class IntegrationRepository(ABC):
    """Persistence port for chat integration records."""

    @abstractmethod
    async def get(self, workspace_id: str, provider: str) -> Optional[ChatIntegration]:
        pass

    @abstractmethod
    async def save(self, integration: ChatIntegration) -> ChatIntegration:
        pass

    @abstractmethod
    async def list_for_workspace(self, workspace_id: str) -> List[ChatIntegration]:
        pass


class InMemoryIntegrationRepository(IntegrationRepository):
    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], ChatIntegration] = {}

    async def get(self, workspace_id: str, provider: str) -> Optional[ChatIntegration]:
        return self._records.get((workspace_id, provider))

    async def save(self, integration: ChatIntegration) -> ChatIntegration:
        self._records[(integration.workspace_id, integration.provider)] = integration
        return integration

    async def list_for_workspace(self, workspace_id: str) -> List[ChatIntegration]:
        return [i for (ws, _), i in self._records.items() if ws == workspace_id]


class IntegrationHealthTracker:
    """Record send outcomes against an integration's counters and status.

    Attributes:
        repository: Integration persistence
        failure_threshold: Consecutive failures before ``active`` -> ``error``
    """

    def __init__(
        self,
        repository: IntegrationRepository,
        failure_threshold: int = FAILURE_THRESHOLD,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.repository = repository
        self.failure_threshold = failure_threshold
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def record_success(self, integration: ChatIntegration) -> ChatIntegration:
        update = {
            "error_count": 0,
            "message_count": integration.message_count + 1,
            "last_message_at": self.clock(),
        }
        if integration.status == IntegrationStatus.ERROR:
            update["status"] = IntegrationStatus.ACTIVE
            logger.info(
                "integration_recovered",
                integration_id=integration.id,
                provider=integration.provider,
                workspace_id=integration.workspace_id,
            )
        return await self.repository.save(integration.model_copy(update=update))

    async def record_failure(self, integration: ChatIntegration, error: str) -> ChatIntegration:
        error_count = integration.error_count + 1
        update = {
            "error_count": error_count,
            "last_error": error,
            "last_error_at": self.clock(),
        }
        if (
            integration.status == IntegrationStatus.ACTIVE
            and error_count >= self.failure_threshold
        ):
            update["status"] = IntegrationStatus.ERROR
            logger.warning(
                "integration_marked_error",
                integration_id=integration.id,
                provider=integration.provider,
                workspace_id=integration.workspace_id,
                error_count=error_count,
                error=error,
            )
        return await self.repository.save(integration.model_copy(update=update))

    async def mark_invalid(self, integration: ChatIntegration, error: str) -> ChatIntegration:
        logger.error(
            "integration_marked_invalid",
            integration_id=integration.id,
            provider=integration.provider,
            workspace_id=integration.workspace_id,
            error=error,
        )
        return await self.repository.save(
            integration.model_copy(
                update={
                    "status": IntegrationStatus.INVALID_WEBHOOK,
                    "error_count": integration.error_count + 1,
                    "last_error": error,
                    "last_error_at": self.clock(),
                }
            )
        )
