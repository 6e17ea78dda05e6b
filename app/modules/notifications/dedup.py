"""Interaction deduplication.

Chat providers redeliver interactive callbacks when an acknowledgement is
slow. The first delivery of an interaction writes ``dedup:<id>`` with a 60
second lifetime; any repeat inside that window is dropped.

The check and the mark are separate operations: two deliveries racing
within one round trip can both pass. Handlers should tolerate that.
"""

from typing import Any, Awaitable, Callable

from infrastructure.kvstore import KeyBuilder, KeyValueStore, KeyValueStoreError
from infrastructure.logging import get_module_logger
from modules.notifications.domain.models import Interaction

logger = get_module_logger()

DEDUP_TTL_SECONDS = 60
# Seconds folded into one composite id when the provider sends no trigger id.
TIMESTAMP_BUCKET_SECONDS = 5

_dedup_keys = KeyBuilder("dedup")
_interaction_keys = KeyBuilder("interaction")


class InteractionDeduplicator:
    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = DEDUP_TTL_SECONDS,
        bucket_seconds: int = TIMESTAMP_BUCKET_SECONDS,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.bucket_seconds = bucket_seconds

    def interaction_id(self, interaction: Interaction) -> str:
        """Provider trigger/callback id, else a hash of who did what and when."""
        if interaction.trigger_id:
            return interaction.trigger_id
        if interaction.callback_id:
            return interaction.callback_id

        return _interaction_keys.hashed(
            "composite",
            workspace_id=interaction.workspace_id,
            user_id=interaction.user_id,
            action=interaction.action,
            bucket=int(interaction.timestamp // self.bucket_seconds),
        )

    async def is_duplicate(self, interaction_id: str) -> bool:
        """Store failures are logged and treated as "not seen"."""
        try:
            return await self.store.exists(_dedup_keys.key(interaction_id))
        except KeyValueStoreError as e:
            logger.warning("dedup_check_failed", interaction_id=interaction_id, error=str(e))
            return False

    async def mark_seen(self, interaction_id: str) -> None:
        try:
            await self.store.set(_dedup_keys.key(interaction_id), "1", ttl_seconds=self.ttl_seconds)
        except KeyValueStoreError as e:
            logger.warning("dedup_mark_failed", interaction_id=interaction_id, error=str(e))

    async def run_once(
        self,
        interaction: Interaction,
        handler: Callable[[Interaction], Awaitable[Any]],
    ) -> bool:
        """Run ``handler`` unless this interaction was already seen.

        The interaction is marked before the handler runs, so a handler
        failure is not retried by a provider redelivery.

        Returns:
            True when the handler ran, False for a duplicate
        """
        interaction_id = self.interaction_id(interaction)
        if await self.is_duplicate(interaction_id):
            logger.info(
                "interaction_duplicate_dropped",
                interaction_id=interaction_id,
                workspace_id=interaction.workspace_id,
                action=interaction.action,
            )
            return False

        await self.mark_seen(interaction_id)
        await handler(interaction)
        return True
