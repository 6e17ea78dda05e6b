"""Composition root for the notification engine.

``build_notification_engine`` wires every component from Settings. Ports
the engine does not own (preference, integration and membership
persistence, push and in-app delivery) may be passed in; in-memory
implementations are used otherwise.

Usage:
    from infrastructure.services import get_settings
    from modules.notifications.container import build_notification_engine

    engine = build_notification_engine(get_settings())
    await engine.dispatcher.dispatch(event)
"""

from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from infrastructure.configuration import Settings
from infrastructure.kvstore import KeyValueStore, create_store
from infrastructure.logging import get_module_logger
from infrastructure.queue import JobQueue, QueueConfig
from modules.notifications.batching import BatchQueue
from modules.notifications.channels import (
    ChatChannel,
    DiscordChannel,
    InAppChannel,
    InMemoryInAppChannel,
    PushChannel,
    SlackChannel,
)
from modules.notifications.channels.slack import ClientFactory
from modules.notifications.dedup import InteractionDeduplicator
from modules.notifications.dispatcher import NotificationDispatcher
from modules.notifications.health import (
    InMemoryIntegrationRepository,
    IntegrationHealthTracker,
    IntegrationRepository,
)
from modules.notifications.preferences import (
    InMemoryPreferenceRepository,
    PreferenceRepository,
    PreferenceStore,
)
from modules.notifications.quiet_hours import QuietHoursEngine
from modules.notifications.rate_limit import RateLimiter
from modules.notifications.recipients import (
    InMemoryMembershipRepository,
    MembershipRepository,
    RecipientResolver,
)
from modules.notifications.retry import RetryQueueProcessor
from modules.notifications.sweeps import BatchFlushSweep, QuietHoursFlushSweep

logger = get_module_logger()


@dataclass
class NotificationEngine:
    """Every wired component, exposed for the scheduler, triggers and tests."""

    settings: Settings
    store: KeyValueStore
    preferences: PreferenceStore
    quiet_hours: QuietHoursEngine
    batch_queue: BatchQueue
    rate_limiter: RateLimiter
    health: IntegrationHealthTracker
    deduplicator: InteractionDeduplicator
    recipients: RecipientResolver
    chat_channels: Dict[str, ChatChannel]
    queue: JobQueue
    retry_processor: RetryQueueProcessor
    dispatcher: NotificationDispatcher
    batch_sweep: BatchFlushSweep
    quiet_hours_sweep: QuietHoursFlushSweep
    http_client: httpx.AsyncClient

    async def enqueue_batch_flush(self) -> str:
        return await self.retry_processor.enqueue_batch_flush()

    async def process_jobs(self) -> Dict[str, int]:
        return await self.queue.run_pending()

    async def flush_quiet_hours(self) -> Dict[str, int]:
        return await self.quiet_hours_sweep.run()

    async def close(self) -> None:
        await self.http_client.aclose()
        await self.store.close()
        logger.info("notification_engine_closed")


def build_notification_engine(
    settings: Settings,
    store: Optional[KeyValueStore] = None,
    preference_repository: Optional[PreferenceRepository] = None,
    integration_repository: Optional[IntegrationRepository] = None,
    membership_repository: Optional[MembershipRepository] = None,
    push: Optional[PushChannel] = None,
    in_app: Optional[InAppChannel] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    slack_client_factory: Optional[ClientFactory] = None,
) -> NotificationEngine:
    """Wire the notification engine.

    Args:
        settings: Application settings
        store: Key-value store, created from ``settings.store`` when omitted
        preference_repository: Durable preference storage
        integration_repository: Chat integration storage
        membership_repository: Workspace/project membership lookup
        push: Push channel; push delivery is skipped when omitted
        in_app: In-app record writer
        http_client: Shared HTTP client for webhook channels
        slack_client_factory: Builds a Slack client from a bot token

    Returns:
        NotificationEngine with every component wired
    """
    cfg = settings.notifications
    store = store or create_store(settings.store)
    http_client = http_client or httpx.AsyncClient(timeout=cfg.http_timeout_seconds)
    integrations = integration_repository or InMemoryIntegrationRepository()

    preferences = PreferenceStore(
        preference_repository or InMemoryPreferenceRepository(),
        store,
        cache_ttl_seconds=cfg.preferences_cache_ttl_seconds,
    )
    quiet_hours = QuietHoursEngine(store, ttl_seconds=cfg.quiet_hours_ttl_seconds)
    batch_queue = BatchQueue(store, ttl_seconds=cfg.batch_ttl_seconds)
    rate_limiter = RateLimiter(
        store,
        window_seconds=cfg.rate_limit_window_seconds,
        retention_seconds=cfg.rate_limit_retention_seconds,
    )
    health = IntegrationHealthTracker(integrations)

    channel_args = (integrations, health, rate_limiter, quiet_hours)
    chat_channels: Dict[str, ChatChannel] = {
        "slack": SlackChannel(
            settings.slack,
            *channel_args,
            client_factory=slack_client_factory,
            timeout_seconds=int(cfg.http_timeout_seconds),
            default_limit_per_minute=cfg.default_rate_limit_per_minute,
        ),
        "discord": DiscordChannel(
            settings.discord,
            *channel_args,
            http_client=http_client,
        ),
    }

    queue = JobQueue(store, QueueConfig.from_settings(settings.queue))
    retry_processor = RetryQueueProcessor(queue, chat_channels)

    dispatcher = NotificationDispatcher(
        preferences=preferences,
        quiet_hours=quiet_hours,
        batch_queue=batch_queue,
        in_app=in_app or InMemoryInAppChannel(),
        push=push,
        chat_channels=chat_channels,
        chat_channel_order=cfg.chat_channel_order,
        retry_processor=retry_processor,
    )

    batch_sweep = BatchFlushSweep(batch_queue, push, quiet_hours, preferences)
    retry_processor.register(batch_sweep=batch_sweep.run)

    logger.info(
        "notification_engine_built",
        store_backend=store.backend_name,
        chat_channels=list(chat_channels),
        push_enabled=push is not None,
    )

    return NotificationEngine(
        settings=settings,
        store=store,
        preferences=preferences,
        quiet_hours=quiet_hours,
        batch_queue=batch_queue,
        rate_limiter=rate_limiter,
        health=health,
        deduplicator=InteractionDeduplicator(store, ttl_seconds=cfg.dedup_ttl_seconds),
        recipients=RecipientResolver(membership_repository or InMemoryMembershipRepository()),
        chat_channels=chat_channels,
        queue=queue,
        retry_processor=retry_processor,
        dispatcher=dispatcher,
        batch_sweep=batch_sweep,
        quiet_hours_sweep=QuietHoursFlushSweep(quiet_hours, preferences, push),
        http_client=http_client,
    )
