"""Notification preference store.

Per (user, workspace) settings: global enable, per-event-type toggles,
per-channel toggles with per-type overrides, and the quiet-hours window.

Preferences are read through a short-lived cache in the shared key-value
store (``notification-prefs:<user>:<workspace>``). A corrupted cache entry is
evicted and treated as a miss. Missing preferences are created lazily with
defaults.

Two invariants hold after every write: critical event types stay enabled
and the in-app channel stays enabled.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from infrastructure.kvstore import KeyBuilder, KeyValueStore, KeyValueStoreError
from infrastructure.logging import get_module_logger
from modules.notifications.domain.errors import CriticalNotificationError
from modules.notifications.domain.models import (
    ChannelPreferences,
    EventSettings,
    Preferences,
    PreferencesUpdate,
    QuietHoursConfig,
)
from modules.notifications.domain.types import (
    CRITICAL_EVENT_SETTINGS,
    TYPE_TO_EVENT_SETTING,
    TypeLike,
    is_critical_type,
    type_value,
)

logger = get_module_logger()

PREFERENCES_CACHE_TTL_SECONDS = 300

_cache_keys = KeyBuilder("notification-prefs")

_AUDITED_FIELDS = (
    "enabled",
    "event_settings",
    "channel_preferences",
    "per_type_channel_overrides",
    "quiet_hours",
)


class PreferenceRepository(ABC):
    """Narrow persistence port for preferences (``get``, ``save``, ``delete``)."""

    @abstractmethod
    async def get(self, user_id: str, workspace_id: str) -> Optional[Preferences]:
        pass

    @abstractmethod
    async def save(self, preferences: Preferences) -> Preferences:
        pass

    @abstractmethod
    async def delete(self, user_id: str, workspace_id: str) -> None:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Preferences]:
        pass


class InMemoryPreferenceRepository(PreferenceRepository):
    """Dictionary-backed repository for development and tests."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], Preferences] = {}

    async def get(self, user_id: str, workspace_id: str) -> Optional[Preferences]:
        return self._records.get((user_id, workspace_id))

    async def save(self, preferences: Preferences) -> Preferences:
        self._records[(preferences.user_id, preferences.workspace_id)] = preferences
        return preferences

    async def delete(self, user_id: str, workspace_id: str) -> None:
        self._records.pop((user_id, workspace_id), None)

    async def list_for_user(self, user_id: str) -> List[Preferences]:
        return [p for (uid, _), p in self._records.items() if uid == user_id]


def check_type_preference(prefs: Preferences, notification_type: TypeLike) -> bool:
    """Return whether ``notification_type`` is enabled in ``prefs``.

    Critical types are always enabled. Types without a user-facing toggle
    default to enabled.
    """
    if is_critical_type(notification_type):
        return True

    setting = TYPE_TO_EVENT_SETTING.get(type_value(notification_type))
    if setting is None:
        return True

    return getattr(prefs.event_settings, setting, True)


def default_preferences(user_id: str, workspace_id: str) -> Preferences:
    return Preferences(
        user_id=user_id,
        workspace_id=workspace_id,
        enabled=True,
        event_settings=EventSettings(),
        channel_preferences=ChannelPreferences(),
        quiet_hours=QuietHoursConfig(),
    )


class PreferenceStore:
    """Cache-first preference service.

    Attributes:
        repository: Durable preference storage
        store: Shared key-value store used as cache
        cache_ttl_seconds: Cache entry lifetime
    """

    def __init__(
        self,
        repository: PreferenceRepository,
        store: KeyValueStore,
        cache_ttl_seconds: int = PREFERENCES_CACHE_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.repository = repository
        self.store = store
        self.cache_ttl_seconds = cache_ttl_seconds
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_preferences(self, user_id: str, workspace_id: str) -> Preferences:
        """Get preferences, creating defaults on first access."""
        cached = await self._read_cache(user_id, workspace_id)
        if cached is not None:
            return cached

        prefs = await self.repository.get(user_id, workspace_id)
        if prefs is None:
            prefs = await self.repository.save(default_preferences(user_id, workspace_id))
            logger.info(
                "notification_preferences_defaults_created",
                user_id=user_id,
                workspace_id=workspace_id,
            )

        await self._write_cache(prefs)
        return prefs

    async def get_user_preferences(self, user_id: str) -> List[Preferences]:
        """All preferences of one user across workspaces."""
        return await self.repository.list_for_user(user_id)

    async def update_preferences(
        self, user_id: str, workspace_id: str, update: PreferencesUpdate
    ) -> Preferences:
        """Merge a partial update, re-assert invariants, save and re-cache.

        Raises:
            CriticalNotificationError: If the update disables a critical type
            pydantic.ValidationError: If the merged quiet hours are malformed
        """
        for setting in CRITICAL_EVENT_SETTINGS:
            if update.event_settings and update.event_settings.get(setting) is False:
                raise CriticalNotificationError(setting)

        current = await self.get_preferences(user_id, workspace_id)
        merged = self._merge(current, update)

        changed = [
            field
            for field in _AUDITED_FIELDS
            if getattr(current, field) != getattr(merged, field)
        ]

        saved = await self.repository.save(merged)
        await self._write_cache(saved)

        logger.info(
            "notification_preferences_updated",
            user_id=user_id,
            workspace_id=workspace_id,
            changed_fields=changed,
        )
        return saved

    async def delete_preferences(self, user_id: str, workspace_id: str) -> None:
        """Remove preferences, used when a user leaves a workspace."""
        await self.repository.delete(user_id, workspace_id)
        await self.invalidate_cache(user_id, workspace_id)
        logger.info(
            "notification_preferences_deleted",
            user_id=user_id,
            workspace_id=workspace_id,
        )

    async def is_type_enabled(
        self, user_id: str, workspace_id: str, notification_type: TypeLike
    ) -> bool:
        """Check the global switch and the per-type toggle.

        Critical types short-circuit to True without touching storage.
        """
        if is_critical_type(notification_type):
            return True

        prefs = await self.get_preferences(user_id, workspace_id)
        if not prefs.enabled:
            return False

        return check_type_preference(prefs, notification_type)

    async def get_channel_preferences(
        self, user_id: str, workspace_id: str, notification_type: TypeLike
    ) -> ChannelPreferences:
        """Channel toggles for one type, with per-type overrides applied."""
        prefs = await self.get_preferences(user_id, workspace_id)
        values = prefs.channel_preferences.model_dump()

        override = prefs.per_type_channel_overrides.get(type_value(notification_type))
        if override is not None:
            values.update(override.model_dump(exclude_none=True))

        values["in_app"] = True
        return ChannelPreferences(**values)

    async def invalidate_cache(self, user_id: str, workspace_id: str) -> None:
        try:
            await self.store.delete(_cache_keys.key(user_id, workspace_id))
        except KeyValueStoreError as e:
            logger.warning(
                "notification_preferences_cache_invalidate_failed",
                user_id=user_id,
                workspace_id=workspace_id,
                error=str(e),
            )

    def _merge(self, current: Preferences, update: PreferencesUpdate) -> Preferences:
        event_settings = current.event_settings.model_dump()
        if update.event_settings:
            event_settings.update(update.event_settings)
        for setting in CRITICAL_EVENT_SETTINGS:
            event_settings[setting] = True

        channels = current.channel_preferences.model_dump()
        if update.channel_preferences:
            channels.update(update.channel_preferences)
        channels["in_app"] = True

        overrides = dict(current.per_type_channel_overrides)
        if update.per_type_channel_overrides:
            overrides.update(update.per_type_channel_overrides)

        quiet_hours = current.quiet_hours.model_dump()
        if update.quiet_hours:
            quiet_hours.update(update.quiet_hours)

        return current.model_copy(
            update={
                "enabled": current.enabled if update.enabled is None else update.enabled,
                "event_settings": EventSettings(**event_settings),
                "channel_preferences": ChannelPreferences(**channels),
                "per_type_channel_overrides": overrides,
                "quiet_hours": QuietHoursConfig(**quiet_hours),
                "updated_at": self.clock(),
            }
        )

    async def _read_cache(self, user_id: str, workspace_id: str) -> Optional[Preferences]:
        key = _cache_keys.key(user_id, workspace_id)
        try:
            raw = await self.store.get(key)
        except KeyValueStoreError as e:
            logger.warning("notification_preferences_cache_read_failed", key=key, error=str(e))
            return None

        if raw is None:
            return None

        try:
            return Preferences.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "notification_preferences_cache_corrupted",
                user_id=user_id,
                workspace_id=workspace_id,
                error=str(e),
            )
            await self.invalidate_cache(user_id, workspace_id)
            return None

    async def _write_cache(self, prefs: Preferences) -> None:
        key = _cache_keys.key(prefs.user_id, prefs.workspace_id)
        try:
            await self.store.set(key, prefs.model_dump_json(), ttl_seconds=self.cache_ttl_seconds)
        except KeyValueStoreError as e:
            logger.warning("notification_preferences_cache_write_failed", key=key, error=str(e))
