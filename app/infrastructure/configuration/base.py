"""Shared base classes for the notification engine settings modules."""

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    case_sensitive=True,
    extra="ignore",
)


class IntegrationSettings(BaseSettings):
    """Base class for chat provider settings (Slack, Discord).

    Provider secrets live here. A missing secret marks the provider as
    unavailable; it never prevents the engine from starting.
    """

    model_config = _ENV_CONFIG


class FeatureSettings(BaseSettings):
    """Base class for feature module settings (notification engine knobs)."""

    model_config = _ENV_CONFIG


class InfrastructureSettings(BaseSettings):
    """Base class for infrastructure-level settings.

    Infrastructure settings control the shared key-value store and the
    durable job queue.
    """

    model_config = _ENV_CONFIG
