"""Structlog processors used by the notification engine.

Chat credentials travel through the engine in two shapes: as dedicated
fields (``bot_token``, ``webhook_url``) and embedded in free text, because
httpx and slack_sdk put the request URL or token into exception messages
that end up in ``error=`` fields. Both shapes are scrubbed here.

Usage:
    from infrastructure.logging.formatters import (
        add_service_info,
        mask_sensitive_data,
        scrub_embedded_secrets,
    )
"""

import re
from typing import Any, Optional

EventDict = dict[str, Any]

MASK = "***REDACTED***"

# Field names whose whole value is a credential.
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "authorization",
        "credential",
        "bot_token",
        "webhook_url",
    }
)

# Discord webhook URLs carry their secret as the last path segment.
_WEBHOOK_URL = re.compile(r"(/api/webhooks/\d+/)[\w\-]+")
_SLACK_TOKEN = re.compile(r"\bxox[abposr]-[\w\-]+")


def add_service_info(service: str, git_sha: str = "unknown", prefix: str = ""):
    """Stamp every entry with the service name, build and environment.

    ``prefix`` is the deployment prefix; an empty prefix is production.
    """
    environment = prefix or "production"

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        event_dict.setdefault("git_sha", git_sha)
        event_dict.setdefault("environment", environment)
        return event_dict

    return processor


def mask_sensitive_data(
    mask_value: str = MASK,
    additional_keys: Optional[frozenset] = None,
):
    """Replace the value of any field whose name contains a sensitive key.

    Matching is case-insensitive and partial, so ``slack_bot_token`` and
    ``discord_webhook_url`` are both masked. ``None`` values are kept as is.
    """
    keys = SENSITIVE_KEYS | (additional_keys or frozenset())

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for field, value in event_dict.items():
            if value is None:
                continue
            name = field.lower()
            if any(key in name for key in keys):
                event_dict[field] = mask_value
        return event_dict

    return processor


def scrub_secret_text(text: str) -> str:
    """Remove webhook secrets and Slack tokens from free text.

    Example:
        scrub_secret_text("POST https://discord.com/api/webhooks/12/abc failed")
        # "POST https://discord.com/api/webhooks/12/*** failed"
    """
    text = _WEBHOOK_URL.sub(r"\1***", text)
    return _SLACK_TOKEN.sub("xox*-***", text)


def scrub_embedded_secrets():
    """Apply ``scrub_secret_text`` to every string value, including ``event``."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for field, value in event_dict.items():
            if isinstance(value, str):
                event_dict[field] = scrub_secret_text(value)
        return event_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Cap oversized values.

    Long strings are cut with a length marker. Payload dicts and lists whose
    text form exceeds the limit are replaced by a short description, since a
    notification payload is only logged as context on failures.
    """

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for field, value in event_dict.items():
            if isinstance(value, str):
                if len(value) > max_length:
                    event_dict[field] = f"{value[:max_length]}...[{len(value)} chars]"
            elif isinstance(value, (dict, list)) and len(str(value)) > max_length:
                event_dict[field] = f"<{type(value).__name__} of {len(value)} items>"
        return event_dict

    return processor
