"""Context binding for structured logging.

Binds dispatch-scoped context (correlation id, notification type) so every
log line emitted while one event fans out across recipients and channels can
be tied back together.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(notification_type="story_completed"):
        logger.info("dispatch_started")
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    user_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
    notification_type: Optional[str] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind context to all logs emitted inside the block.

    Args:
        correlation_id: Unique identifier. Generated when not provided.
        user_id: Recipient or acting user, when there is exactly one.
        workspace_id: Workspace scope, when there is exactly one.
        notification_type: Event type being processed.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation id in effect for the block.

    Example:
        with bind_request_context(notification_type=event.type) as correlation_id:
            await dispatcher.dispatch(event)
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    if user_id is not None:
        context["user_id"] = user_id
    if workspace_id is not None:
        context["workspace_id"] = workspace_id
    if notification_type is not None:
        context["notification_type"] = notification_type

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield context["correlation_id"]
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context."""
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def clear_request_context() -> None:
    """Clear all bound context. Called between scheduled job runs."""
    structlog.contextvars.clear_contextvars()
