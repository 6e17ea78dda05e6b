"""Errors for the notifications module."""


class NotificationError(Exception):
    """Base class for notification engine errors."""


class CriticalNotificationError(NotificationError):
    """Raised when an update tries to disable a critical notification type.

    Attributes:
        setting: The event setting the caller tried to switch off
    """

    def __init__(self, setting: str):
        super().__init__(f"Critical notification setting cannot be disabled: {setting}")
        self.setting = setting


class RetryableDeliveryError(NotificationError):
    """Raised by the retry job handler so the queue reschedules the delivery.

    Attributes:
        channel: Channel that failed
        attempt: Attempt number that failed
        error: Failure reason reported by the channel
    """

    def __init__(self, channel: str, attempt: int, error: str | None = None):
        super().__init__(
            f"Delivery through {channel} failed on attempt {attempt}: {error or 'unknown'}"
        )
        self.channel = channel
        self.attempt = attempt
        self.error = error
