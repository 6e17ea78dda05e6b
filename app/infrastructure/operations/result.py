"""Result type returned by chat deliveries and other fallible I/O.

Channels never raise provider errors to the dispatcher. They return an
OperationResult and the caller reads ``is_retryable``/``invalidates_target``
to pick between a queued retry, a health record and flagging the
integration.
"""

from dataclasses import dataclass
from typing import Any, Optional

from infrastructure.operations.status import OperationStatus


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one operation.

    Attributes:
        status: What happened
        message: Human-readable detail for logs and integration health
        data: Provider payload on success (e.g. Slack message ``ts``)
        error_code: Short machine code (``RATE_LIMITED``, ``channel_not_found``)
        retry_after: Seconds the provider asked us to wait
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status is OperationStatus.SUCCESS

    @property
    def is_retryable(self) -> bool:
        return self.status.retryable

    @property
    def invalidates_target(self) -> bool:
        return self.status.invalidates_target

    @property
    def error_label(self) -> Optional[str]:
        """Short label recorded on a failed channel result."""
        if self.is_success:
            return None
        return self.error_code or self.message

    @classmethod
    def success(cls, data: Optional[Any] = None, message: str = "ok") -> "OperationResult":
        return cls(OperationStatus.SUCCESS, message, data=data)

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        return cls(status, message, data=data, error_code=error_code, retry_after=retry_after)

    @classmethod
    def transient_error(
        cls, message: str, error_code: Optional[str] = None, retry_after: Optional[int] = None
    ) -> "OperationResult":
        return cls.error(OperationStatus.TRANSIENT_ERROR, message, error_code, retry_after)

    @classmethod
    def rate_limited(cls, message: str, retry_after: int) -> "OperationResult":
        """Provider throttled the request; wait ``retry_after`` seconds."""
        return cls.error(OperationStatus.RATE_LIMITED, message, "RATE_LIMITED", retry_after)

    @classmethod
    def target_rejected(
        cls, status: OperationStatus, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        """Credentials refused or target missing; ``status`` must invalidate the target."""
        if not status.invalidates_target:
            raise ValueError(f"{status.value} does not invalidate a delivery target")
        return cls.error(status, message, error_code)

    @classmethod
    def permanent_error(cls, message: str, error_code: Optional[str] = None) -> "OperationResult":
        return cls.error(OperationStatus.PERMANENT_ERROR, message, error_code)
