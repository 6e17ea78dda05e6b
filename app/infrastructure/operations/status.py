"""Outcome classes for store calls and outbound chat deliveries."""

from enum import Enum


class OperationStatus(Enum):
    """How an operation ended, from the point of view of the caller's next move.

    SUCCESS: done
    TRANSIENT_ERROR: network failure, timeout or 5xx; the same request may work later
    RATE_LIMITED: the provider asked us to back off; carries retry_after
    PERMANENT_ERROR: the request itself is wrong; retrying cannot help
    UNAUTHORIZED: credentials rejected; the integration must be reconfigured
    NOT_FOUND: the webhook or channel is gone; the integration must be reconfigured
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    RATE_LIMITED = "rate_limited"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE

    @property
    def invalidates_target(self) -> bool:
        return self in _TARGET_GONE


_RETRYABLE = frozenset({OperationStatus.TRANSIENT_ERROR, OperationStatus.RATE_LIMITED})
_TARGET_GONE = frozenset({OperationStatus.UNAUTHORIZED, OperationStatus.NOT_FOUND})
