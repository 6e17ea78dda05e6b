"""Operation result types and status enums.

Standardized result types shared by the key-value store, the job queue and
the chat channels, plus classifiers for outbound HTTP failures.
"""

from infrastructure.operations.classifiers import (
    classify_http_status,
    classify_transport_error,
    parse_retry_after,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_status",
    "classify_transport_error",
    "parse_retry_after",
]
