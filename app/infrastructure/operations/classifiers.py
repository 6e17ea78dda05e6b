"""Error classifiers for outbound provider calls.

Converts HTTP status codes and transport exceptions into OperationResult
objects so every chat channel maps provider failures the same way.

Key Functions:
- classify_http_status(): HTTP status code (+ headers) → OperationResult
- classify_transport_error(): httpx transport exception → OperationResult

Usage:
    from infrastructure.operations.classifiers import (
        classify_http_status,
        classify_transport_error,
    )

    try:
        response = await client.post(url, json=body)
    except httpx.HTTPError as exc:
        return classify_transport_error(exc)
    return classify_http_status(response.status_code, response.headers)
"""

from typing import Mapping, Optional

import httpx

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

DEFAULT_RETRY_AFTER_SECONDS = 60


def parse_retry_after(
    headers: Optional[Mapping[str, str]], default: int = DEFAULT_RETRY_AFTER_SECONDS
) -> int:
    """Read a Retry-After header in seconds, falling back to ``default``."""
    if not headers:
        return default
    value = headers.get("retry-after") or headers.get("Retry-After")
    if value is None:
        return default
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError):
        return default


def classify_http_status(
    status_code: int,
    headers: Optional[Mapping[str, str]] = None,
    provider: str = "provider",
) -> OperationResult:
    """Classify an HTTP response status into an OperationResult.

    Status Code Mapping:
    - 200/204: SUCCESS
    - 429: RATE_LIMITED with retry_after (Retry-After header, default 60s)
    - 401/403: UNAUTHORIZED
    - 404: NOT_FOUND
    - 5xx: TRANSIENT_ERROR
    - Other: PERMANENT_ERROR

    Args:
        status_code: HTTP status code returned by the provider
        headers: Response headers (used for Retry-After)
        provider: Provider name used in messages

    Returns:
        OperationResult with the mapped status
    """
    if status_code in (200, 204):
        return OperationResult.success(message=f"{provider} accepted request")

    if status_code == 429:
        return OperationResult.rate_limited(
            f"{provider} rate limited", retry_after=parse_retry_after(headers)
        )

    if status_code in (401, 403):
        return OperationResult.target_rejected(
            OperationStatus.UNAUTHORIZED,
            f"{provider} rejected credentials ({status_code})",
            error_code="UNAUTHORIZED",
        )

    if status_code == 404:
        return OperationResult.target_rejected(
            OperationStatus.NOT_FOUND,
            f"{provider} target not found",
            error_code="NOT_FOUND",
        )

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{provider} server error ({status_code})",
            error_code="SERVER_ERROR",
        )

    return OperationResult.permanent_error(
        f"{provider} returned HTTP {status_code}",
        error_code="HTTP_ERROR",
    )


def classify_transport_error(exc: Exception, provider: str = "provider") -> OperationResult:
    """Classify a transport-level exception raised before a response arrived.

    Timeouts and connection failures are transient; anything else raised by
    the HTTP client is treated as transient too, since no response means the
    provider never judged the request.
    """
    if isinstance(exc, httpx.TimeoutException):
        return OperationResult.transient_error(
            f"{provider} request timed out",
            error_code="TIMEOUT",
        )

    return OperationResult.transient_error(
        f"{provider} connection error: {type(exc).__name__}: {exc}",
        error_code="CONNECTION_ERROR",
    )
