"""Error classifiers for HTTP provider responses.

Converts ``requests`` responses and exceptions into OperationResult objects
so every HTTP-based provider (Twilio, FCM, webhooks) shares the same
transient/permanent classification.

Status Code Mapping:
    - 2xx: SUCCESS
    - 408, 429: TRANSIENT_ERROR (429 honours Retry-After)
    - 5xx: TRANSIENT_ERROR
    - other 4xx: PERMANENT_ERROR
    - connection errors and timeouts: TRANSIENT_ERROR

Usage:
    try:
        response = session.post(url, json=payload, timeout=timeout)
    except requests.RequestException as exc:
        return classify_request_exception(exc, provider="fcm")
    return classify_http_response(response, provider="fcm")
"""

from typing import Optional

import requests

from infrastructure.operations.result import OperationResult

TRANSIENT_CLIENT_STATUSES = frozenset({408, 429})
DEFAULT_RETRY_AFTER_SECONDS = 60


def _retry_after(response: requests.Response) -> int:
    header_value: Optional[str] = response.headers.get("Retry-After")
    if header_value:
        try:
            return int(header_value)
        except (ValueError, TypeError):
            pass  # HTTP-date form, fall back to the default
    return DEFAULT_RETRY_AFTER_SECONDS


def classify_http_response(
    response: requests.Response, provider: str
) -> OperationResult:
    """Classify an HTTP response from a provider API.

    Args:
        response: Response returned by ``requests``
        provider: Provider name used in messages

    Returns:
        OperationResult with ``data={"status_code": ...}``
    """
    status_code = response.status_code
    data = {"status_code": status_code}

    if 200 <= status_code < 300:
        return OperationResult.success(data=data, message=f"{provider} accepted")

    detail = (response.text or "")[:200]

    if status_code == 429:
        return OperationResult.transient_error(
            f"{provider} rate limited (429)",
            error_code="RATE_LIMITED",
            retry_after=_retry_after(response),
            data=data,
        )

    if status_code in TRANSIENT_CLIENT_STATUSES or status_code >= 500:
        return OperationResult.transient_error(
            f"{provider} error ({status_code}): {detail}",
            error_code="UPSTREAM_UNAVAILABLE",
            data=data,
        )

    if status_code in (401, 403):
        return OperationResult.permanent_error(
            f"{provider} rejected credentials ({status_code})",
            error_code="UNAUTHORIZED",
            data=data,
        )

    return OperationResult.permanent_error(
        f"{provider} client error ({status_code}): {detail}",
        error_code="CLIENT_ERROR",
        data=data,
    )


def classify_request_exception(exc: Exception, provider: str) -> OperationResult:
    """Classify a transport-level exception raised by ``requests``.

    Invalid URLs cannot be fixed by retrying; everything else (DNS,
    refused connections, read timeouts) is treated as transient.
    """
    if isinstance(exc, (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema)):
        return OperationResult.permanent_error(
            f"{provider} invalid url: {exc}",
            error_code="INVALID_URL",
        )

    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"{provider} request timed out",
            error_code="TIMEOUT",
        )

    return OperationResult.transient_error(
        f"{provider} connection error: {type(exc).__name__}: {exc}",
        error_code="CONNECTION_ERROR",
    )
