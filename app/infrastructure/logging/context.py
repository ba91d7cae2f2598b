"""Request context binding for structured logging.

Binds correlation ids and tenant/notification identifiers to structlog's
context variables so every log entry emitted while handling an API request
or a delivery attempt carries them.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(tenant_id="t-1", notification_id="n-1"):
        logger.info("delivery_attempt_started")
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
    notification_id: Optional[str] = None,
    request_path: Optional[str] = None,
    request_method: Optional[str] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind request-scoped context to all logs within the block.

    Args:
        correlation_id: Unique request identifier. Generated if not provided.
        tenant_id: Tenant owning the request or notification.
        notification_id: Notification being processed.
        request_path: HTTP request path.
        request_method: HTTP method.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation id bound for the block.
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    optional = {
        "tenant_id": tenant_id,
        "notification_id": notification_id,
        "request_path": request_path,
        "request_method": request_method,
    }
    context.update({k: v for k, v in optional.items() if v is not None})
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
    """Clear all request-scoped context from the logging context."""
    structlog.contextvars.clear_contextvars()
