"""Structured logging for the delivery service.

Modules log through ``get_module_logger()``; API handlers and delivery
attempts wrap their work in ``bind_request_context`` so every entry carries
the tenant, notification and correlation ids. The structlog pipeline itself
is built in ``setup`` and its custom processors live in ``formatters``.

Example:
    from infrastructure.logging import get_module_logger, bind_request_context

    logger = get_module_logger()

    with bind_request_context(tenant_id="tenant-1"):
        logger.info("notification_submitted", channel="sms")
"""

from infrastructure.logging.context import (
    bind_request_context,
    clear_request_context,
    get_correlation_id,
)
from infrastructure.logging.setup import configure_logging, get_module_logger

__all__ = [
    "bind_request_context",
    "clear_request_context",
    "configure_logging",
    "get_correlation_id",
    "get_module_logger",
]
