"""Notification delivery.

Submission, persistence and resilient dispatch of notifications across
email, SMS, push, webhook and in-app channels.

Usage:
    from infrastructure.notifications import (
        NotificationChannel,
        NotificationRequest,
        create_delivery_engine,
    )
    from infrastructure.services import get_settings

    engine = create_delivery_engine(get_settings())

    notification = engine.submit(
        NotificationRequest(
            tenant_id="tenant-1",
            channel=NotificationChannel.SMS,
            recipient="+15551234567",
            subject="Reminder",
            message="Your appointment is tomorrow at 10:00",
        )
    )

    # Periodic sweeps re-admit scheduled and failed notifications
    engine.run_pending_sweep()
    engine.run_retry_sweep()
"""

from infrastructure.notifications.engine import DeliveryEngine
from infrastructure.notifications.errors import (
    DeliveryTimeoutError,
    InvalidStateTransitionError,
    NotificationError,
    NotificationNotFoundError,
    NotificationValidationError,
    PersistenceError,
    ProviderError,
    RateLimitExceededError,
)
from infrastructure.notifications.factory import create_delivery_engine
from infrastructure.notifications.models import (
    BulkReadRequest,
    BulkReadResult,
    BulkSubmitRequest,
    BulkSubmitResult,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationRequest,
    NotificationStatus,
)
from infrastructure.notifications.store import (
    InMemoryNotificationStore,
    NotificationStore,
)

__all__ = [
    "DeliveryEngine",
    "create_delivery_engine",
    "BulkReadRequest",
    "BulkReadResult",
    "BulkSubmitRequest",
    "BulkSubmitResult",
    "Notification",
    "NotificationChannel",
    "NotificationPriority",
    "NotificationRequest",
    "NotificationStatus",
    "NotificationStore",
    "InMemoryNotificationStore",
    "NotificationError",
    "NotificationValidationError",
    "NotificationNotFoundError",
    "InvalidStateTransitionError",
    "RateLimitExceededError",
    "ProviderError",
    "DeliveryTimeoutError",
    "PersistenceError",
]
