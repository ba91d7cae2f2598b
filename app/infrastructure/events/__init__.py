"""Event publishing for notification lifecycle and in-app delivery."""

from infrastructure.events.models import Event
from infrastructure.events.publisher import (
    ALL_TOPICS,
    EventHandler,
    EventPublisher,
    InProcessEventPublisher,
)

__all__ = [
    "ALL_TOPICS",
    "Event",
    "EventHandler",
    "EventPublisher",
    "InProcessEventPublisher",
]
