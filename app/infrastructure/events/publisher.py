"""Event publisher for notification lifecycle events.

The delivery engine only depends on the ``EventPublisher`` protocol. The
in-process implementation keeps a per-instance handler registry and calls
handlers synchronously; a failing handler is logged and never affects the
other handlers or the publisher's caller.
"""

from threading import Lock
from typing import Any, Callable, Dict, List, Protocol

from infrastructure.events.models import Event
from infrastructure.logging import get_module_logger

logger = get_module_logger()

# Subscribing to this topic receives every event.
ALL_TOPICS = "*"

EventHandler = Callable[[Event], Any]


class EventPublisher(Protocol):
    """Publishing interface consumed by the delivery engine and providers."""

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        """Publish ``payload`` on ``topic``.

        Raises:
            Exception: Implementations may raise on transport failure; callers
                treat publishing as best effort.
        """
        ...


class InProcessEventPublisher:
    """Synchronous in-process publisher with a handler registry.

    Usage:
        publisher = InProcessEventPublisher()
        publisher.subscribe("notification.sent", audit_handler)
        publisher.publish("notification.sent", {"id": "..."})
    """

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._lock = Lock()

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``topic`` (or ``"*"`` for every topic)."""
        with self._lock:
            self._handlers.setdefault(topic, []).append(handler)
            total = len(self._handlers[topic])
        logger.debug(
            "registered_event_handler",
            handler=getattr(handler, "__name__", "unknown"),
            topic=topic,
            total_handlers=total,
        )

    def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        event = Event(topic=topic, payload=dict(payload))
        self.dispatch(event)

    def dispatch(self, event: Event) -> List[Any]:
        """Dispatch an event to matching handlers.

        Returns:
            Return values of the handlers that succeeded.
        """
        with self._lock:
            handlers = list(self._handlers.get(event.topic, []))
            handlers += self._handlers.get(ALL_TOPICS, [])

        logger.debug(
            "dispatching_event",
            topic=event.topic,
            handler_count=len(handlers),
            event_id=str(event.event_id),
        )

        results = []
        for handler in handlers:
            try:
                results.append(handler(event))
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    handler=getattr(handler, "__name__", "unknown"),
                    topic=event.topic,
                    error=str(e),
                    event_id=str(event.event_id),
                )
        return results

    def get_registered_topics(self) -> List[str]:
        with self._lock:
            return [topic for topic, handlers in self._handlers.items() if handlers]
