"""Event models for the notification event bus."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4


@dataclass(frozen=True)
class Event:
    """Immutable record of something that happened.

    Lifecycle events carry the notification summary in ``payload``; in-app
    deliveries carry the rendered message.
    """

    topic: str
    """Topic the event was published on (e.g., 'notification.sent')."""

    payload: Dict[str, Any] = field(default_factory=dict)
    """Topic-specific body."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """When the event was published."""

    event_id: UUID = field(default_factory=uuid4)
    """Unique event identifier."""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to a JSON-friendly dictionary."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["event_id"] = str(self.event_id)
        return data
