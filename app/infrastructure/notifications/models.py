"""Notification delivery core models.

Uses Pydantic BaseModel for:
- Runtime type validation of API input
- Cheap deep copies for the store (``model_copy(deep=True)``)
- JSON serialization for the admin and notification APIs
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from infrastructure.notifications.errors import InvalidStateTransitionError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationChannel(str, Enum):
    """Delivery channel. Each channel maps to exactly one provider."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    IN_APP = "in_app"
    WEBHOOK = "webhook"


class NotificationPriority(str, Enum):
    """Notification priority levels.

    Priority only orders sweep selection; it never bypasses rate limits or
    circuit breakers.
    """

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    NotificationPriority.LOW: 0,
    NotificationPriority.NORMAL: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.CRITICAL: 3,
}


class NotificationStatus(str, Enum):
    """Notification lifecycle status.

    pending -> sent | failed; sent -> delivered; sent | delivered -> read.
    A failed notification is re-attempted by the retry sweep until it runs
    out of retries or fails permanently.
    """

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class NotificationRequest(BaseModel):
    """Submission payload for a new notification.

    Example:
        request = NotificationRequest(
            tenant_id="tenant-1",
            channel=NotificationChannel.EMAIL,
            recipient="user@example.com",
            subject="Welcome",
            message="Thanks for signing up",
        )
    """

    tenant_id: str
    user_id: Optional[str] = None
    channel: NotificationChannel
    priority: NotificationPriority = NotificationPriority.NORMAL
    subject: str = ""
    message: str
    recipient: str
    metadata: Dict[str, str] = Field(default_factory=dict)
    scheduled_for: Optional[datetime] = None

    @field_validator("scheduled_for")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive schedule times as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Notification(BaseModel):
    """Persisted notification record.

    Only the delivery engine mutates records; the ``mark_*`` helpers keep
    the timestamps consistent with the status.

    Attributes:
        id: Globally unique identifier assigned at submission
        retry_count: Failed attempts so far, never decreases
        error: Last failure reason, cleared on success
        permanent_failure: Provider reported a failure that retrying cannot fix
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    tenant_id: str
    user_id: Optional[str] = None
    channel: NotificationChannel
    priority: NotificationPriority = NotificationPriority.NORMAL
    subject: str = ""
    message: str
    recipient: str
    metadata: Dict[str, str] = Field(default_factory=dict)
    status: NotificationStatus = NotificationStatus.PENDING

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    retry_count: int = 0
    error: Optional[str] = None
    permanent_failure: bool = False

    @classmethod
    def from_request(
        cls, request: NotificationRequest, now: Optional[datetime] = None
    ) -> "Notification":
        now = now or utcnow()
        return cls(
            **request.model_dump(),
            status=NotificationStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

    def is_scheduled(self, now: Optional[datetime] = None) -> bool:
        """True while ``scheduled_for`` lies in the future."""
        if self.scheduled_for is None:
            return False
        return self.scheduled_for > (now or utcnow())

    def is_due(self, now: Optional[datetime] = None) -> bool:
        """Pending and not scheduled for the future."""
        return self.status == NotificationStatus.PENDING and not self.is_scheduled(now)

    def can_retry(self, max_retries: int) -> bool:
        return (
            self.status == NotificationStatus.FAILED
            and not self.permanent_failure
            and self.retry_count < max_retries
        )

    def is_terminal_failure(self, max_retries: int) -> bool:
        return self.status == NotificationStatus.FAILED and not self.can_retry(
            max_retries
        )

    def mark_sent(self, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        self.status = NotificationStatus.SENT
        self.sent_at = now
        self.failed_at = None
        self.error = None
        self.updated_at = now

    def mark_failed(
        self, error: str, now: Optional[datetime] = None, permanent: bool = False
    ) -> None:
        now = now or utcnow()
        self.status = NotificationStatus.FAILED
        self.error = error
        self.failed_at = now
        self.retry_count += 1
        self.permanent_failure = self.permanent_failure or permanent
        self.updated_at = now

    def mark_delivered(self, now: Optional[datetime] = None) -> None:
        if self.status != NotificationStatus.SENT:
            raise InvalidStateTransitionError(
                self.id, self.status.value, NotificationStatus.DELIVERED.value
            )
        now = self._not_before_sent(now)
        self.status = NotificationStatus.DELIVERED
        self.delivered_at = now
        self.updated_at = now

    def mark_read(self, now: Optional[datetime] = None) -> None:
        if self.status not in (NotificationStatus.SENT, NotificationStatus.DELIVERED):
            raise InvalidStateTransitionError(
                self.id, self.status.value, NotificationStatus.READ.value
            )
        now = self._not_before_sent(now)
        self.status = NotificationStatus.READ
        self.read_at = now
        self.updated_at = now

    def _not_before_sent(self, now: Optional[datetime]) -> datetime:
        now = now or utcnow()
        if self.sent_at is not None and now < self.sent_at:
            return self.sent_at
        return now

    def event_payload(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Summary published with lifecycle events."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "channel": self.channel.value,
            "status": self.status.value,
            "recipient": self.recipient,
            "retry_count": self.retry_count,
            "error": self.error,
            "timestamp": (now or utcnow()).isoformat(),
        }


MAX_BULK_ITEMS = 500


class BulkSubmitRequest(BaseModel):
    notifications: List[NotificationRequest] = Field(
        min_length=1, max_length=MAX_BULK_ITEMS
    )


class BulkItemResult(BaseModel):
    """Outcome of one item of a bulk submission, by position in the batch."""

    index: int
    notification: Optional[Notification] = None
    error: Optional[str] = None
    field: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.notification is not None


class BulkSubmitResult(BaseModel):
    results: List[BulkItemResult]
    success_count: int
    error_count: int

    @classmethod
    def from_items(cls, items: List[BulkItemResult]) -> "BulkSubmitResult":
        accepted = sum(1 for item in items if item.accepted)
        return cls(
            results=items, success_count=accepted, error_count=len(items) - accepted
        )


class BulkReadRequest(BaseModel):
    notification_ids: List[str] = Field(min_length=1, max_length=MAX_BULK_ITEMS)


class BulkReadResult(BaseModel):
    success_count: int = 0
    failed_ids: List[str] = Field(default_factory=list)
