"""Notification persistence.

The delivery engine depends on the ``NotificationStore`` protocol only. The
in-memory implementation backs development and tests; it hands out deep
copies so a record mutated by the engine is never visible to other readers
until it is written back with ``update``.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.notifications.errors import PersistenceError
from infrastructure.notifications.models import Notification, NotificationStatus, utcnow

logger = get_module_logger()


class NotificationStore(Protocol):
    """Storage interface for notification records.

    Implementations raise PersistenceError for backend failures.

    Methods:
        create: Persist a new record
        update: Overwrite an existing record
        get_by_id: Fetch one record, None if unknown
        get_pending: Pending records that are due, highest priority then oldest first
        get_failed_retryable: Failed records with retries left, highest priority
            then least recently failed first
        list_by_tenant: Tenant records, newest first
        list_by_user: One user's records within a tenant, newest first
        count_by_status: Record counts keyed by status value
    """

    def create(self, notification: Notification) -> Notification: ...

    def update(self, notification: Notification) -> Notification: ...

    def get_by_id(self, notification_id: str) -> Optional[Notification]: ...

    def get_pending(self, limit: int, now: datetime) -> List[Notification]: ...

    def get_failed_retryable(
        self, limit: int, max_retries: int
    ) -> List[Notification]: ...

    def list_by_tenant(
        self, tenant_id: str, limit: int = 50, offset: int = 0
    ) -> List[Notification]: ...

    def list_by_user(
        self, tenant_id: str, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[Notification]: ...

    def count_by_status(self, tenant_id: Optional[str] = None) -> Dict[str, int]: ...


class InMemoryNotificationStore:
    """Thread-safe in-memory notification store."""

    def __init__(self):
        self._records: Dict[str, Notification] = {}
        self._lock = threading.Lock()

    def create(self, notification: Notification) -> Notification:
        with self._lock:
            if notification.id in self._records:
                raise PersistenceError(
                    f"notification '{notification.id}' already exists"
                )
            self._records[notification.id] = notification.model_copy(deep=True)
        logger.debug("notification_stored", notification_id=notification.id)
        return notification.model_copy(deep=True)

    def update(self, notification: Notification) -> Notification:
        with self._lock:
            if notification.id not in self._records:
                raise PersistenceError(
                    f"cannot update unknown notification '{notification.id}'"
                )
            notification.updated_at = max(notification.updated_at, utcnow())
            self._records[notification.id] = notification.model_copy(deep=True)
        return notification.model_copy(deep=True)

    def get_by_id(self, notification_id: str) -> Optional[Notification]:
        with self._lock:
            record = self._records.get(notification_id)
            return record.model_copy(deep=True) if record else None

    def get_pending(self, limit: int, now: datetime) -> List[Notification]:
        with self._lock:
            due = [n for n in self._records.values() if n.is_due(now)]
            due.sort(key=lambda n: (-n.priority.rank, n.created_at))
            return [n.model_copy(deep=True) for n in due[:limit]]

    def get_failed_retryable(self, limit: int, max_retries: int) -> List[Notification]:
        with self._lock:
            failed = [n for n in self._records.values() if n.can_retry(max_retries)]
            failed.sort(
                key=lambda n: (-n.priority.rank, n.failed_at or n.created_at)
            )
            return [n.model_copy(deep=True) for n in failed[:limit]]

    def list_by_tenant(
        self, tenant_id: str, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        with self._lock:
            records = [n for n in self._records.values() if n.tenant_id == tenant_id]
            records.sort(key=lambda n: n.created_at, reverse=True)
            return [n.model_copy(deep=True) for n in records[offset : offset + limit]]

    def list_by_user(
        self, tenant_id: str, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        with self._lock:
            records = [
                n
                for n in self._records.values()
                if n.tenant_id == tenant_id and n.user_id == user_id
            ]
            records.sort(key=lambda n: n.created_at, reverse=True)
            return [n.model_copy(deep=True) for n in records[offset : offset + limit]]

    def count_by_status(self, tenant_id: Optional[str] = None) -> Dict[str, int]:
        counts = {status.value: 0 for status in NotificationStatus}
        with self._lock:
            for record in self._records.values():
                if tenant_id is None or record.tenant_id == tenant_id:
                    counts[record.status.value] += 1
        return counts
