"""Delivery engine.

The engine is the only component that mutates notification records and the
only caller of providers. For each delivery attempt it:

1. Re-reads the record and re-checks eligibility (pending and due, or
   failed with retries left and backoff elapsed). A store read failure
   abandons the attempt before any limiter or breaker state is touched.
2. Consumes a token from the ``"<tenant_id>:<channel>"`` bucket.
3. Calls the channel's provider through that provider's circuit breaker,
   bounded by the channel timeout.
4. Records the outcome with exactly one store update, then publishes the
   lifecycle event.

Attempts run on a bounded worker pool. An in-flight registry guarantees a
notification is never attempted twice concurrently, which together with
the eligibility re-check makes sweeps safe to repeat.
"""

import threading
import time
from concurrent import futures
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from infrastructure.configuration import DeliverySettings, ProviderTimeoutSettings
from infrastructure.events import EventPublisher
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.notifications.errors import (
    DeliveryTimeoutError,
    NotificationNotFoundError,
    InvalidStateTransitionError,
    NotificationValidationError,
    PersistenceError,
    ProviderError,
    RateLimitExceededError,
)
from infrastructure.notifications.models import (
    BulkItemResult,
    BulkReadResult,
    BulkSubmitResult,
    Notification,
    NotificationChannel,
    NotificationRequest,
    utcnow,
)
from infrastructure.notifications.providers import NotificationProvider
from infrastructure.notifications.store import NotificationStore
from infrastructure.notifications.validation import validate_request
from infrastructure.operations import OperationResult
from infrastructure.resilience import BreakerRegistry, CircuitBreakerOpenError, RateLimiter

logger = get_module_logger()

TOPIC_CREATED = "notification.created"
TOPIC_SENT = "notification.sent"
TOPIC_FAILED = "notification.failed"
TOPIC_DELIVERED = "notification.delivered"
TOPIC_READ = "notification.read"


def provider_responded(exc: Exception) -> bool:
    """Breaker predicate: permanent provider errors do not count as outages.

    A rejected recipient or a 4xx means the provider answered; only
    transient errors and timeouts say something about provider health.
    """
    return isinstance(exc, ProviderError) and exc.permanent


class DeliveryEngine:
    """Validates, persists and dispatches notifications.

    Args:
        store: Notification persistence
        providers: Provider per channel
        breakers: Circuit breaker registry, keyed by provider name
        rate_limiter: Token bucket limiter, keyed by tenant and channel
        publisher: Lifecycle event publisher
        settings: Retry limits, batch sizes and worker pool size
        timeouts: Per-channel provider call timeouts
        clock: Wall clock used for record timestamps and schedules
    """

    def __init__(
        self,
        store: NotificationStore,
        providers: Mapping[NotificationChannel, NotificationProvider],
        breakers: BreakerRegistry,
        rate_limiter: RateLimiter,
        publisher: EventPublisher,
        settings: DeliverySettings,
        timeouts: Optional[ProviderTimeoutSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._providers: Dict[NotificationChannel, NotificationProvider] = dict(providers)
        self._breakers = breakers
        self._rate_limiter = rate_limiter
        self._publisher = publisher
        self._settings = settings
        self._timeouts = timeouts or ProviderTimeoutSettings()
        self._clock = clock

        self._workers = ThreadPoolExecutor(
            max_workers=settings.max_workers, thread_name_prefix="delivery"
        )
        # Provider calls run here so a hung transport only costs a call
        # thread while the worker records the timeout.
        self._calls = ThreadPoolExecutor(
            max_workers=settings.max_workers, thread_name_prefix="provider-call"
        )
        self._in_flight: Dict[str, Optional[Future]] = {}
        self._in_flight_lock = threading.Lock()
        self._closed = False

    @property
    def breakers(self) -> BreakerRegistry:
        return self._breakers

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def settings(self) -> DeliverySettings:
        return self._settings

    def submit(self, request: NotificationRequest) -> Notification:
        """Validate and persist a notification, then dispatch it if due.

        Raises:
            NotificationValidationError: The request is malformed; nothing is stored
            PersistenceError: The record could not be stored
        """
        validate_request(request)

        now = self._clock()
        stored = self._store.create(Notification.from_request(request, now))

        logger.info(
            "notification_submitted",
            notification_id=stored.id,
            tenant_id=stored.tenant_id,
            channel=stored.channel.value,
            priority=stored.priority.value,
            scheduled=stored.is_scheduled(now),
        )
        self._publish(TOPIC_CREATED, stored)

        if not stored.is_scheduled(now):
            self.dispatch(stored.id)
        return stored

    def submit_bulk(self, requests: Sequence[NotificationRequest]) -> BulkSubmitResult:
        """Submit each request in turn, reporting every outcome by position.

        A rejected or unstorable item does not stop the rest of the batch.
        """
        items: List[BulkItemResult] = []
        for index, request in enumerate(requests):
            try:
                notification = self.submit(request)
            except NotificationValidationError as exc:
                items.append(
                    BulkItemResult(index=index, error=str(exc), field=exc.field)
                )
            except PersistenceError as exc:
                logger.error("bulk_item_persist_failed", index=index, error=str(exc))
                items.append(BulkItemResult(index=index, error=str(exc)))
            else:
                items.append(BulkItemResult(index=index, notification=notification))

        result = BulkSubmitResult.from_items(items)
        logger.info(
            "bulk_submission_completed",
            success_count=result.success_count,
            error_count=result.error_count,
        )
        return result

    def get_notification(self, notification_id: str) -> Notification:
        notification = self._store.get_by_id(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    def list_notifications(
        self, tenant_id: str, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        return self._store.list_by_tenant(tenant_id, limit=limit, offset=offset)

    def list_user_notifications(
        self, tenant_id: str, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        return self._store.list_by_user(tenant_id, user_id, limit=limit, offset=offset)

    def mark_delivered(self, notification_id: str) -> Notification:
        """Record a provider delivery receipt (sent -> delivered).

        Raises:
            NotificationNotFoundError: Unknown id
            InvalidStateTransitionError: The notification is not sent
        """
        notification = self.get_notification(notification_id)
        notification.mark_delivered(self._clock())
        saved = self._store.update(notification)
        logger.info("notification_delivered", notification_id=notification_id)
        self._publish(TOPIC_DELIVERED, saved)
        return saved

    def mark_read(self, notification_id: str) -> Notification:
        """Record that the recipient read the notification.

        Raises:
            NotificationNotFoundError: Unknown id
            InvalidStateTransitionError: The notification is not sent or delivered
        """
        notification = self.get_notification(notification_id)
        notification.mark_read(self._clock())
        saved = self._store.update(notification)
        logger.info("notification_read", notification_id=notification_id)
        self._publish(TOPIC_READ, saved)
        return saved

    def mark_read_many(self, notification_ids: Sequence[str]) -> BulkReadResult:
        """Mark several notifications read; ids that cannot be marked are listed."""
        result = BulkReadResult()
        for notification_id in notification_ids:
            try:
                self.mark_read(notification_id)
            except (
                NotificationNotFoundError,
                InvalidStateTransitionError,
                PersistenceError,
            ) as exc:
                logger.warning(
                    "notification_read_failed",
                    notification_id=notification_id,
                    error=str(exc),
                )
                result.failed_ids.append(notification_id)
            else:
                result.success_count += 1
        return result

    def dispatch(self, notification_id: str) -> bool:
        """Queue a delivery attempt on the worker pool.

        Returns:
            False if the notification is already in flight or the engine
            is shut down, True otherwise
        """
        with self._in_flight_lock:
            if self._closed or notification_id in self._in_flight:
                return False
            self._in_flight[notification_id] = None

        try:
            future = self._workers.submit(self._run_attempt, notification_id)
        except RuntimeError as exc:
            with self._in_flight_lock:
                self._in_flight.pop(notification_id, None)
            logger.error(
                "dispatch_rejected", notification_id=notification_id, error=str(exc)
            )
            return False

        with self._in_flight_lock:
            if notification_id in self._in_flight:
                self._in_flight[notification_id] = future
        return True

    def _run_attempt(self, notification_id: str) -> None:
        try:
            if self._closed:
                logger.info(
                    "delivery_attempt_dropped",
                    notification_id=notification_id,
                    reason="engine_shutdown",
                )
                return
            self.process_notification(notification_id)
        except Exception as exc:
            logger.exception(
                "delivery_attempt_crashed",
                notification_id=notification_id,
                error=str(exc),
            )
        finally:
            with self._in_flight_lock:
                self._in_flight.pop(notification_id, None)

    def process_notification(self, notification_id: str) -> Optional[Notification]:
        """Run one delivery attempt synchronously.

        Returns:
            The updated record, or None if the attempt was skipped or abandoned
        """
        now = self._clock()
        try:
            notification = self._store.get_by_id(notification_id)
        except PersistenceError as exc:
            logger.error(
                "delivery_attempt_abandoned",
                notification_id=notification_id,
                error=str(exc),
            )
            return None

        if notification is None:
            logger.warning("notification_missing", notification_id=notification_id)
            return None

        if not self._is_eligible(notification, now):
            logger.debug(
                "delivery_attempt_skipped",
                notification_id=notification_id,
                status=notification.status.value,
            )
            return None

        with bind_request_context(
            tenant_id=notification.tenant_id, notification_id=notification.id
        ):
            return self._attempt(notification)

    def _attempt(self, notification: Notification) -> Optional[Notification]:
        channel = notification.channel
        provider = self._providers.get(channel)
        if provider is None:
            return self._record_failure(
                notification,
                ProviderError(
                    channel.value,
                    f"no provider registered for channel '{channel.value}'",
                    permanent=True,
                ),
            )

        limiter_key = f"{notification.tenant_id}:{channel.value}"
        try:
            if not self._rate_limiter.allow(limiter_key, category=channel.value):
                raise RateLimitExceededError(limiter_key)
            breaker = self._breakers.get_breaker(provider.provider_name)
            breaker.call(self._call_provider, provider, notification)
        except (RateLimitExceededError, CircuitBreakerOpenError, ProviderError) as exc:
            return self._record_failure(notification, exc)
        except Exception as exc:
            logger.exception(
                "provider_raised", provider=provider.provider_name, error=str(exc)
            )
            return self._record_failure(notification, exc)

        return self._record_success(notification, provider)

    def _call_provider(
        self, provider: NotificationProvider, notification: Notification
    ) -> OperationResult:
        timeout = self._timeouts.for_channel(notification.channel.value)
        metadata = {**notification.metadata, "notification_id": notification.id}

        call = self._calls.submit(
            provider.send,
            notification.recipient,
            notification.subject,
            notification.message,
            metadata,
            timeout,
        )
        try:
            result = call.result(timeout=timeout)
        except futures.TimeoutError:
            call.cancel()
            raise DeliveryTimeoutError(provider.provider_name, timeout)

        if not result.is_success:
            raise ProviderError(
                provider.provider_name,
                result.message,
                permanent=result.is_permanent,
                error_code=result.error_code,
            )
        return result

    def _record_success(
        self, notification: Notification, provider: NotificationProvider
    ) -> Optional[Notification]:
        notification.mark_sent(self._clock())
        saved = self._save(notification)
        if saved is None:
            return None

        logger.info(
            "notification_sent",
            provider=provider.provider_name,
            channel=saved.channel.value,
            retry_count=saved.retry_count,
        )
        self._publish(TOPIC_SENT, saved)
        return saved

    def _record_failure(
        self, notification: Notification, exc: Exception
    ) -> Optional[Notification]:
        permanent = isinstance(exc, ProviderError) and exc.permanent
        notification.mark_failed(str(exc), self._clock(), permanent=permanent)
        saved = self._save(notification)
        if saved is None:
            return None

        logger.warning(
            "notification_failed",
            channel=saved.channel.value,
            error=saved.error,
            error_type=type(exc).__name__,
            retry_count=saved.retry_count,
            terminal=saved.is_terminal_failure(self._settings.max_retries),
        )
        self._publish(TOPIC_FAILED, saved)
        return saved

    def _save(self, notification: Notification) -> Optional[Notification]:
        try:
            return self._store.update(notification)
        except PersistenceError as exc:
            logger.error(
                "notification_update_failed",
                notification_id=notification.id,
                status=notification.status.value,
                error=str(exc),
            )
            return None

    def _publish(self, topic: str, notification: Notification) -> None:
        try:
            self._publisher.publish(topic, notification.event_payload(self._clock()))
        except Exception as exc:
            logger.error(
                "event_publish_failed",
                topic=topic,
                notification_id=notification.id,
                error=str(exc),
            )

    def _is_eligible(self, notification: Notification, now: datetime) -> bool:
        if notification.is_due(now):
            return True
        if notification.can_retry(self._settings.max_retries):
            return self._backoff_elapsed(notification, now)
        return False

    def retry_delay(self, retry_count: int) -> timedelta:
        """Backoff before the next retry after ``retry_count`` failures."""
        base = self._settings.retry_base_delay_seconds
        if base <= 0 or retry_count <= 0:
            return timedelta(0)
        delay = min(base * (2 ** (retry_count - 1)), self._settings.retry_max_delay_seconds)
        return timedelta(seconds=delay)

    def _backoff_elapsed(self, notification: Notification, now: datetime) -> bool:
        if notification.failed_at is None:
            return True
        return now >= notification.failed_at + self.retry_delay(notification.retry_count)

    def run_pending_sweep(self, limit: Optional[int] = None) -> Dict[str, int]:
        """Dispatch pending notifications that are due, highest priority first."""
        now = self._clock()
        batch = limit or self._settings.pending_batch_size
        try:
            candidates = self._store.get_pending(batch, now)
        except PersistenceError as exc:
            logger.error("pending_sweep_failed", error=str(exc))
            return {"selected": 0, "dispatched": 0, "skipped": 0}
        return self._dispatch_batch("pending", candidates)

    def run_retry_sweep(self, limit: Optional[int] = None) -> Dict[str, int]:
        """Re-dispatch failed notifications with retries left."""
        now = self._clock()
        batch = limit or self._settings.retry_batch_size
        try:
            candidates = self._store.get_failed_retryable(
                batch, self._settings.max_retries
            )
        except PersistenceError as exc:
            logger.error("retry_sweep_failed", error=str(exc))
            return {"selected": 0, "dispatched": 0, "skipped": 0}

        due = [n for n in candidates if self._backoff_elapsed(n, now)]
        stats = self._dispatch_batch("retry", due)
        stats["selected"] = len(candidates)
        stats["skipped"] += len(candidates) - len(due)
        return stats

    def _dispatch_batch(
        self, sweep: str, candidates: List[Notification]
    ) -> Dict[str, int]:
        dispatched = 0
        for notification in candidates:
            if self.dispatch(notification.id):
                dispatched += 1

        stats = {
            "selected": len(candidates),
            "dispatched": dispatched,
            "skipped": len(candidates) - dispatched,
        }
        logger.info("sweep_completed", sweep=sweep, **stats)
        return stats

    def in_flight(self) -> int:
        with self._in_flight_lock:
            return len(self._in_flight)

    def get_stats(self, tenant_id: Optional[str] = None) -> Dict[str, Any]:
        """Notification counts per status plus breaker and limiter snapshots."""
        return {
            "notifications": self._store.count_by_status(tenant_id),
            "in_flight": self.in_flight(),
            "circuit_breakers": self._breakers.get_status(),
            "open_breakers": self._breakers.get_open_breakers(),
            "rate_limiter": self._rate_limiter.get_stats(),
        }

    def provider_health(self) -> Dict[str, Dict[str, Any]]:
        """Health check result per channel."""
        report: Dict[str, Dict[str, Any]] = {}
        for channel, provider in self._providers.items():
            try:
                result = provider.health_check()
            except Exception as exc:
                result = OperationResult.transient_error(f"health check raised: {exc}")
            report[channel.value] = {
                "provider": provider.provider_name,
                "status": result.status.value,
                "message": result.message,
            }
        return report

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight attempts to finish.

        Returns:
            True if nothing is left in flight
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._in_flight_lock:
                if not self._in_flight:
                    return True
                pending = [f for f in self._in_flight.values() if f is not None]

            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            if pending:
                futures.wait(pending, timeout=remaining)
            else:
                time.sleep(0.01)

    def shutdown(self, wait: bool = True) -> None:
        with self._in_flight_lock:
            self._closed = True
        self._workers.shutdown(wait=wait)
        self._calls.shutdown(wait=False, cancel_futures=True)
        logger.info("delivery_engine_stopped", wait=wait)
