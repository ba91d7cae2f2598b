"""Unit tests for single delivery attempts through the DeliveryEngine.

Attempts are driven synchronously with ``process_notification`` so the
breaker, limiter and store interactions are deterministic.
"""

import time
from datetime import timedelta

import pytest

from infrastructure.configuration import ProviderTimeoutSettings
from infrastructure.notifications.engine import TOPIC_FAILED, TOPIC_SENT
from infrastructure.notifications.errors import (
    InvalidStateTransitionError,
    NotificationNotFoundError,
    NotificationValidationError,
    PersistenceError,
)
from infrastructure.notifications.models import NotificationChannel, NotificationStatus
from infrastructure.notifications.store import InMemoryNotificationStore
from infrastructure.operations import OperationResult
from infrastructure.resilience import CircuitState, RateLimit, RateLimiter
from tests.factories.notifications import FakeProvider

EMAIL = NotificationChannel.EMAIL


class FlakyStore(InMemoryNotificationStore):
    """In-memory store whose reads or writes can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_reads = False
        self.fail_updates = False
        self.fail_creates = False

    def create(self, notification):
        if self.fail_creates:
            raise PersistenceError("store unavailable")
        return super().create(notification)

    def get_by_id(self, notification_id):
        if self.fail_reads:
            raise PersistenceError("store unavailable")
        return super().get_by_id(notification_id)

    def update(self, notification):
        if self.fail_updates:
            raise PersistenceError("store unavailable")
        return super().update(notification)


@pytest.fixture
def failing_email():
    return FakeProvider(
        channel=EMAIL,
        name="fake-email",
        default=OperationResult.transient_error("relay unavailable"),
    )


@pytest.mark.unit
class TestSuccessfulAttempt:
    def test_marks_sent_and_publishes(
        self, engine, stored, store, fake_providers, published_events, wall_clock
    ):
        n = stored()

        result = engine.process_notification(n.id)

        assert result.status == NotificationStatus.SENT
        assert result.sent_at == wall_clock.now
        assert store.get_by_id(n.id).status == NotificationStatus.SENT
        assert [e.topic for e in published_events] == [TOPIC_SENT]
        assert fake_providers[EMAIL].call_count == 1

    def test_provider_receives_notification_fields(
        self, engine, stored, fake_providers
    ):
        n = stored(metadata={"campaign": "spring"})

        engine.process_notification(n.id)

        call = fake_providers[EMAIL].calls[0]
        assert call["recipient"] == n.recipient
        assert call["subject"] == n.subject
        assert call["body"] == n.message
        assert call["metadata"] == {"campaign": "spring", "notification_id": n.id}
        assert call["timeout"] == ProviderTimeoutSettings().email

    def test_event_published_after_store_update(
        self, engine, stored, store, publisher
    ):
        seen = []
        publisher.subscribe(
            TOPIC_SENT, lambda e: seen.append(store.get_by_id(e.payload["id"]).status)
        )
        n = stored()

        engine.process_notification(n.id)

        assert seen == [NotificationStatus.SENT]

    def test_retry_success_keeps_retry_count(self, engine, stored, fake_providers):
        fake_providers[EMAIL].queue(OperationResult.transient_error("blip"))
        n = stored()

        engine.process_notification(n.id)
        result = engine.process_notification(n.id)

        assert result.status == NotificationStatus.SENT
        assert result.retry_count == 1
        assert result.error is None
        assert result.failed_at is None


@pytest.mark.unit
class TestFailedAttempt:
    def test_transient_failure_is_retryable(
        self, engine_factory, failing_email, stored, published_events
    ):
        engine = engine_factory(providers={EMAIL: failing_email})
        n = stored()

        result = engine.process_notification(n.id)

        assert result.status == NotificationStatus.FAILED
        assert result.retry_count == 1
        assert result.error == "relay unavailable"
        assert result.can_retry(3)
        assert [e.topic for e in published_events] == [TOPIC_FAILED]

    def test_permanent_failure_is_terminal(self, engine, stored, fake_providers):
        fake_providers[EMAIL].queue(OperationResult.permanent_error("mailbox unknown"))
        n = stored()

        result = engine.process_notification(n.id)

        assert result.permanent_failure is True
        assert result.is_terminal_failure(3)
        assert engine.process_notification(n.id) is None

    def test_unexpected_provider_exception_is_transient(
        self, engine, stored, fake_providers
    ):
        fake_providers[EMAIL].queue(RuntimeError("driver crashed"))
        n = stored()

        result = engine.process_notification(n.id)

        assert result.status == NotificationStatus.FAILED
        assert result.permanent_failure is False
        assert "driver crashed" in result.error

    def test_retry_count_never_exceeds_max_retries(
        self, engine_factory, failing_email, stored
    ):
        engine = engine_factory(providers={EMAIL: failing_email})
        n = stored()

        for _ in range(6):
            engine.process_notification(n.id)

        assert engine.get_notification(n.id).retry_count == 3
        assert failing_email.call_count == 3

    def test_missing_provider_is_permanent(self, engine_factory, stored):
        engine = engine_factory(providers={})
        n = stored(channel=NotificationChannel.SMS)

        result = engine.process_notification(n.id)

        assert result.permanent_failure is True
        assert "no provider registered" in result.error

    def test_timeout_is_transient(self, engine_factory, stored):
        def slow():
            time.sleep(0.5)
            return OperationResult.success()

        provider = FakeProvider(channel=EMAIL, name="fake-email", outcomes=[slow])
        engine = engine_factory(
            providers={EMAIL: provider},
            timeouts=ProviderTimeoutSettings(email=0.05),
        )
        n = stored()

        result = engine.process_notification(n.id)

        assert result.status == NotificationStatus.FAILED
        assert "timed out" in result.error
        assert result.permanent_failure is False


@pytest.mark.unit
class TestCircuitBreaking:
    def test_breaker_opens_after_threshold_and_fails_fast(
        self, engine_factory, failing_email, stored
    ):
        engine = engine_factory(providers={EMAIL: failing_email})
        notifications = [stored() for _ in range(7)]

        for n in notifications[:6]:
            engine.process_notification(n.id)

        breaker = engine.breakers.get_breaker("fake-email")
        assert breaker.state == CircuitState.OPEN

        result = engine.process_notification(notifications[6].id)

        assert failing_email.call_count == 6
        assert result.status == NotificationStatus.FAILED
        assert result.retry_count == 1
        assert "open" in result.error

    def test_permanent_failures_do_not_open_breaker(self, engine, stored, fake_providers):
        for _ in range(10):
            fake_providers[EMAIL].queue(OperationResult.permanent_error("bad address"))
        for _ in range(10):
            engine.process_notification(stored().id)

        assert engine.breakers.get_breaker("fake-email").state == CircuitState.CLOSED

    def test_half_open_probe_closes_breaker(
        self, engine_factory, stored, monotonic_clock
    ):
        provider = FakeProvider(channel=EMAIL, name="fake-email")
        provider.queue(*[OperationResult.transient_error("down")] * 6)
        engine = engine_factory(providers={EMAIL: provider})
        for _ in range(6):
            engine.process_notification(stored().id)

        monotonic_clock.advance(30)
        result = engine.process_notification(stored().id)

        assert result.status == NotificationStatus.SENT
        assert engine.breakers.get_breaker("fake-email").state == CircuitState.CLOSED

    def test_breakers_are_per_provider(
        self, engine_factory, failing_email, stored, fake_providers
    ):
        providers = dict(fake_providers)
        providers[EMAIL] = failing_email
        engine = engine_factory(providers=providers)
        for _ in range(6):
            engine.process_notification(stored().id)

        sms = stored(channel=NotificationChannel.SMS)
        result = engine.process_notification(sms.id)

        assert result.status == NotificationStatus.SENT


@pytest.mark.unit
class TestRateLimiting:
    @pytest.fixture
    def tight_limiter(self, monotonic_clock):
        return RateLimiter(RateLimit(rate=1, burst=1), clock=monotonic_clock)

    def test_exhausted_bucket_fails_without_provider_call(
        self, engine_factory, tight_limiter, stored, fake_providers
    ):
        engine = engine_factory(rate_limiter=tight_limiter)
        first, second = stored(), stored()

        engine.process_notification(first.id)
        result = engine.process_notification(second.id)

        assert result.status == NotificationStatus.FAILED
        assert "rate limit exceeded for 'tenant-1:email'" in result.error
        assert result.retry_count == 1
        assert fake_providers[EMAIL].call_count == 1

    def test_tenants_have_separate_buckets(
        self, engine_factory, tight_limiter, stored
    ):
        engine = engine_factory(rate_limiter=tight_limiter)
        engine.process_notification(stored(tenant_id="tenant-a").id)

        result = engine.process_notification(stored(tenant_id="tenant-b").id)

        assert result.status == NotificationStatus.SENT

    def test_rate_limited_attempt_does_not_touch_breaker(
        self, engine_factory, tight_limiter, stored
    ):
        engine = engine_factory(rate_limiter=tight_limiter)
        engine.process_notification(stored().id)
        engine.process_notification(stored().id)

        assert engine.breakers.get_breaker("fake-email").counts.requests == 1


@pytest.mark.unit
class TestPersistenceFailures:
    @pytest.fixture
    def flaky_store(self):
        return FlakyStore()

    def test_read_failure_abandons_attempt(
        self, engine_factory, flaky_store, notification_factory, fake_providers
    ):
        engine = engine_factory(store=flaky_store)
        n = flaky_store.create(notification_factory())
        flaky_store.fail_reads = True

        assert engine.process_notification(n.id) is None
        assert fake_providers[EMAIL].call_count == 0
        assert engine.rate_limiter.get_stats()["buckets"] == 0
        assert engine.breakers.list_breakers() == []

    def test_update_failure_publishes_nothing(
        self, engine_factory, flaky_store, notification_factory, published_events
    ):
        engine = engine_factory(store=flaky_store)
        n = flaky_store.create(notification_factory())
        flaky_store.fail_updates = True

        assert engine.process_notification(n.id) is None
        assert published_events == []
        flaky_store.fail_updates = False
        assert flaky_store.get_by_id(n.id).status == NotificationStatus.PENDING

    def test_unknown_id_is_skipped(self, engine):
        assert engine.process_notification("missing") is None


@pytest.mark.unit
class TestEligibility:
    def test_scheduled_notification_is_not_attempted(
        self, engine, stored, fake_providers, wall_clock
    ):
        n = stored(scheduled_for=wall_clock.now + timedelta(minutes=10))

        assert engine.process_notification(n.id) is None
        wall_clock.advance(minutes=10)
        assert engine.process_notification(n.id).status == NotificationStatus.SENT
        assert fake_providers[EMAIL].call_count == 1

    def test_sent_notification_is_not_resent(self, engine, stored, fake_providers):
        n = stored()
        engine.process_notification(n.id)

        assert engine.process_notification(n.id) is None
        assert fake_providers[EMAIL].call_count == 1

    def test_backoff_delays_retry(
        self, engine_factory, delivery_settings_factory, failing_email, stored, wall_clock
    ):
        engine = engine_factory(
            providers={EMAIL: failing_email},
            settings=delivery_settings_factory(retry_base_delay_seconds=60),
        )
        n = stored()
        engine.process_notification(n.id)

        assert engine.process_notification(n.id) is None
        wall_clock.advance(seconds=60)
        assert engine.process_notification(n.id).retry_count == 2

    def test_retry_delay_grows_and_caps(self, engine_factory, delivery_settings_factory):
        engine = engine_factory(
            settings=delivery_settings_factory(
                retry_base_delay_seconds=60, retry_max_delay_seconds=200
            )
        )
        assert engine.retry_delay(0) == timedelta(0)
        assert engine.retry_delay(1) == timedelta(seconds=60)
        assert engine.retry_delay(2) == timedelta(seconds=120)
        assert engine.retry_delay(3) == timedelta(seconds=200)

    def test_zero_base_delay_disables_backoff(self, engine):
        assert engine.retry_delay(5) == timedelta(0)


@pytest.mark.unit
class TestSubmissionAndLifecycle:
    def test_invalid_submission_stores_nothing(self, engine, request_factory, store):
        with pytest.raises(NotificationValidationError):
            engine.submit(request_factory(recipient="not-an-email"))
        assert store.count_by_status()["pending"] == 0

    def test_scheduled_submission_is_not_dispatched(
        self, engine, request_factory, wall_clock, published_events
    ):
        n = engine.submit(
            request_factory(scheduled_for=wall_clock.now + timedelta(hours=1))
        )

        assert engine.in_flight() == 0
        assert engine.get_notification(n.id).status == NotificationStatus.PENDING
        assert [e.topic for e in published_events] == ["notification.created"]

    def test_mark_delivered_and_read(self, engine, stored, published_events):
        n = stored()
        engine.process_notification(n.id)

        delivered = engine.mark_delivered(n.id)
        read = engine.mark_read(n.id)

        assert delivered.status == NotificationStatus.DELIVERED
        assert read.status == NotificationStatus.READ
        assert [e.topic for e in published_events][-2:] == [
            "notification.delivered",
            "notification.read",
        ]

    def test_mark_read_before_sent_is_rejected(self, engine, stored):
        n = stored()
        with pytest.raises(InvalidStateTransitionError):
            engine.mark_read(n.id)
        assert engine.get_notification(n.id).status == NotificationStatus.PENDING

    def test_unknown_notification(self, engine):
        with pytest.raises(NotificationNotFoundError):
            engine.mark_delivered("missing")

    def test_list_notifications_by_tenant(self, engine, stored):
        stored()
        stored(tenant_id="tenant-2")
        assert len(engine.list_notifications("tenant-1")) == 1


@pytest.mark.unit
class TestBulkOperations:
    def test_submit_bulk_reports_each_item(self, engine, request_factory, store):
        result = engine.submit_bulk(
            [
                request_factory(),
                request_factory(recipient="user@example.com\n"),
                request_factory(channel=NotificationChannel.SMS),
            ]
        )

        assert engine.drain(5)
        assert result.success_count == 2
        assert result.error_count == 1
        assert [item.index for item in result.results] == [0, 1, 2]
        rejected = result.results[1]
        assert rejected.notification is None
        assert rejected.field == "recipient"
        assert store.get_by_id(result.results[0].notification.id) is not None
        assert sum(store.count_by_status().values()) == 2

    def test_submit_bulk_reports_persistence_failures(
        self, engine_factory, request_factory
    ):
        flaky = FlakyStore()
        flaky.fail_creates = True
        engine = engine_factory(store=flaky)

        result = engine.submit_bulk([request_factory(), request_factory()])

        assert result.success_count == 0
        assert result.error_count == 2
        assert all(item.error == "store unavailable" for item in result.results)

    def test_mark_read_many(self, engine, stored):
        sent = stored()
        engine.process_notification(sent.id)
        pending = stored()

        result = engine.mark_read_many([sent.id, pending.id, "missing"])

        assert result.success_count == 1
        assert result.failed_ids == [pending.id, "missing"]
        assert engine.get_notification(sent.id).status == NotificationStatus.READ
        assert engine.get_notification(pending.id).status == NotificationStatus.PENDING

    def test_list_user_notifications(self, engine, stored):
        mine = stored(user_id="user-42")
        stored(user_id="user-7")
        stored(tenant_id="tenant-2", user_id="user-42")

        listed = engine.list_user_notifications("tenant-1", "user-42")

        assert [n.id for n in listed] == [mine.id]


@pytest.mark.unit
class TestEngineReporting:
    def test_stats(self, engine, stored):
        engine.process_notification(stored().id)
        stored()

        stats = engine.get_stats()

        assert stats["notifications"]["sent"] == 1
        assert stats["notifications"]["pending"] == 1
        assert "fake-email" in stats["circuit_breakers"]
        assert stats["open_breakers"] == []
        assert stats["in_flight"] == 0

    def test_provider_health(self, engine, fake_providers):
        fake_providers[NotificationChannel.SMS].healthy = OperationResult.transient_error(
            "unreachable"
        )

        report = engine.provider_health()

        assert report["email"]["status"] == "success"
        assert report["sms"]["status"] == "transient_error"
        assert report["sms"]["provider"] == "fake-sms"
