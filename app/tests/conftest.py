"""Shared fixtures for notification delivery tests."""

import pytest

from api.dependencies.rate_limits import get_limiter
from infrastructure.configuration import DeliverySettings, ProviderTimeoutSettings
from infrastructure.events import InProcessEventPublisher
from infrastructure.notifications import DeliveryEngine, InMemoryNotificationStore
from infrastructure.notifications.engine import provider_responded
from infrastructure.notifications.models import NotificationChannel
from infrastructure.resilience import (
    BreakerConfig,
    BreakerRegistry,
    RateLimit,
    RateLimiter,
)
from tests.factories.notifications import (
    FakeMonotonicClock,
    FakeProvider,
    FakeWallClock,
    make_notification,
    make_request,
)


@pytest.fixture(autouse=True)
def reset_api_rate_limits():
    """Clear HTTP route limits so tests never throttle each other."""
    get_limiter().reset()
    yield


@pytest.fixture
def monotonic_clock():
    return FakeMonotonicClock()


@pytest.fixture
def wall_clock():
    return FakeWallClock()


@pytest.fixture
def delivery_settings_factory():
    """Factory for DeliverySettings with test-friendly defaults."""

    def _factory(**overrides):
        fields = {
            "max_retries": 3,
            "max_workers": 4,
            "pending_batch_size": 100,
            "retry_batch_size": 50,
            "retry_base_delay_seconds": 0,
            "sweeps_enabled": False,
        }
        fields.update(overrides)
        return DeliverySettings(**fields)

    return _factory


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def notification_factory():
    return make_notification


@pytest.fixture
def fake_providers():
    """One scripted provider per channel, all succeeding by default."""
    return {
        channel: FakeProvider(channel=channel, name=f"fake-{channel.value}")
        for channel in NotificationChannel
    }


@pytest.fixture
def store():
    return InMemoryNotificationStore()


@pytest.fixture
def stored(store, notification_factory):
    """Create notifications directly in the store, bypassing dispatch."""

    def _create(**kwargs):
        return store.create(notification_factory(**kwargs))

    return _create


@pytest.fixture
def publisher():
    return InProcessEventPublisher()


@pytest.fixture
def published_events(publisher):
    """Collect every event published during the test."""
    events = []
    publisher.subscribe("*", events.append)
    return events


@pytest.fixture
def breaker_registry(monotonic_clock):
    return BreakerRegistry(
        default_config=BreakerConfig(
            max_requests=1, interval_seconds=0, timeout_seconds=30, failure_threshold=5
        ),
        is_successful=provider_responded,
        clock=monotonic_clock,
    )


@pytest.fixture
def rate_limiter(monotonic_clock):
    return RateLimiter(RateLimit(rate=100, burst=1000), clock=monotonic_clock)


@pytest.fixture
def engine_factory(
    store,
    publisher,
    fake_providers,
    breaker_registry,
    rate_limiter,
    wall_clock,
    delivery_settings_factory,
):
    """Factory for DeliveryEngine wired with fakes. Engines are shut down after the test."""
    engines = []

    def _factory(**overrides):
        kwargs = {
            "store": store,
            "providers": fake_providers,
            "breakers": breaker_registry,
            "rate_limiter": rate_limiter,
            "publisher": publisher,
            "settings": delivery_settings_factory(),
            "timeouts": ProviderTimeoutSettings(),
            "clock": wall_clock,
        }
        kwargs.update(overrides)
        engine = DeliveryEngine(**kwargs)
        engines.append(engine)
        return engine

    yield _factory

    for engine in engines:
        engine.shutdown(wait=True)


@pytest.fixture
def engine(engine_factory):
    return engine_factory()
