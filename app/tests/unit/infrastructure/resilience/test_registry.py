"""Unit tests for the circuit breaker registry."""

import pytest

from infrastructure.resilience.circuit_breaker import CircuitState
from infrastructure.resilience.registry import BreakerConfig, BreakerRegistry


def fail():
    raise ConnectionError("down")


@pytest.fixture
def registry(monotonic_clock):
    return BreakerRegistry(
        default_config=BreakerConfig(failure_threshold=1, timeout_seconds=30),
        overrides={"twilio": BreakerConfig(failure_threshold=3, timeout_seconds=120)},
        clock=monotonic_clock,
    )


def open_breaker(breaker, failures):
    for _ in range(failures):
        with pytest.raises(ConnectionError):
            breaker.call(fail)


@pytest.mark.unit
class TestBreakerConfig:
    def test_from_mapping_uses_defaults_for_missing_keys(self):
        config = BreakerConfig.from_mapping({"timeout_seconds": 90})
        assert config == BreakerConfig(timeout_seconds=90)

    def test_from_mapping_coerces_types(self):
        config = BreakerConfig.from_mapping(
            {"max_requests": 2.0, "failure_threshold": "4"}
        )
        assert config.max_requests == 2
        assert config.failure_threshold == 4


@pytest.mark.unit
class TestBreakerRegistry:
    def test_creates_breaker_once(self, registry):
        assert registry.get_breaker("smtp") is registry.get_breaker("smtp")
        assert registry.list_breakers() == ["smtp"]

    def test_applies_override(self, registry):
        breaker = registry.get_breaker("twilio")
        assert breaker.failure_threshold == 3
        assert breaker.timeout_seconds == 120
        assert registry.get_breaker("fcm").failure_threshold == 1

    def test_breakers_are_independent(self, registry):
        open_breaker(registry.get_breaker("smtp"), 2)
        assert registry.get_breaker("smtp").state == CircuitState.OPEN
        assert registry.get_breaker("fcm").state == CircuitState.CLOSED

    def test_status_and_open_breakers(self, registry):
        open_breaker(registry.get_breaker("smtp"), 2)
        registry.get_breaker("fcm")

        status = registry.get_status()

        assert set(status) == {"smtp", "fcm"}
        assert status["smtp"]["state"] == "open"
        assert registry.get_open_breakers() == ["smtp"]

    def test_reset_breaker(self, registry):
        open_breaker(registry.get_breaker("smtp"), 2)
        registry.reset_breaker("smtp")
        assert registry.get_breaker("smtp").state == CircuitState.CLOSED

    def test_reset_unknown_breaker_raises(self, registry):
        with pytest.raises(KeyError):
            registry.reset_breaker("unknown")

    def test_shared_is_successful_predicate(self, monotonic_clock):
        registry = BreakerRegistry(
            BreakerConfig(failure_threshold=1),
            is_successful=lambda exc: isinstance(exc, ConnectionError),
            clock=monotonic_clock,
        )
        open_breaker(registry.get_breaker("smtp"), 5)
        assert registry.get_breaker("smtp").state == CircuitState.CLOSED

    def test_shared_listener(self, monotonic_clock):
        transitions = []
        registry = BreakerRegistry(
            BreakerConfig(failure_threshold=0),
            on_state_change=lambda name, old, new: transitions.append((name, new)),
            clock=monotonic_clock,
        )
        open_breaker(registry.get_breaker("fcm"), 1)
        assert transitions == [("fcm", CircuitState.OPEN)]
