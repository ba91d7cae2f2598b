"""Circuit breaker registry.

Owns one CircuitBreaker per provider, created lazily on first use. The
registry is an explicit object handed to the delivery engine and the admin
API rather than a module-level global, so tests get isolated breakers.
"""

from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Mapping, Optional

from infrastructure.logging import get_module_logger
from infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    StateChangeListener,
)

logger = get_module_logger()


@dataclass(frozen=True)
class BreakerConfig:
    """Options used to build a breaker."""

    max_requests: int = 5
    interval_seconds: float = 60
    timeout_seconds: float = 30
    failure_threshold: int = 5

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "BreakerConfig":
        return cls(
            max_requests=int(options.get("max_requests", cls.max_requests)),
            interval_seconds=float(options.get("interval_seconds", cls.interval_seconds)),
            timeout_seconds=float(options.get("timeout_seconds", cls.timeout_seconds)),
            failure_threshold=int(
                options.get("failure_threshold", cls.failure_threshold)
            ),
        )


class BreakerRegistry:
    """Registry of per-provider circuit breakers.

    Args:
        default_config: Options for providers without an override
        overrides: Per-provider options keyed by provider name
        is_successful: Predicate shared by all breakers, see CircuitBreaker
        on_state_change: Listener shared by all breakers
        clock: Time source shared by all breakers

    Usage:
        registry = BreakerRegistry(BreakerConfig())
        breaker = registry.get_breaker("twilio")
        breaker.call(send_sms, ...)
    """

    def __init__(
        self,
        default_config: Optional[BreakerConfig] = None,
        overrides: Optional[Mapping[str, BreakerConfig]] = None,
        is_successful: Optional[Callable[[Exception], bool]] = None,
        on_state_change: Optional[StateChangeListener] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._default_config = default_config or BreakerConfig()
        self._overrides: Dict[str, BreakerConfig] = dict(overrides or {})
        self._is_successful = is_successful
        self._on_state_change = on_state_change
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = Lock()

    def config_for(self, name: str) -> BreakerConfig:
        return self._overrides.get(name, self._default_config)

    def get_breaker(self, name: str) -> CircuitBreaker:
        """Get the breaker for ``name``, creating it on first use."""
        breaker = self._breakers.get(name)
        if breaker is not None:
            return breaker

        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                config = self.config_for(name)
                breaker = CircuitBreaker(
                    name=name,
                    max_requests=config.max_requests,
                    interval_seconds=config.interval_seconds,
                    timeout_seconds=config.timeout_seconds,
                    failure_threshold=config.failure_threshold,
                    is_successful=self._is_successful,
                    on_state_change=self._on_state_change,
                    clock=self._clock,
                )
                self._breakers[name] = breaker
                logger.info(
                    "circuit_breaker_created",
                    name=name,
                    max_requests=config.max_requests,
                    timeout_seconds=config.timeout_seconds,
                    failure_threshold=config.failure_threshold,
                )
            return breaker

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        """Get statistics for all registered breakers keyed by name."""
        with self._lock:
            breakers = list(self._breakers.values())
        return {cb.name: cb.get_stats() for cb in breakers}

    def get_open_breakers(self) -> list[str]:
        """Names of breakers currently OPEN."""
        with self._lock:
            breakers = list(self._breakers.values())
        return [cb.name for cb in breakers if cb.state == CircuitState.OPEN]

    def list_breakers(self) -> list[str]:
        with self._lock:
            return list(self._breakers.keys())

    def reset_breaker(self, name: str) -> None:
        """Manually reset a breaker.

        Raises:
            KeyError: If no breaker with this name has been created
        """
        breaker = self._breakers.get(name)
        if breaker is None:
            raise KeyError(f"Circuit breaker '{name}' not found")
        breaker.reset()
