"""Circuit breaker implementation for provider resilience.

The circuit breaker prevents cascading failures by failing fast once a
provider looks unhealthy:

1. CLOSED: Calls pass through. Outcomes are counted in a window of
   ``interval_seconds`` (counts reset at the end of each window, never when
   the interval is 0).
2. OPEN: Calls are rejected without running. After ``timeout_seconds`` the
   breaker moves to HALF_OPEN.
3. HALF_OPEN: Up to ``max_requests`` probe calls are admitted. A failure
   re-opens the breaker; ``max_requests`` consecutive successes close it.

Every state change (and every window rollover) starts a new *generation*.
A call records its outcome against the generation that admitted it, so
results from a stale generation are discarded instead of polluting the
counts of the current one.

State is computed lazily from an injectable monotonic clock on every
access, so no background timer is involved.
"""

import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Optional

from infrastructure.logging import get_module_logger

logger = get_module_logger()

DEFAULT_FAILURE_THRESHOLD = 5


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests immediately
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitBreakerOpenError(Exception):
    """Raised when the breaker rejects a call without running it."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"circuit breaker '{name}' is open")


class TooManyRequestsError(CircuitBreakerOpenError):
    """Raised when a half-open breaker has already admitted its probes."""

    def __init__(self, name: str):
        super().__init__(
            name, f"circuit breaker '{name}' is half-open: too many requests"
        )


@dataclass
class Counts:
    """Request and outcome counters for the current generation."""

    requests: int = 0
    total_successes: int = 0
    total_failures: int = 0
    consecutive_successes: int = 0
    consecutive_failures: int = 0

    def on_request(self) -> None:
        self.requests += 1

    def on_success(self) -> None:
        self.total_successes += 1
        self.consecutive_successes += 1
        self.consecutive_failures = 0

    def on_failure(self) -> None:
        self.total_failures += 1
        self.consecutive_failures += 1
        self.consecutive_successes = 0

    def clear(self) -> None:
        self.requests = 0
        self.total_successes = 0
        self.total_failures = 0
        self.consecutive_successes = 0
        self.consecutive_failures = 0


StateChangeListener = Callable[[str, CircuitState, CircuitState], None]


class CircuitBreaker:
    """Circuit breaker for provider calls.

    Args:
        name: Name of the circuit (the provider name)
        max_requests: Probes admitted in HALF_OPEN, and consecutive
            successes needed there to close
        interval_seconds: CLOSED counting window; 0 keeps counts until the
            next state change
        timeout_seconds: OPEN cool-down before probing
        failure_threshold: With the default trip predicate, the breaker
            opens once consecutive failures exceed this value
        ready_to_trip: Optional predicate over Counts deciding when a
            failure in CLOSED opens the breaker
        is_successful: Optional predicate deciding whether an exception
            raised by the call should still count as a success (for
            example a permanent client error that says nothing about
            provider health)
        on_state_change: Optional listener called with
            (name, from_state, to_state) while the breaker lock
            is held; it must not call back into the breaker
        clock: Monotonic time source in seconds
    """

    def __init__(
        self,
        name: str,
        max_requests: int = 1,
        interval_seconds: float = 0,
        timeout_seconds: float = 60,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        ready_to_trip: Optional[Callable[[Counts], bool]] = None,
        is_successful: Optional[Callable[[Exception], bool]] = None,
        on_state_change: Optional[StateChangeListener] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if timeout_seconds < 0 or interval_seconds < 0:
            raise ValueError("interval_seconds and timeout_seconds must be >= 0")

        self.name = name
        self.max_requests = max_requests
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self.failure_threshold = failure_threshold

        self._ready_to_trip = ready_to_trip or (
            lambda counts: counts.consecutive_failures > failure_threshold
        )
        self._is_successful = is_successful or (lambda exc: False)
        self._on_state_change = on_state_change
        self._clock = clock or time.monotonic

        self._state = CircuitState.CLOSED
        self._generation = 0
        self._counts = Counts()
        self._expiry: Optional[float] = None

        self._lock = threading.Lock()
        self._to_new_generation(self._clock())

    @property
    def state(self) -> CircuitState:
        """Current state, advancing any elapsed window or cool-down."""
        with self._lock:
            state, _ = self._current_state(self._clock())
            return state

    @property
    def generation(self) -> int:
        with self._lock:
            _, generation = self._current_state(self._clock())
            return generation

    @property
    def counts(self) -> Counts:
        """Snapshot of the current generation's counters."""
        with self._lock:
            self._current_state(self._clock())
            return Counts(**asdict(self._counts))

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """Execute function through circuit breaker.

        Args:
            func: Function to call
            *args, **kwargs: Arguments to pass to function

        Returns:
            Result from function

        Raises:
            CircuitBreakerOpenError: If the breaker is open
            TooManyRequestsError: If the half-open probe budget is used up
            Exception: Any exception raised by func
        """
        generation = self._before_request()

        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            self._after_request(generation, self._is_successful(exc), exc)
            raise

        self._after_request(generation, True)
        return result

    def _before_request(self) -> int:
        with self._lock:
            now = self._clock()
            state, generation = self._current_state(now)

            if state == CircuitState.OPEN:
                logger.debug(
                    "circuit_breaker_rejected",
                    name=self.name,
                    retry_in_seconds=self._remaining(now),
                )
                raise CircuitBreakerOpenError(self.name)

            if (
                state == CircuitState.HALF_OPEN
                and self._counts.requests >= self.max_requests
            ):
                logger.debug(
                    "circuit_breaker_half_open_limit",
                    name=self.name,
                    requests=self._counts.requests,
                )
                raise TooManyRequestsError(self.name)

            self._counts.on_request()
            return generation

    def _after_request(
        self, before: int, success: bool, error: Optional[Exception] = None
    ) -> None:
        with self._lock:
            now = self._clock()
            state, generation = self._current_state(now)
            if generation != before:
                # Outcome belongs to a finished generation.
                return

            if success:
                self._on_success(state, now)
            else:
                self._on_failure(state, now, error)

    def _on_success(self, state: CircuitState, now: float) -> None:
        self._counts.on_success()
        if (
            state == CircuitState.HALF_OPEN
            and self._counts.consecutive_successes >= self.max_requests
        ):
            self._set_state(CircuitState.CLOSED, now)

    def _on_failure(
        self, state: CircuitState, now: float, error: Optional[Exception]
    ) -> None:
        if state == CircuitState.CLOSED:
            self._counts.on_failure()
            if self._ready_to_trip(self._counts):
                logger.error(
                    "circuit_breaker_threshold_exceeded",
                    name=self.name,
                    consecutive_failures=self._counts.consecutive_failures,
                    error=str(error) if error else None,
                )
                self._set_state(CircuitState.OPEN, now)
            else:
                logger.warning(
                    "circuit_breaker_failure",
                    name=self.name,
                    consecutive_failures=self._counts.consecutive_failures,
                    error=str(error) if error else None,
                )
        elif state == CircuitState.HALF_OPEN:
            logger.warning(
                "circuit_breaker_recovery_failed",
                name=self.name,
                error=str(error) if error else None,
            )
            self._set_state(CircuitState.OPEN, now)

    def _current_state(self, now: float) -> tuple[CircuitState, int]:
        if self._state == CircuitState.CLOSED:
            if self._expiry is not None and self._expiry <= now:
                self._to_new_generation(now)
        elif self._state == CircuitState.OPEN:
            if self._expiry is not None and self._expiry <= now:
                self._set_state(CircuitState.HALF_OPEN, now)
        return self._state, self._generation

    def _set_state(self, state: CircuitState, now: float) -> None:
        if self._state == state:
            return

        previous = self._state
        self._state = state
        self._to_new_generation(now)

        log = logger.error if state == CircuitState.OPEN else logger.info
        log(
            "circuit_breaker_state_changed",
            name=self.name,
            from_state=previous.value,
            to_state=state.value,
            generation=self._generation,
        )

        if self._on_state_change is not None:
            try:
                self._on_state_change(self.name, previous, state)
            except Exception as exc:
                logger.exception(
                    "circuit_breaker_listener_failed",
                    name=self.name,
                    error=str(exc),
                )

    def _to_new_generation(self, now: float) -> None:
        self._generation += 1
        self._counts.clear()

        if self._state == CircuitState.CLOSED:
            self._expiry = now + self.interval_seconds if self.interval_seconds else None
        elif self._state == CircuitState.OPEN:
            self._expiry = now + self.timeout_seconds
        else:
            self._expiry = None

    def _remaining(self, now: float) -> int:
        if self._state != CircuitState.OPEN or self._expiry is None:
            return 0
        return max(0, int(self._expiry - now))

    def get_stats(self) -> dict:
        """Get circuit breaker statistics."""
        with self._lock:
            now = self._clock()
            state, generation = self._current_state(now)
            return {
                "name": self.name,
                "state": state.value,
                "generation": generation,
                **asdict(self._counts),
                "max_requests": self.max_requests,
                "interval_seconds": self.interval_seconds,
                "timeout_seconds": self.timeout_seconds,
                "retry_in_seconds": self._remaining(now),
            }

    def reset(self) -> None:
        """Force the breaker closed and start a new generation."""
        with self._lock:
            now = self._clock()
            logger.info("circuit_breaker_manual_reset", name=self.name)
            if self._state == CircuitState.CLOSED:
                self._to_new_generation(now)
            else:
                self._set_state(CircuitState.CLOSED, now)
