"""
Circuit Breaker Pattern.

Stops the notification scheduler from hammering the API while it
is failing.
"""

import time
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple, Type

from lead_followup.core.exceptions import InfrastructureError
from lead_followup.infrastructure.logging import get_logger
from lead_followup.infrastructure.metrics import get_metrics


logger = get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


_STATE_GAUGE = {
    CircuitState.CLOSED: 0,
    CircuitState.HALF_OPEN: 1,
    CircuitState.OPEN: 2,
}


class CircuitBreakerOpenError(InfrastructureError):
    """Raised when a call is rejected by an open circuit."""

    def __init__(self, name: str):
        super().__init__(f"Circuit breaker '{name}' is open", {"circuit": name})


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker configuration."""
    failure_threshold: int = 5       # Failures before opening
    success_threshold: int = 1       # Successes to close from half-open
    timeout_seconds: float = 300.0   # Time before trying again
    excluded_exceptions: Tuple[Type[Exception], ...] = ()


class CircuitBreaker:
    """
    Circuit breaker for external service calls.

    CLOSED counts consecutive failures and opens at the threshold.
    OPEN rejects calls until the timeout elapses, then lets trial
    calls through as HALF_OPEN; one failure there reopens it.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._name = name
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at: Optional[float] = None
        self._lock = Lock()

    @property
    def state(self) -> CircuitState:
        """Get current state, moving OPEN to HALF_OPEN after the timeout."""
        with self._lock:
            if (
                self._state == CircuitState.OPEN
                and self._opened_at is not None
                and self._clock() - self._opened_at >= self._config.timeout_seconds
            ):
                self._transition(CircuitState.HALF_OPEN)
            return self._state

    def _transition(self, new_state: CircuitState) -> None:
        """Switch state; caller holds the lock."""
        self._state = new_state
        if new_state == CircuitState.OPEN:
            self._opened_at = self._clock()
        if new_state != CircuitState.CLOSED:
            self._success_count = 0
        get_metrics().circuit_breaker_state.set(_STATE_GAUGE[new_state], circuit=self._name)
        logger.info(
            f"Circuit breaker '{self._name}' is now {new_state.value}",
            extra={"extra_fields": {
                "circuit": self._name,
                "failure_count": self._failure_count,
            }}
        )

    def _record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self._config.success_threshold:
                    self._failure_count = 0
                    self._transition(CircuitState.CLOSED)
            else:
                self._failure_count = 0

    def _record_failure(self, exception: Exception) -> None:
        if isinstance(exception, self._config.excluded_exceptions):
            return

        with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._config.failure_threshold
            ):
                logger.warning(
                    f"Circuit breaker '{self._name}' opening after {self._failure_count} failures",
                    extra={"extra_fields": {
                        "circuit": self._name,
                        "error": str(exception),
                    }}
                )
                self._transition(CircuitState.OPEN)

    def call(self, func: Callable, *args: Any, **kwargs: Any) -> Any:
        """
        Execute a function through the circuit breaker.

        Raises:
            CircuitBreakerOpenError: If circuit is open.
            Exception: Any exception from the function.
        """
        if self.state == CircuitState.OPEN:
            raise CircuitBreakerOpenError(self._name)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._record_failure(e)
            raise
        self._record_success()
        return result

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            self._failure_count = 0
            self._opened_at = None
            self._transition(CircuitState.CLOSED)


_circuit_breakers: Dict[str, CircuitBreaker] = {}
_registry_lock = Lock()


def get_circuit_breaker(
    name: str,
    config: Optional[CircuitBreakerConfig] = None,
) -> CircuitBreaker:
    """Get or create a circuit breaker by name."""
    with _registry_lock:
        if name not in _circuit_breakers:
            _circuit_breakers[name] = CircuitBreaker(name, config)
        return _circuit_breakers[name]
