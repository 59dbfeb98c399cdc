"""Circuit breaker guarding calls to the clinic backend.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Backend failing, requests fail immediately
- HALF_OPEN: One trial request allowed to probe recovery; other calls
  fail fast until it finishes
"""
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

from clinica_dental.logging_config import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when the circuit is open and the call was not attempted."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(
            f"Circuit '{name}' is OPEN. Retry after {retry_after:.1f}s"
        )


class CircuitBreaker:
    """Count consecutive failures and short-circuit once a threshold is hit."""

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: int = 60,
        name: str = "backend",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            failure_threshold: Consecutive failures before opening
            timeout: Seconds to wait before a half-open probe
            name: Label used in logs and errors
            clock: Time source (monotonic seconds)
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name
        self._clock = clock
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self._state = CircuitState.CLOSED
        self._trial_in_flight = False
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state.value

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute ``func`` under circuit protection.

        Raises:
            CircuitBreakerOpen: If the circuit is open, or half-open with a trial
                call already running (call not attempted)
            Exception: Whatever ``func`` raises
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._retry_after() > 0:
                    raise CircuitBreakerOpen(self.name, self._retry_after())
                self._state = CircuitState.HALF_OPEN
                logger.info("circuit_half_open", circuit=self.name)
            elif self._state == CircuitState.HALF_OPEN and self._trial_in_flight:
                raise CircuitBreakerOpen(self.name, 0.0)
            if self._state == CircuitState.HALF_OPEN:
                self._trial_in_flight = True

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def reset(self):
        """Force the circuit closed."""
        with self._lock:
            self.failure_count = 0
            self.last_failure_time = None
            self._state = CircuitState.CLOSED
            self._trial_in_flight = False

    def _retry_after(self) -> float:
        if self.last_failure_time is None:
            return 0.0
        elapsed = self._clock() - self.last_failure_time
        return max(0.0, self.timeout - elapsed)

    def _on_success(self):
        with self._lock:
            self._trial_in_flight = False
            self.failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info("circuit_closed", circuit=self.name)

    def _on_failure(self):
        with self._lock:
            self._trial_in_flight = False
            self.failure_count += 1
            self.last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning("circuit_reopened", circuit=self.name)
            elif (
                self._state == CircuitState.CLOSED
                and self.failure_count >= self.failure_threshold
            ):
                self._state = CircuitState.OPEN
                logger.error(
                    "circuit_opened",
                    circuit=self.name,
                    failures=self.failure_count,
                    timeout=self.timeout,
                )
