"""Circuit breaker guarding the primary e-mail transport.

Closed → (``failure_threshold`` consecutive failures) → Open → (``reset_timeout``
since the last failure, checked lazily on the next request) → Closed with
the counter reset. Any successful delivery resets the counter.

One instance is shared by every worker; all state lives behind one lock.
"""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_FAILURE_THRESHOLD = 10
DEFAULT_RESET_TIMEOUT = timedelta(minutes=5)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"


class CircuitOpenError(Exception):
    """The primary transport was skipped because the breaker is open."""


class EmailCircuitBreaker:
    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        reset_timeout: timedelta = DEFAULT_RESET_TIMEOUT,
        clock: Callable[[], datetime] | None = None,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._failures = 0
        self._last_failure: datetime | None = None

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failures

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return CircuitState.OPEN if self._is_open() else CircuitState.CLOSED

    def allow_request(self) -> bool:
        """Whether the primary transport may be tried now.

        Closes an expired open breaker as a side effect.
        """
        with self._lock:
            if self._failures < self.failure_threshold:
                return True
            if self._cooled_down():
                logger.info("Email circuit breaker closed after cooldown", failures=self._failures)
                self._failures = 0
                self._last_failure = None
                return True
            return False

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            self._last_failure = self._clock()
            if self._failures == self.failure_threshold:
                logger.warning(
                    "Email circuit breaker opened",
                    failures=self._failures,
                    reset_after_seconds=self.reset_timeout.total_seconds(),
                )

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._last_failure = None

    def reset(self) -> None:
        self.record_success()

    def _is_open(self) -> bool:
        return self._failures >= self.failure_threshold and not self._cooled_down()

    def _cooled_down(self) -> bool:
        return self._last_failure is not None and self._clock() - self._last_failure > self.reset_timeout
