"""
Circuit Breaker

Stops calling the completion service after repeated failures and lets a
trial request through once the reset timeout has passed.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Failures before opening circuit
    success_threshold: int = 1  # Successes in half-open to close
    timeout: float = 5.0  # Seconds before attempting half-open
    expected_exception: type = Exception  # Exception type to count as failure


@dataclass
class CircuitBreakerStats:
    """Statistics for circuit breaker."""

    failures: int = 0
    successes: int = 0
    last_failure_time: Optional[float] = None
    state: CircuitState = CircuitState.CLOSED


class CircuitBreakerOpenError(Exception):
    """Exception raised when circuit breaker is open."""

    pass


class CircuitBreaker:
    """
    Circuit breaker for async calls.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: Too many failures, reject requests immediately
    - HALF_OPEN: Testing if service recovered, allow limited requests

    All state changes happen between awaits on a single event loop, so no
    lock is needed.
    """

    def __init__(self, config: Optional[CircuitBreakerConfig] = None, clock: Callable[[], float] = time.monotonic):
        self.config = config or CircuitBreakerConfig()
        self.stats = CircuitBreakerStats()
        self._clock = clock

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Await func with circuit breaker protection.

        Raises:
            CircuitBreakerOpenError: If circuit is open
            Exception: If function call fails
        """
        self._before_call()
        try:
            result = await func(*args, **kwargs)
        except self.config.expected_exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _before_call(self) -> None:
        if self.stats.state != CircuitState.OPEN:
            return
        if self._should_attempt_reset():
            logger.info("Circuit breaker transitioning to HALF_OPEN state")
            self.stats.state = CircuitState.HALF_OPEN
            self.stats.successes = 0
            return
        raise CircuitBreakerOpenError(
            f"Circuit breaker is OPEN after {self.stats.failures} failures"
        )

    def _should_attempt_reset(self) -> bool:
        if self.stats.last_failure_time is None:
            return True
        return self._clock() - self.stats.last_failure_time >= self.config.timeout

    def _on_success(self):
        if self.stats.state == CircuitState.HALF_OPEN:
            self.stats.successes += 1
            if self.stats.successes >= self.config.success_threshold:
                logger.info("Circuit breaker transitioning to CLOSED state")
                self.stats.state = CircuitState.CLOSED
                self.stats.failures = 0
                self.stats.successes = 0
        elif self.stats.state == CircuitState.CLOSED:
            self.stats.failures = 0

    def _on_failure(self):
        self.stats.failures += 1
        self.stats.last_failure_time = self._clock()

        if self.stats.state == CircuitState.HALF_OPEN:
            logger.warning("Circuit breaker transitioning back to OPEN state")
            self.stats.state = CircuitState.OPEN
            self.stats.successes = 0
        elif self.stats.state == CircuitState.CLOSED:
            if self.stats.failures >= self.config.failure_threshold:
                logger.error(f"Circuit breaker opening after {self.stats.failures} failures")
                self.stats.state = CircuitState.OPEN

    def reset(self):
        """Manually reset circuit breaker to CLOSED state."""
        logger.info("Circuit breaker manually reset")
        self.stats = CircuitBreakerStats()

    def get_state(self) -> CircuitState:
        return self.stats.state

    def is_open(self) -> bool:
        return self.stats.state == CircuitState.OPEN
