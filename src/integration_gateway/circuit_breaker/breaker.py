"""
Core Circuit Breaker implementation for the Integration Gateway.

This module contains the CircuitBreaker class that guards calls to a single
integration endpoint from cascading failures.

The circuit breaker operates as a state machine with three states:
- CLOSED: Normal operation, requests flow through
- OPEN: Too many failures, requests are rejected without being attempted
- HALF_OPEN: Reset timeout elapsed, trial requests test whether the service recovered

Failures are counted consecutively since the last success, close or reset; the
configured monitoring window does not age them out. State bookkeeping is
serialized with an asyncio lock that is never held while the protected
operation runs.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel

from integration_gateway.core.events import EventEmitter, EventType
from integration_gateway.core.models import CircuitBreakerConfig

from .exceptions import CircuitOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Consecutive HALF_OPEN successes required before the breaker closes again
HALF_OPEN_SUCCESS_THRESHOLD = 3


class CircuitBreakerState(str, Enum):
    """
    Circuit breaker state enumeration.

    States:
        CLOSED: Normal operation - requests pass through to the endpoint
        OPEN: Failing fast - requests are rejected immediately
        HALF_OPEN: Recovery testing - requests test whether the endpoint recovered
    """
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerStats(BaseModel):
    """Read-only snapshot of a breaker for health checks and dashboards"""
    endpoint_id: str
    state: CircuitBreakerState
    failures: int
    successes: int
    last_failure_time: float


class CircuitBreaker(EventEmitter):
    """
    Async-safe circuit breaker protecting one integration endpoint.

    Events:
        state_change: ``{"endpoint_id", "state"}`` on every transition
        circuit_open: ``{"endpoint_id", "failures"}`` whenever the breaker trips
        reset: ``{"endpoint_id"}`` after a manual reset

    Usage:
        breaker = CircuitBreaker("salesforce-crm", CircuitBreakerConfig(failure_threshold=3))
        try:
            result = await breaker.execute(call_salesforce)
        except CircuitOpenError as e:
            schedule_retry(e.retry_after)
    """

    def __init__(self,
                 endpoint_id: str,
                 config: Optional[CircuitBreakerConfig] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize circuit breaker.

        Args:
            endpoint_id: Identifier of the endpoint this breaker protects
            config: Configuration object, uses defaults if not provided
            clock: Returns the current time in seconds; injectable for tests
        """
        super().__init__()
        self.endpoint_id = endpoint_id
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitBreakerState.CLOSED
        self._lock = asyncio.Lock()

        self.failures = 0
        self.successes = 0
        self.last_failure_time = 0.0

        logger.info(
            "Circuit breaker initialized",
            extra={
                "endpoint_id": self.endpoint_id,
                "config": {
                    "enabled": self.config.enabled,
                    "failure_threshold": self.config.failure_threshold,
                    "reset_timeout": self.config.reset_timeout
                }
            }
        )

    @property
    def state(self) -> CircuitBreakerState:
        return self._state

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``operation`` if the breaker permits it, recording the outcome.

        Args:
            operation: Zero-argument coroutine function to protect

        Returns:
            Whatever ``operation`` returns

        Raises:
            CircuitOpenError: If the breaker is OPEN and the reset timeout hasn't elapsed
            Exception: Any exception raised by ``operation`` (after recording the failure)
        """
        if not self.config.enabled:
            return await operation()

        async with self._lock:
            self._before_call()

        try:
            result = await operation()
        except Exception as e:
            async with self._lock:
                self._on_failure(e)
            raise

        async with self._lock:
            self._on_success()
        return result

    def _before_call(self):
        """
        Reject the call while OPEN, or move to HALF_OPEN once the reset timeout passed.
        Must be called while holding the lock.
        """
        if self._state != CircuitBreakerState.OPEN:
            return

        elapsed = self._clock() - self.last_failure_time
        if elapsed < self.config.reset_timeout:
            retry_after = self.config.reset_timeout - elapsed
            logger.warning(
                "Circuit breaker blocking call - circuit is open",
                extra={
                    "endpoint_id": self.endpoint_id,
                    "failures": self.failures,
                    "retry_after": retry_after
                }
            )
            raise CircuitOpenError(
                self.endpoint_id,
                retry_after=retry_after,
                failures=self.failures,
                last_failure_time=self.last_failure_time
            )

        self._transition(CircuitBreakerState.HALF_OPEN)
        logger.info(
            "Circuit breaker entering half-open state for recovery testing",
            extra={"endpoint_id": self.endpoint_id, "required_successes": HALF_OPEN_SUCCESS_THRESHOLD}
        )

    def _on_success(self):
        self.failures = 0
        self.successes += 1

        if self._state == CircuitBreakerState.HALF_OPEN and self.successes >= HALF_OPEN_SUCCESS_THRESHOLD:
            self.successes = 0
            self._transition(CircuitBreakerState.CLOSED)
            logger.info(
                "Circuit breaker closed - endpoint recovered",
                extra={"endpoint_id": self.endpoint_id}
            )

    def _on_failure(self, error: Exception):
        self.failures += 1
        self.successes = 0
        self.last_failure_time = self._clock()

        logger.warning(
            "Circuit breaker recorded failure",
            extra={
                "endpoint_id": self.endpoint_id,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "failures": self.failures,
                "state": self._state.value
            }
        )

        # Any HALF_OPEN failure reopens, even though earlier HALF_OPEN successes zeroed the count.
        # Calls already in flight when the breaker tripped only refresh last_failure_time.
        should_open = (
            self._state == CircuitBreakerState.HALF_OPEN
            or self.failures >= self.config.failure_threshold
        )
        if should_open and self._state != CircuitBreakerState.OPEN:
            self._transition(CircuitBreakerState.OPEN)
            self.emit(EventType.CIRCUIT_OPEN, {"endpoint_id": self.endpoint_id, "failures": self.failures})
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "endpoint_id": self.endpoint_id,
                    "failures": self.failures,
                    "reset_timeout": self.config.reset_timeout
                }
            )

    def _transition(self, new_state: CircuitBreakerState):
        self._state = new_state
        self.emit(EventType.STATE_CHANGE, {"endpoint_id": self.endpoint_id, "state": new_state.value})

    def get_stats(self) -> CircuitBreakerStats:
        """
        Get a snapshot of the breaker's state and counters.

        Returns:
            CircuitBreakerStats detached from the live breaker
        """
        return CircuitBreakerStats(
            endpoint_id=self.endpoint_id,
            state=self._state,
            failures=self.failures,
            successes=self.successes,
            last_failure_time=self.last_failure_time,
        )

    def reset(self):
        """
        Manually reset circuit breaker to closed state.

        This is useful for administrative purposes or when you know
        the endpoint has been fixed.
        """
        self._state = CircuitBreakerState.CLOSED
        self.failures = 0
        self.successes = 0
        self.last_failure_time = 0.0
        self.emit(EventType.RESET, {"endpoint_id": self.endpoint_id})

        logger.info(
            "Circuit breaker manually reset to closed state",
            extra={"endpoint_id": self.endpoint_id}
        )
