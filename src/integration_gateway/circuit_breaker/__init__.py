"""
Circuit Breaker module for the Integration Gateway.

This module provides the circuit breaker that protects each integration endpoint
from cascading failures when the third-party service behind it degrades.

The circuit breaker acts as a safety switch that:
- Counts consecutive failed calls
- Blocks calls once the failure threshold is reached (OPEN state)
- Lets trial calls through after the reset timeout (HALF_OPEN state)
- Returns to normal operation after three successful trial calls (CLOSED state)

Example Usage:
    from integration_gateway.circuit_breaker import CircuitBreaker, CircuitOpenError

    breaker = CircuitBreaker("companycam-photos", endpoint.circuit_breaker)
    try:
        photos = await breaker.execute(fetch_photos)
    except CircuitOpenError as e:
        logger.warning(f"Circuit breaker open: {e}")
        return {"error": "service_unavailable", "retry_after": e.retry_after}
"""

from integration_gateway.core.models import CircuitBreakerConfig

from .breaker import CircuitBreaker, CircuitBreakerState, CircuitBreakerStats
from .exceptions import CircuitBreakerError, CircuitOpenError

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerState",
    "CircuitBreakerStats",
    "CircuitBreakerConfig",
    "CircuitOpenError",
    "CircuitBreakerError"
]
