"""
Circuit Breaker exceptions for the Integration Gateway.

This module defines the exceptions raised by the circuit breaker when it refuses
to let a call through.
"""

from typing import Any, Dict, Optional

from integration_gateway.errors.exceptions import IntegrationGatewayError


class CircuitBreakerError(IntegrationGatewayError):
    """
    Base exception class for circuit breaker related errors.

    Carries the endpoint the breaker protects so callers and logs can tell
    which integration is degraded.
    """

    def __init__(self, message: str, endpoint_id: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        """
        Initialize circuit breaker error.

        Args:
            message: Human-readable error description
            endpoint_id: Identifier of the endpoint the breaker protects
            context: Additional context information for debugging
        """
        super().__init__(message, details=context)
        self.endpoint_id = endpoint_id
        self.context = self.details

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses and logging.

        Returns:
            Dictionary representation of the error
        """
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "endpoint_id": self.endpoint_id,
            "context": self.context
        }


class CircuitOpenError(CircuitBreakerError):
    """
    Raised when the circuit breaker is OPEN and blocking calls.

    The protected operation was not invoked. ``retry_after`` tells the caller
    how long until the breaker will let a HALF_OPEN trial call through.

    Attributes:
        retry_after: Seconds until the breaker may transition to HALF_OPEN
        failures: Consecutive failures recorded when the call was rejected
        last_failure_time: Unix timestamp of the most recent failure
    """

    def __init__(self,
                 endpoint_id: str,
                 retry_after: float = 0.0,
                 failures: int = 0,
                 last_failure_time: Optional[float] = None):
        # The endpoint id stays out of the message so it can't sway message-based classification
        super().__init__(
            f"Circuit breaker is OPEN; retry after {max(0.0, retry_after):.1f}s", endpoint_id
        )
        self.retry_after = max(0.0, retry_after)
        self.failures = failures
        self.last_failure_time = last_failure_time

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary with circuit breaker specific information.

        Returns:
            Extended dictionary with circuit breaker state details
        """
        base_dict = super().to_dict()
        base_dict.update({
            "error": "circuit_open",
            "retry_after_seconds": self.retry_after,
            "retry_after_ms": int(self.retry_after * 1000),
            "failures": self.failures,
            "last_failure_time": self.last_failure_time,
        })
        return base_dict
