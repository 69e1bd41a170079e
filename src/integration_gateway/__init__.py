"""
Integration Gateway: resilient clients for third-party service integrations.

Each integration endpoint gets a circuit breaker, bounded retries with
backoff and jitter, and deterministic error classification. Every call returns
an IntegrationResult instead of raising.
"""

from integration_gateway.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerState,
    CircuitBreakerStats,
    CircuitOpenError,
)
from integration_gateway.client import IntegrationClient
from integration_gateway.core.events import EventType, IntegrationEvent
from integration_gateway.core.models import (
    CircuitBreakerConfig,
    EndpointConfig,
    ErrorKind,
    IntegrationError,
    IntegrationRequest,
    IntegrationResult,
    RetryConfig,
    ServiceType,
    Severity,
)
from integration_gateway.errors import ConfigurationError, ErrorClassifier
from integration_gateway.manager import Credentials, IntegrationManager
from integration_gateway.retry import RetryHandler

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitBreakerStats",
    "CircuitOpenError",
    "ConfigurationError",
    "Credentials",
    "EndpointConfig",
    "ErrorClassifier",
    "ErrorKind",
    "EventType",
    "IntegrationClient",
    "IntegrationError",
    "IntegrationEvent",
    "IntegrationManager",
    "IntegrationRequest",
    "IntegrationResult",
    "RetryConfig",
    "RetryHandler",
    "ServiceType",
    "Severity",
]

__version__ = "1.0.0"
