"""Error taxonomy, classification rules and exception hierarchy."""

from .classifier import ErrorClassifier
from .exceptions import (
    ConfigurationError,
    IntegrationGatewayError,
    TransportAuthenticationError,
    TransportConnectionError,
    TransportError,
    TransportTimeoutError,
    UpstreamStatusError,
)

__all__ = [
    "ErrorClassifier",
    "ConfigurationError",
    "IntegrationGatewayError",
    "TransportAuthenticationError",
    "TransportConnectionError",
    "TransportError",
    "TransportTimeoutError",
    "UpstreamStatusError",
]
