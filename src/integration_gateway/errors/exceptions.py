"""
Integration Gateway Exception Classes

Custom exceptions raised while configuring endpoints and while talking to the
remote services behind them. Transport errors never leave IntegrationClient:
they are classified and reported through IntegrationResult instead.
"""

from typing import Any, Dict, Optional

from integration_gateway.core.models import TransportResponse


class IntegrationGatewayError(Exception):
    """Base exception for all Integration Gateway errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(IntegrationGatewayError):
    """Raised when an endpoint or client cannot be configured."""

    def __init__(
        self,
        message: str,
        endpoint_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.endpoint_id = endpoint_id


class TransportError(IntegrationGatewayError):
    """Raised when a transport call to a remote service fails."""

    def __init__(
        self,
        message: str,
        response: Optional[TransportResponse] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.response = response
        self.error_code = error_code


class TransportTimeoutError(TransportError):
    """Raised when a call exceeds its per-attempt deadline."""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code="timeout", details=details)
        self.timeout_seconds = timeout_seconds


class TransportConnectionError(TransportError):
    """Raised when the remote service can't be reached at all."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="connection_error", details=details)


class TransportAuthenticationError(TransportError):
    """Raised when credentials are missing or can't be obtained before a call."""

    def __init__(
        self,
        message: str,
        auth_method: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code="authentication_error", details=details)
        self.auth_method = auth_method


class UpstreamStatusError(TransportError):
    """Raised when the remote service answers with a non-2xx status."""

    def __init__(self, message: str, response: TransportResponse):
        super().__init__(message, response=response, error_code=str(response.status_code))

    @property
    def status_code(self) -> int:
        return self.response.status_code
