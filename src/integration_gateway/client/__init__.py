"""Per-endpoint integration clients and the transports they call through."""

from .base import IntegrationClient, sanitize_headers
from .transports import (
    AccessToken,
    CompanyCamTransport,
    ExternalApiTransport,
    HttpTransport,
    SalesforceTransport,
    TokenProvider,
    Transport,
)

__all__ = [
    "IntegrationClient",
    "sanitize_headers",
    "AccessToken",
    "CompanyCamTransport",
    "ExternalApiTransport",
    "HttpTransport",
    "SalesforceTransport",
    "TokenProvider",
    "Transport",
]
