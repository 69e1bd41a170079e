"""
Integration Manager for the Integration Gateway.

This module provides the registry of integration endpoints and the factory that
builds one IntegrationClient per endpoint. The manager:
- Keeps endpoint configurations keyed by id
- Builds the right transport for each service type through a closed dispatch table
- Forwards every client and breaker event to its own listeners
- Reports per-endpoint health for dashboards and alerting

There is no module-level manager. Construct one during application setup and pass
it to whatever needs it.

Example Usage:
    manager = IntegrationManager()
    manager.register_endpoint(endpoint)
    manager.add_listener(EventType.INTEGRATION_ALERT, page_on_call)

    client = manager.create_client("companycam-photos", Credentials(api_key=api_key))
    result = await client.make_request(IntegrationRequest(method="GET", path="/v2/projects"))
"""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

import httpx

from integration_gateway.circuit_breaker import CircuitBreakerState
from integration_gateway.client.base import IntegrationClient
from integration_gateway.client.transports import (
    CompanyCamTransport,
    ExternalApiTransport,
    SalesforceTransport,
    TokenProvider,
    Transport,
)
from integration_gateway.core.config import Settings
from integration_gateway.core.endpoint_loader import load_endpoint_configs
from integration_gateway.core.events import EventEmitter
from integration_gateway.core.logging import get_logger
from integration_gateway.core.models import EndpointConfig, ServiceType
from integration_gateway.errors.exceptions import ConfigurationError

logger = get_logger(__name__)

# How many of the latest errors count towards an endpoint's health snapshot
HEALTH_RECENT_ERRORS_LIMIT = 5


@dataclass
class Credentials:
    """Credentials handed to a client's transport; which fields matter depends on the service"""
    api_key: Optional[str] = None
    token_provider: Optional[TokenProvider] = None
    headers: Dict[str, str] = field(default_factory=dict)


TransportFactory = Callable[[EndpointConfig, Credentials, Optional[httpx.AsyncClient]], Transport]


def _salesforce_transport(endpoint, credentials, http_client):
    return SalesforceTransport(endpoint, token_provider=credentials.token_provider, http_client=http_client)


def _companycam_transport(endpoint, credentials, http_client):
    return CompanyCamTransport(endpoint, api_key=credentials.api_key, http_client=http_client)


def _external_api_transport(endpoint, credentials, http_client):
    return ExternalApiTransport(endpoint, http_client=http_client, headers=credentials.headers)


TRANSPORT_FACTORIES: Dict[ServiceType, TransportFactory] = {
    ServiceType.SALESFORCE: _salesforce_transport,
    ServiceType.COMPANYCAM: _companycam_transport,
    ServiceType.EXTERNAL_API: _external_api_transport,
}


class IntegrationManager(EventEmitter):
    """
    Registry of endpoints and the clients built for them.

    Args:
        clock: Time source handed to every client's circuit breaker
        sleep: Backoff sleep handed to every client's retry handler
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__()
        self._endpoints: Dict[str, EndpointConfig] = {}
        self._clients: Dict[str, IntegrationClient] = {}
        # Replaced clients may still have requests in flight; their transports close with the manager
        self._retired_clients: List[IntegrationClient] = []
        self._clock = clock
        self._sleep = sleep

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def register_endpoint(self, config: EndpointConfig) -> None:
        """Add or replace an endpoint configuration"""
        self._endpoints[config.id] = config
        logger.info(
            "Registered integration endpoint",
            endpoint_id=config.id,
            service_type=config.service_type.value,
            base_url=config.base_url,
        )

    def load_endpoints(self, config_path: Union[str, Path], settings: Optional[Settings] = None) -> List[EndpointConfig]:
        """
        Register every endpoint defined in a YAML file.

        Returns:
            The endpoints that were registered

        Raises:
            ConfigurationError: If the file can't be parsed
        """
        endpoints = load_endpoint_configs(config_path, settings)
        for endpoint in endpoints:
            self.register_endpoint(endpoint)
        return endpoints

    def get_endpoint(self, endpoint_id: str) -> Optional[EndpointConfig]:
        return self._endpoints.get(endpoint_id)

    def get_all_endpoints(self) -> List[EndpointConfig]:
        return list(self._endpoints.values())

    def create_client(
        self,
        endpoint_id: str,
        credentials: Union[Credentials, Mapping[str, Any], None] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> IntegrationClient:
        """
        Build and register the client for an endpoint.

        Args:
            endpoint_id: Id of a registered endpoint
            credentials: Credentials for the endpoint's service, as Credentials or a mapping
            http_client: Optional shared httpx client for the transport

        Returns:
            The new client; it replaces any client previously created for the endpoint

        Raises:
            ConfigurationError: If the endpoint is unknown or its service type has no transport
        """
        endpoint = self._endpoints.get(endpoint_id)
        if endpoint is None:
            raise ConfigurationError(f"Endpoint {endpoint_id} not found", endpoint_id=endpoint_id)

        factory = TRANSPORT_FACTORIES.get(endpoint.service_type)
        if factory is None:
            raise ConfigurationError(
                f"Unsupported service type: {endpoint.service_type.value}",
                endpoint_id=endpoint_id,
                details={"service_type": endpoint.service_type.value}
            )

        if credentials is None:
            credentials = Credentials()
        elif not isinstance(credentials, Credentials):
            credentials = Credentials(**credentials)

        transport = factory(endpoint, credentials, http_client)
        client = IntegrationClient(endpoint, transport, clock=self._clock, sleep=self._sleep)
        client.forward_to(self)

        previous = self._clients.get(endpoint_id)
        if previous is not None:
            previous.stop_forwarding_to(self)
            self._retired_clients.append(previous)
            logger.info("Replacing existing integration client", endpoint_id=endpoint_id)
        self._clients[endpoint_id] = client

        logger.info(
            "Created integration client",
            endpoint_id=endpoint_id,
            service_type=endpoint.service_type.value,
            transport=type(transport).__name__,
        )
        return client

    def get_client(self, endpoint_id: str) -> Optional[IntegrationClient]:
        return self._clients.get(endpoint_id)

    def get_all_clients(self) -> List[IntegrationClient]:
        return list(self._clients.values())

    def get_health_status(self) -> Dict[str, Dict[str, Any]]:
        """
        Snapshot the health of every client.

        Returns:
            Mapping of endpoint id to breaker stats, recent error count, time of
            the latest error and whether the breaker is CLOSED
        """
        status: Dict[str, Dict[str, Any]] = {}

        for endpoint_id, client in self._clients.items():
            stats = client.get_circuit_breaker_stats()
            recent_errors = client.get_recent_errors(HEALTH_RECENT_ERRORS_LIMIT)

            status[endpoint_id] = {
                "circuit_breaker": stats.model_dump(mode="json"),
                "recent_errors": len(recent_errors),
                "last_error": recent_errors[0].occurred_at if recent_errors else None,
                "healthy": stats.state == CircuitBreakerState.CLOSED,
            }

        return status

    async def aclose(self) -> None:
        """Release the transport of every client, including replaced ones"""
        clients = self._retired_clients + list(self._clients.values())
        self._retired_clients = []
        for client in clients:
            await client.aclose()
        logger.info("Integration manager closed", total_clients=len(clients))
