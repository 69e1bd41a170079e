"""
HTTP transports for the integration services the gateway supports.

A transport performs exactly one call against a remote service and translates
whatever goes wrong into the TransportError hierarchy. It does not retry, does
not track failures and does not log errors: IntegrationClient does all of that.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, runtime_checkable
from urllib.parse import urljoin

import httpx

from integration_gateway.core.logging import get_logger
from integration_gateway.core.models import EndpointConfig, IntegrationRequest, TransportResponse
from integration_gateway.errors.exceptions import (
    TransportAuthenticationError,
    TransportConnectionError,
    TransportTimeoutError,
    UpstreamStatusError,
)

logger = get_logger(__name__)


@runtime_checkable
class Transport(Protocol):
    """The capability an IntegrationClient needs from a concrete service."""

    async def execute_request(
        self,
        request: IntegrationRequest,
        request_id: str,
        timeout: Optional[float] = None,
    ) -> Any:
        ...

    async def aclose(self) -> None:
        ...


@dataclass(frozen=True)
class AccessToken:
    """Bearer token handed out by a TokenProvider"""
    access_token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return bool(self.access_token) and now < self.expires_at


# Supplied by the surrounding application, e.g. an OAuth2 client backed by a secrets store
TokenProvider = Callable[[], Awaitable[AccessToken]]


class HttpTransport:
    """Sends IntegrationRequests to an endpoint over httpx with connection pooling"""

    def __init__(
        self,
        endpoint: EndpointConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.endpoint = endpoint
        self._http_client = http_client
        self._owns_client = http_client is None
        self._default_headers = dict(headers or {})

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.endpoint.timeout),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                follow_redirects=True,
                max_redirects=3
            )
        return self._http_client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport created it"""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def authenticate(self) -> Dict[str, str]:
        """Headers proving who we are; subclasses with credentials override this"""
        return {}

    def build_url(self, path: str) -> str:
        return urljoin(self.endpoint.base_url.rstrip('/') + '/', path.lstrip('/'))

    async def execute_request(
        self,
        request: IntegrationRequest,
        request_id: str,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Perform one HTTP call for ``request``.

        Args:
            request: The request to send
            request_id: Correlation id, sent as X-Request-ID
            timeout: Deadline in seconds, defaults to the endpoint timeout

        Returns:
            Decoded JSON body for JSON responses, text otherwise, None when empty

        Raises:
            TransportTimeoutError: If the deadline is exceeded
            TransportConnectionError: If the endpoint can't be reached
            TransportAuthenticationError: If credentials can't be obtained
            UpstreamStatusError: If the endpoint answers with a non-2xx status
        """
        request_timeout = timeout or self.endpoint.timeout
        headers = {
            "Content-Type": "application/json",
            "X-Request-ID": request_id,
            **self._default_headers,
            **(await self.authenticate()),
            **request.headers,
        }
        url = self.build_url(request.path)

        logger.debug(
            "Sending integration request",
            endpoint_id=self.endpoint.id,
            request_id=request_id,
            method=request.method,
            url=url,
            timeout=request_timeout,
        )

        try:
            response = await self.http_client.request(
                method=request.method,
                url=url,
                headers=headers,
                json=request.body,
                params=request.params,
                timeout=request_timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportTimeoutError(
                f"Request timed out after {request_timeout}s",
                timeout_seconds=request_timeout
            ) from e
        except httpx.TransportError as e:
            raise TransportConnectionError(f"Connection error: {e}") from e

        if not response.is_success:
            raise UpstreamStatusError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                response=TransportResponse(
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    body=self._decode(response),
                )
            )

        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "").lower()
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                logger.warning("Failed to parse JSON response", status_code=response.status_code)
        return response.text


class ExternalApiTransport(HttpTransport):
    """Generic third-party HTTP API; any credentials travel as static headers"""


class CompanyCamTransport(HttpTransport):
    """CompanyCam photo API authenticated with a static API key"""

    def __init__(
        self,
        endpoint: EndpointConfig,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(endpoint, http_client=http_client)
        self._api_key = api_key

    async def authenticate(self) -> Dict[str, str]:
        if not self._api_key:
            raise TransportAuthenticationError(
                "CompanyCam authentication failed: no API key configured",
                auth_method="api_key"
            )
        return {"Authorization": f"Bearer {self._api_key}"}


class SalesforceTransport(HttpTransport):
    """Salesforce REST API authenticated with short-lived OAuth2 bearer tokens"""

    def __init__(
        self,
        endpoint: EndpointConfig,
        token_provider: Optional[TokenProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        refresh_margin: timedelta = timedelta(seconds=30),
    ):
        super().__init__(endpoint, http_client=http_client)
        self._token_provider = token_provider
        self._refresh_margin = refresh_margin
        self._token: Optional[AccessToken] = None
        self._token_lock = asyncio.Lock()

    async def authenticate(self) -> Dict[str, str]:
        token = await self._ensure_authenticated()
        return {"Authorization": f"Bearer {token.access_token}"}

    async def _ensure_authenticated(self) -> AccessToken:
        async with self._token_lock:
            now = datetime.now(timezone.utc) + self._refresh_margin
            if self._token is not None and self._token.is_valid(now):
                return self._token

            if self._token_provider is None:
                raise TransportAuthenticationError(
                    "Salesforce authentication failed: no token provider configured",
                    auth_method="oauth2"
                )

            try:
                self._token = await self._token_provider()
            except Exception as e:
                raise TransportAuthenticationError(
                    f"Failed to authenticate with Salesforce: {e}",
                    auth_method="oauth2"
                ) from e

            logger.info(
                "Obtained Salesforce access token",
                endpoint_id=self.endpoint.id,
                expires_at=self._token.expires_at.isoformat(),
            )
            return self._token
