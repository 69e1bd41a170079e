"""Tests for IntegrationManager registry, client factory and health reporting."""

import httpx
import pytest

from conftest import ScriptedTransport, make_endpoint
from integration_gateway.client import CompanyCamTransport, ExternalApiTransport, SalesforceTransport
from integration_gateway.core.events import EventType
from integration_gateway.core.models import IntegrationRequest, ServiceType, TransportResponse
from integration_gateway.errors import ConfigurationError, UpstreamStatusError
from integration_gateway.manager import Credentials, IntegrationManager


@pytest.fixture
def manager(fake_clock, recording_sleep):
    return IntegrationManager(clock=fake_clock, sleep=recording_sleep)


def server_error() -> UpstreamStatusError:
    return UpstreamStatusError("HTTP 500", response=TransportResponse(status_code=500))


class TestEndpointRegistry:
    def test_register_and_get(self, manager):
        endpoint = make_endpoint("companycam-photos", service_type=ServiceType.COMPANYCAM)

        manager.register_endpoint(endpoint)

        assert manager.get_endpoint("companycam-photos") is endpoint
        assert manager.get_all_endpoints() == [endpoint]
        assert manager.get_endpoint("missing") is None

    def test_register_replaces_existing(self, manager):
        manager.register_endpoint(make_endpoint("crm", timeout=10.0))
        manager.register_endpoint(make_endpoint("crm", timeout=20.0))

        assert len(manager.get_all_endpoints()) == 1
        assert manager.get_endpoint("crm").timeout == 20.0

    def test_load_endpoints(self, manager, tmp_path):
        config_file = tmp_path / "integrations.yaml"
        config_file.write_text(
            "endpoints:\n"
            "  crm:\n"
            "    service_type: salesforce\n"
            "    base_url: https://crm.example.com\n"
        )

        loaded = manager.load_endpoints(config_file)

        assert [endpoint.id for endpoint in loaded] == ["crm"]
        assert manager.get_endpoint("crm").service_type == ServiceType.SALESFORCE


class TestCreateClient:
    @pytest.mark.parametrize("service_type,transport_class", [
        (ServiceType.SALESFORCE, SalesforceTransport),
        (ServiceType.COMPANYCAM, CompanyCamTransport),
        (ServiceType.EXTERNAL_API, ExternalApiTransport),
    ])
    def test_transport_per_service_type(self, manager, service_type, transport_class):
        manager.register_endpoint(make_endpoint("ep", service_type=service_type))

        client = manager.create_client("ep")

        assert type(client.transport) is transport_class
        assert manager.get_client("ep") is client

    def test_unknown_endpoint(self, manager):
        with pytest.raises(ConfigurationError, match="Endpoint missing not found") as exc_info:
            manager.create_client("missing")

        assert exc_info.value.endpoint_id == "missing"

    def test_unsupported_service_type(self, manager):
        manager.register_endpoint(make_endpoint("secrets", service_type=ServiceType.AWS_SECRETS))

        with pytest.raises(ConfigurationError, match="Unsupported service type: aws_secrets"):
            manager.create_client("secrets")

        assert manager.get_client("secrets") is None

    @pytest.mark.asyncio
    async def test_credentials_mapping(self, manager):
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200, json={"ok": True})

        manager.register_endpoint(make_endpoint("photos", service_type=ServiceType.COMPANYCAM))
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        client = manager.create_client("photos", {"api_key": "cc-key"}, http_client=http_client)
        result = await client.make_request(IntegrationRequest(path="/v2/projects"))

        assert result.success is True
        assert seen == ["Bearer cc-key"]
        await http_client.aclose()

    def test_external_api_headers(self, manager):
        manager.register_endpoint(make_endpoint("weather"))

        client = manager.create_client("weather", Credentials(headers={"X-Api-Key": "w"}))

        assert client.transport._default_headers == {"X-Api-Key": "w"}

    def test_create_client_replaces_previous(self, manager):
        manager.register_endpoint(make_endpoint("ep"))

        first = manager.create_client("ep")
        second = manager.create_client("ep")

        assert first is not second
        assert manager.get_client("ep") is second
        assert manager.get_all_clients() == [second]

    @pytest.mark.asyncio
    async def test_replaced_client_is_detached_and_closed(self, manager):
        manager.register_endpoint(make_endpoint("ep"))
        received = []
        manager.add_listener(EventType.STATE_CHANGE, received.append)
        first = manager.create_client("ep")
        first.transport = ScriptedTransport("ok")
        second = manager.create_client("ep")
        second.transport = ScriptedTransport("ok")

        first.circuit_breaker.emit(EventType.STATE_CHANGE, {"endpoint_id": "ep", "state": "open"})
        assert received == []
        second.circuit_breaker.emit(EventType.STATE_CHANGE, {"endpoint_id": "ep", "state": "open"})
        assert len(received) == 1

        await manager.aclose()

        assert first.transport.closed is True
        assert second.transport.closed is True

    def test_clients_share_manager_clock(self, manager, fake_clock):
        manager.register_endpoint(make_endpoint("ep"))

        client = manager.create_client("ep")

        assert client.circuit_breaker._clock is fake_clock


class TestManagerEvents:
    @pytest.mark.asyncio
    async def test_client_events_reach_manager(self, manager):
        manager.register_endpoint(make_endpoint("ep", failure_threshold=1))
        client = manager.create_client("ep")
        client.transport = ScriptedTransport(server_error())
        received = []
        for event_type in (EventType.INTEGRATION_ERROR, EventType.CIRCUIT_OPEN, EventType.STATE_CHANGE):
            manager.add_listener(event_type, received.append)

        await client.make_request(IntegrationRequest(path="/x"))

        assert [event.event_type for event in received] == [
            EventType.INTEGRATION_ERROR,
            EventType.STATE_CHANGE,
            EventType.CIRCUIT_OPEN,
        ]


class TestHealthStatus:
    def test_empty(self, manager):
        assert manager.get_health_status() == {}

    @pytest.mark.asyncio
    async def test_reports_each_client(self, manager):
        manager.register_endpoint(make_endpoint("good"))
        manager.register_endpoint(make_endpoint("bad", failure_threshold=1))
        good = manager.create_client("good")
        bad = manager.create_client("bad")
        good.transport = ScriptedTransport({"ok": True})
        bad.transport = ScriptedTransport(server_error())

        await good.make_request(IntegrationRequest(path="/x"))
        await bad.make_request(IntegrationRequest(path="/x"))

        status = manager.get_health_status()

        assert status["good"]["healthy"] is True
        assert status["good"]["recent_errors"] == 0
        assert status["good"]["last_error"] is None
        assert status["good"]["circuit_breaker"]["state"] == "closed"

        assert status["bad"]["healthy"] is False
        assert status["bad"]["recent_errors"] == 1
        assert status["bad"]["last_error"] == bad.get_recent_errors()[0].occurred_at
        assert status["bad"]["circuit_breaker"]["state"] == "open"
        assert status["bad"]["circuit_breaker"]["failures"] == 1

    @pytest.mark.asyncio
    async def test_recent_errors_capped(self, manager):
        manager.register_endpoint(make_endpoint("flaky", failure_threshold=50))
        client = manager.create_client("flaky")
        client.transport = ScriptedTransport(server_error())

        for _ in range(8):
            await client.make_request(IntegrationRequest(path="/x"))

        assert manager.get_health_status()["flaky"]["recent_errors"] == 5


class TestManagerLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_closes_clients(self, fake_clock, recording_sleep):
        transports = []
        async with IntegrationManager(clock=fake_clock, sleep=recording_sleep) as manager:
            for endpoint_id in ("a", "b"):
                manager.register_endpoint(make_endpoint(endpoint_id))
                client = manager.create_client(endpoint_id)
                client.transport = ScriptedTransport()
                transports.append(client.transport)

        assert all(transport.closed for transport in transports)
