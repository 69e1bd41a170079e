"""Main entry point for the Integration Gateway application."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI

from integration_gateway.core.config import Settings, get_settings
from integration_gateway.core.events import EventType, IntegrationEvent
from integration_gateway.core.logging import setup_logging
from integration_gateway.core.models import ServiceType
from integration_gateway.manager import Credentials, IntegrationManager
from integration_gateway.routers import integrations_router
from integration_gateway.routers.models import HealthResponse

logger = logging.getLogger(__name__)


def _log_alert(event: IntegrationEvent) -> None:
    error = event.payload["error"]
    logger.error(
        "Integration alert",
        extra={
            "endpoint_id": error.endpoint_id,
            "error_type": error.error_type.value,
            "severity": event.payload["severity"].value,
            "retry_count": error.retry_count,
            "error_message": error.message
        }
    )


def _log_circuit_open(event: IntegrationEvent) -> None:
    logger.warning("Circuit breaker opened", extra=dict(event.payload))


def build_integration_manager(settings: Settings) -> IntegrationManager:
    """
    Create the integration manager, register the configured endpoints and build
    a client for every endpoint whose service type has a transport.
    """
    manager = IntegrationManager()
    manager.add_listener(EventType.INTEGRATION_ALERT, _log_alert)
    manager.add_listener(EventType.CIRCUIT_OPEN, _log_circuit_open)

    for endpoint in manager.load_endpoints(settings.ENDPOINTS_FILE, settings):
        if endpoint.service_type == ServiceType.AWS_SECRETS:
            logger.info(f"Skipping client for endpoint {endpoint.id}: no transport for aws_secrets")
            continue
        credentials = Credentials()
        if endpoint.service_type == ServiceType.COMPANYCAM:
            credentials.api_key = settings.COMPANYCAM_API_KEY or None
        manager.create_client(endpoint.id, credentials)

    return manager


def create_app(
    settings: Optional[Settings] = None,
    manager: Optional[IntegrationManager] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings, defaults to the environment-derived settings
        manager: Pre-built manager; when omitted one is built from ENDPOINTS_FILE at startup
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan management
        Handles startup and shutdown procedures
        """
        setup_logging(settings)
        logger.info("Starting Integration Gateway...")

        app.state.integration_manager = manager or build_integration_manager(settings)

        logger.info(
            "Gateway configuration",
            extra={
                "host": settings.HOST,
                "port": settings.PORT,
                "debug": settings.DEBUG,
                "log_level": settings.LOG_LEVEL,
                "endpoints_file": settings.ENDPOINTS_FILE,
                "clients": len(app.state.integration_manager.get_all_clients())
            }
        )

        yield

        logger.info("Shutting down Integration Gateway...")
        await app.state.integration_manager.aclose()
        app.state.integration_manager = None

    app = FastAPI(
        title="Integration Gateway",
        description="Resilient third-party integrations with circuit breaking and retries",
        version=settings.SERVICE_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service=settings.SERVICE_NAME,
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=settings.SERVICE_VERSION
        )

    app.include_router(integrations_router)
    return app


def run() -> None:
    """Run the gateway with uvicorn"""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "integration_gateway.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
