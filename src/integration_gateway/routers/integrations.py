"""
Integrations Router

FastAPI router backing the integration monitoring dashboards.
Exposes endpoint health, recent errors and the operator actions that
recover an integration (resetting its breaker, resolving or clearing errors).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..client import IntegrationClient
from ..manager import IntegrationManager
from .models import ActionResponse, ErrorListResponse, HealthStatusResponse

logger = logging.getLogger(__name__)

integrations_router = APIRouter(prefix="/integrations", tags=["Integrations"])


async def get_integration_manager(request: Request) -> IntegrationManager:
    """
    Dependency injection for the integration manager from app state
    """
    manager = getattr(request.app.state, "integration_manager", None)
    if manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Integration manager not initialized"
        )
    return manager


def _require_client(manager: IntegrationManager, endpoint_id: str) -> IntegrationClient:
    client = manager.get_client(endpoint_id)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No integration client for endpoint '{endpoint_id}'"
        )
    return client


@integrations_router.get("/health", response_model=HealthStatusResponse)
async def get_health_status(manager: IntegrationManager = Depends(get_integration_manager)):
    """Health of every integration endpoint."""
    endpoints = manager.get_health_status()
    return HealthStatusResponse(
        healthy=all(entry["healthy"] for entry in endpoints.values()),
        endpoints=endpoints
    )


@integrations_router.get("/{endpoint_id}/errors", response_model=ErrorListResponse)
async def list_recent_errors(
    endpoint_id: str,
    limit: int = Query(default=10, ge=1, le=500),
    manager: IntegrationManager = Depends(get_integration_manager)
):
    """Recent errors of one endpoint, most recent first."""
    client = _require_client(manager, endpoint_id)
    return ErrorListResponse(endpoint_id=endpoint_id, errors=client.get_recent_errors(limit))


@integrations_router.delete("/{endpoint_id}/errors", response_model=ActionResponse)
async def clear_errors(endpoint_id: str, manager: IntegrationManager = Depends(get_integration_manager)):
    """Drop every logged error of one endpoint."""
    client = _require_client(manager, endpoint_id)
    client.clear_error_log()
    logger.info("Error log cleared", extra={"endpoint_id": endpoint_id})
    return ActionResponse(endpoint_id=endpoint_id, status="cleared", message="Error log cleared")


@integrations_router.post("/{endpoint_id}/errors/{error_id}/resolve", response_model=ActionResponse)
async def resolve_error(
    endpoint_id: str,
    error_id: str,
    manager: IntegrationManager = Depends(get_integration_manager)
):
    """Mark one logged error as resolved."""
    client = _require_client(manager, endpoint_id)
    if not client.resolve_error(error_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Error '{error_id}' not found for endpoint '{endpoint_id}'"
        )
    return ActionResponse(endpoint_id=endpoint_id, status="resolved", message=f"Error '{error_id}' resolved")


@integrations_router.post("/{endpoint_id}/circuit-breaker/reset", response_model=ActionResponse)
async def reset_circuit_breaker(endpoint_id: str, manager: IntegrationManager = Depends(get_integration_manager)):
    """Force an endpoint's circuit breaker back to CLOSED."""
    client = _require_client(manager, endpoint_id)
    previous_state = client.get_circuit_breaker_stats().state
    client.reset_circuit_breaker()
    logger.warning(
        "Circuit breaker reset by operator",
        extra={"endpoint_id": endpoint_id, "previous_state": previous_state.value}
    )
    return ActionResponse(
        endpoint_id=endpoint_id,
        status="reset",
        message=f"Circuit breaker reset from {previous_state.value} to closed"
    )
