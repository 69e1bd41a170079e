"""
Monitoring API Models

Pydantic response models for the integration monitoring endpoints.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from integration_gateway.circuit_breaker import CircuitBreakerStats
from integration_gateway.core.models import IntegrationError


class EndpointHealth(BaseModel):
    """Health snapshot of one integration endpoint"""
    circuit_breaker: CircuitBreakerStats = Field(..., description="Circuit breaker snapshot")
    recent_errors: int = Field(..., description="Errors among the latest few calls")
    last_error: Optional[datetime] = Field(default=None, description="When the latest error occurred")
    healthy: bool = Field(..., description="True when the circuit breaker is closed")


class HealthStatusResponse(BaseModel):
    """Response model for the aggregated integration health"""
    healthy: bool = Field(..., description="True when every endpoint is healthy")
    endpoints: Dict[str, EndpointHealth] = Field(default_factory=dict)


class ErrorListResponse(BaseModel):
    """Response model for an endpoint's recent errors"""
    endpoint_id: str
    errors: List[IntegrationError] = Field(default_factory=list, description="Most recent first")


class ActionResponse(BaseModel):
    """Response model for operator actions"""
    endpoint_id: str = Field(..., description="Endpoint the action applied to")
    status: str = Field(..., description="Action status")
    message: str = Field(..., description="Status message")


class HealthResponse(BaseModel):
    """Health check response format."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    timestamp: str = Field(..., description="Health check timestamp")
    version: Optional[str] = Field(default=None, description="Service version")


__all__ = [
    "EndpointHealth",
    "HealthStatusResponse",
    "ErrorListResponse",
    "ActionResponse",
    "HealthResponse",
]
