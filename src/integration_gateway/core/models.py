"""
Shared configuration and result models for the Integration Gateway.

Endpoint configuration is immutable once built: every model that describes how an
endpoint is called is frozen and rejects unknown fields. Records produced while
calling an endpoint (IntegrationError, IntegrationResult) are plain models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

T = TypeVar("T")


class ServiceType(str, Enum):
    """Closed set of third-party services the gateway knows how to call."""
    SALESFORCE = "salesforce"
    COMPANYCAM = "companycam"
    AWS_SECRETS = "aws_secrets"
    EXTERNAL_API = "external_api"


class ErrorKind(str, Enum):
    """Classification assigned to every failed call."""
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    AUTHENTICATION_ERROR = "authentication_error"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    VALIDATION_ERROR = "validation_error"


class Severity(str, Enum):
    """Operator-facing severity of an error kind."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RetryConfig(BaseModel):
    """Retry policy for a single endpoint. Delays are in seconds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(default=3, ge=1, description="Hard cap on attempts per call")
    base_delay: float = Field(default=1.0, ge=0, description="Delay before the first retry")
    max_delay: float = Field(default=30.0, ge=0, description="Upper bound for any single delay")
    backoff_multiplier: float = Field(default=2.0, gt=1.0, description="Growth factor between delays")
    jitter: bool = Field(default=True, description="Perturb each delay by up to +/-25%")

    @model_validator(mode='after')
    def validate_delay_bounds(self):
        """max_delay caps the curve, so it can't sit below its starting point"""
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self


class CircuitBreakerConfig(BaseModel):
    """Circuit breaker policy for a single endpoint. Durations are in seconds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = Field(default=True, description="When false the breaker is a passthrough")
    failure_threshold: int = Field(default=5, ge=1, description="Consecutive failures that trip the breaker")
    reset_timeout: float = Field(default=60.0, gt=0, description="Minimum time OPEN before a trial call")
    # Accepted for compatibility with existing endpoint files; failure counting is not windowed.
    monitoring_window: float = Field(default=300.0, gt=0, description="Declared monitoring window")


class EndpointConfig(BaseModel):
    """Configuration for one external service endpoint"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Unique endpoint identifier")
    name: str = Field(..., min_length=1, description="Human-readable endpoint name")
    service_type: ServiceType = Field(..., description="Which service variant to construct")
    base_url: str = Field(..., description="Base address every request path is joined to")
    timeout: float = Field(default=30.0, gt=0, le=300.0, description="Per-attempt timeout in seconds")
    retry: RetryConfig = Field(default_factory=RetryConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        if not (v.startswith('http://') or v.startswith('https://')):
            raise ValueError("base_url must start with http:// or https://")
        return v


class IntegrationRequest(BaseModel):
    """An outbound call against an endpoint"""

    method: str = Field(default="GET", pattern="^(GET|POST|PUT|PATCH|DELETE)$")
    path: str = Field(..., description="Path relative to the endpoint base_url")
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = Field(default=None, description="JSON-serializable request body")
    params: Optional[Dict[str, Any]] = Field(default=None, description="Query parameters")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Caller context, never sent upstream")


class TransportResponse(BaseModel):
    """What a transport saw from the remote side before failing"""
    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None


class IntegrationError(BaseModel):
    """Structured record of a failed call attempt."""

    id: str = Field(..., description="Originating request id")
    endpoint_id: str
    error_type: ErrorKind
    error_code: Optional[str] = None
    message: str
    severity: Severity
    request_data: Dict[str, Any] = Field(default_factory=dict, description="Sanitized request snapshot")
    response_data: Optional[Dict[str, Any]] = Field(default=None, description="Sanitized response snapshot")
    retry_count: int = Field(default=0, ge=0, description="Zero-based attempt index at failure time")
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved: bool = False
    resolved_at: Optional[datetime] = None


class IntegrationResult(BaseModel, Generic[T]):
    """
    Outcome of IntegrationClient.make_request.

    Exactly one of ``data`` (on success) or ``error`` (on failure) is meaningful;
    failures are reported here rather than raised.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[IntegrationError] = None
    attempts: int = Field(default=0, ge=0)
    total_time: float = Field(default=0.0, ge=0, description="Elapsed seconds for the whole call")

    @model_validator(mode='after')
    def validate_outcome(self):
        if self.success and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("A failed result must carry an error")
        if not self.success and self.data is not None:
            raise ValueError("A failed result cannot carry data")
        return self

    @classmethod
    def ok(cls, data: Any, attempts: int, total_time: float) -> "IntegrationResult":
        return cls(success=True, data=data, attempts=attempts, total_time=total_time)

    @classmethod
    def failed(cls, error: IntegrationError, attempts: int, total_time: float) -> "IntegrationResult":
        return cls(success=False, error=error, attempts=attempts, total_time=total_time)
