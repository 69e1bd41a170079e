"""Configuration management for the Integration Gateway."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from integration_gateway.core.models import CircuitBreakerConfig, RetryConfig


class Settings(BaseSettings):
    """Application settings with resilience defaults for every endpoint."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Service identity
    SERVICE_NAME: str = Field(default="integration-gateway", description="Service name")
    SERVICE_VERSION: str = Field(default="1.0.0", description="Service version")

    # Server configuration
    HOST: str = Field(default="127.0.0.1", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or text")

    # Endpoint registry
    ENDPOINTS_FILE: str = Field(
        default="config/integrations.yaml",
        description="Path to the integration endpoint configuration file"
    )
    DEFAULT_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0, le=300.0, description="Per-call timeout")

    # Retry defaults
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1, le=20, description="Hard cap on attempts per call")
    RETRY_BASE_DELAY_SECONDS: float = Field(default=1.0, ge=0, description="Delay before the first retry")
    RETRY_MAX_DELAY_SECONDS: float = Field(default=30.0, ge=0, description="Upper bound for any retry delay")
    RETRY_BACKOFF_MULTIPLIER: float = Field(default=2.0, gt=1.0, description="Exponential backoff factor")
    RETRY_JITTER: bool = Field(default=True, description="Randomize each delay by +/-25%")

    # Circuit breaker defaults
    CIRCUIT_BREAKER_ENABLED: bool = Field(default=True, description="Enable circuit breakers")
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(default=5, ge=1, description="Failures that trip the breaker")
    CIRCUIT_BREAKER_RESET_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0, description="Time OPEN before probing")
    CIRCUIT_BREAKER_MONITORING_WINDOW_SECONDS: float = Field(default=300.0, gt=0, description="Declared monitoring window")

    # Credentials wired by the application factory
    COMPANYCAM_API_KEY: str = Field(default="", description="CompanyCam API key")

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format"""
        valid_formats = ['json', 'text']
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()

    def default_retry_config(self) -> RetryConfig:
        """Create the RetryConfig applied to endpoints that don't override it"""
        return RetryConfig(
            max_attempts=self.RETRY_MAX_ATTEMPTS,
            base_delay=self.RETRY_BASE_DELAY_SECONDS,
            max_delay=self.RETRY_MAX_DELAY_SECONDS,
            backoff_multiplier=self.RETRY_BACKOFF_MULTIPLIER,
            jitter=self.RETRY_JITTER,
        )

    def default_circuit_breaker_config(self) -> CircuitBreakerConfig:
        """Create the CircuitBreakerConfig applied to endpoints that don't override it"""
        return CircuitBreakerConfig(
            enabled=self.CIRCUIT_BREAKER_ENABLED,
            failure_threshold=self.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
            reset_timeout=self.CIRCUIT_BREAKER_RESET_TIMEOUT_SECONDS,
            monitoring_window=self.CIRCUIT_BREAKER_MONITORING_WINDOW_SECONDS,
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings (for dependency injection)"""
    return settings
