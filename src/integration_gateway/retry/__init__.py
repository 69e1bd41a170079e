"""Retry with exponential backoff for integration calls."""

from integration_gateway.core.models import RetryConfig

from .handler import JITTER_RATIO, RetryContext, RetryHandler

__all__ = [
    "RetryConfig",
    "RetryContext",
    "RetryHandler",
    "JITTER_RATIO",
]
