"""
Bounded retry with exponential backoff and jitter.

RetryHandler re-runs a failing operation up to ``max_attempts`` times. Whether a
failure is worth retrying is decided by ErrorClassifier: authentication and
validation failures are surfaced immediately, everything else is retried after
a backoff delay. There is never a delay after the final attempt.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from integration_gateway.core.logging import get_logger
from integration_gateway.core.models import RetryConfig
from integration_gateway.errors.classifier import ErrorClassifier

logger = get_logger(__name__)

T = TypeVar("T")

# Jitter perturbs a delay by at most this fraction of it, in either direction
JITTER_RATIO = 0.25


@dataclass(frozen=True)
class RetryContext:
    """Identifies the call being retried in logs"""
    endpoint_id: str
    request_id: str


class RetryHandler:
    """
    Executes an async operation with bounded retries.

    Args:
        config: Retry policy of the endpoint
        sleep: Coroutine used to wait between attempts; injectable for tests
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep

    async def execute(self, operation: Callable[[], Awaitable[T]], context: RetryContext) -> T:
        """
        Run ``operation`` until it succeeds, fails non-retryably or runs out of attempts.

        Args:
            operation: Zero-argument coroutine function to run
            context: Endpoint and request ids for logging

        Returns:
            The first successful result of ``operation``

        Raises:
            Exception: The last error raised by ``operation``
        """
        last_error: Optional[Exception] = None
        attempt = 0

        while attempt < self.config.max_attempts:
            try:
                return await operation()
            except Exception as e:
                last_error = e
                attempt += 1

                if not ErrorClassifier.is_retryable(e):
                    logger.info(
                        "Not retrying non-retryable error",
                        endpoint_id=context.endpoint_id,
                        request_id=context.request_id,
                        attempt=attempt,
                        error=str(e),
                    )
                    raise

                if attempt < self.config.max_attempts:
                    delay = self.calculate_delay(attempt)
                    logger.warning(
                        f"Retry attempt {attempt}/{self.config.max_attempts} in {delay:.3f}s",
                        endpoint_id=context.endpoint_id,
                        request_id=context.request_id,
                        error=str(e),
                    )
                    await self._sleep(delay)

        logger.error(
            f"Operation failed after {attempt} attempts",
            endpoint_id=context.endpoint_id,
            request_id=context.request_id,
        )
        raise last_error

    def calculate_delay(self, attempt: int) -> float:
        """
        Compute the wait before retry number ``attempt`` (1-based).

        The delay grows geometrically from ``base_delay``, is capped at
        ``max_delay`` and, with jitter enabled, moves up to 25% either way.
        """
        delay = self.config.base_delay * (self.config.backoff_multiplier ** (attempt - 1))
        delay = min(delay, self.config.max_delay)

        if self.config.jitter:
            jitter_range = delay * JITTER_RATIO
            delay += random.uniform(-jitter_range, jitter_range)

        return max(delay, 0.0)
