"""Shared fixtures for Integration Gateway tests."""

from typing import Any, List, Optional

import pytest

from integration_gateway.core.models import (
    CircuitBreakerConfig,
    EndpointConfig,
    IntegrationRequest,
    RetryConfig,
    ServiceType,
)


class FakeClock:
    """Manually advanced time source for circuit breaker timing"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stands in for asyncio.sleep and records every requested delay"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedTransport:
    """
    Transport that replays a script of outcomes.

    Each entry is either an exception instance (raised) or a value (returned).
    Once the script runs out, the last entry repeats.
    """

    def __init__(self, *outcomes: Any):
        self.calls: List[IntegrationRequest] = []
        self.request_ids: List[str] = []
        self.timeouts: List[Optional[float]] = []
        self.closed = False
        self.script(*outcomes)

    def script(self, *outcomes: Any) -> None:
        """Replace the remaining outcomes"""
        self._outcomes = list(outcomes) or [None]

    async def execute_request(self, request: IntegrationRequest, request_id: str, timeout: Optional[float] = None) -> Any:
        self.calls.append(request)
        self.request_ids.append(request_id)
        self.timeouts.append(timeout)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True

    @property
    def call_count(self) -> int:
        return len(self.calls)


def make_endpoint(
    endpoint_id: str = "test-endpoint",
    service_type: ServiceType = ServiceType.EXTERNAL_API,
    max_attempts: int = 1,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_multiplier: float = 2.0,
    jitter: bool = False,
    enabled: bool = True,
    failure_threshold: int = 5,
    reset_timeout: float = 60.0,
    timeout: float = 5.0,
) -> EndpointConfig:
    return EndpointConfig(
        id=endpoint_id,
        name=f"Test {endpoint_id}",
        service_type=service_type,
        base_url="https://api.example.com",
        timeout=timeout,
        retry=RetryConfig(
            max_attempts=max_attempts,
            base_delay=base_delay,
            max_delay=max_delay,
            backoff_multiplier=backoff_multiplier,
            jitter=jitter,
        ),
        circuit_breaker=CircuitBreakerConfig(
            enabled=enabled,
            failure_threshold=failure_threshold,
            reset_timeout=reset_timeout,
        ),
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def endpoint():
    return make_endpoint()


@pytest.fixture
def get_request():
    return IntegrationRequest(method="GET", path="/v1/projects")
