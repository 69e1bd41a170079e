"""
Resilient client for a single integration endpoint.

IntegrationClient composes one CircuitBreaker and one RetryHandler around a
Transport. Every call returns an IntegrationResult: transport failures, exhausted
retries and an open circuit all come back as ``success=False`` with a classified
IntegrationError, never as an exception. Cancellation is the one exception to
that rule; it propagates so that the active attempt and any pending backoff
sleep are aborted.

Each failed attempt is:
1. classified by ErrorClassifier,
2. stored in the client's error log with credentials redacted,
3. emitted as ``integration_error``, plus ``integration_alert`` when it warrants one.
"""

import asyncio
import random
import string
import threading
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from integration_gateway.circuit_breaker import CircuitBreaker, CircuitBreakerStats, CircuitOpenError
from integration_gateway.core.events import EventEmitter, EventType
from integration_gateway.core.logging import get_logger
from integration_gateway.core.models import (
    EndpointConfig,
    IntegrationError,
    IntegrationRequest,
    IntegrationResult,
)
from integration_gateway.errors.classifier import ErrorClassifier
from integration_gateway.errors.exceptions import TransportTimeoutError
from integration_gateway.retry import RetryContext, RetryHandler

from .transports import Transport

logger = get_logger(__name__)

REDACTED = "[REDACTED]"
SENSITIVE_HEADERS = frozenset({
    "authorization",
    "proxy-authorization",
    "x-api-key",
    "api-key",
    "cookie",
    "set-cookie",
})


def sanitize_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Copy ``headers`` with every credential-bearing value replaced, whatever its casing"""
    return {
        key: REDACTED if key.lower() in SENSITIVE_HEADERS else value
        for key, value in (headers or {}).items()
    }


def generate_request_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


class IntegrationClient(EventEmitter):
    """
    Per-endpoint client with circuit breaking, retries and error tracking.

    Events:
        integration_error: ``{"error": IntegrationError}`` for every failed attempt
        integration_alert: ``{"error": IntegrationError, "severity": Severity}``
        state_change, circuit_open, reset: forwarded from the circuit breaker

    Usage:
        client = IntegrationClient(endpoint, CompanyCamTransport(endpoint, api_key))
        result = await client.make_request(IntegrationRequest(method="GET", path="/v2/projects"))
        if result.success:
            projects = result.data
        else:
            show_error(result.error.message, result.error.severity)
    """

    def __init__(
        self,
        endpoint: EndpointConfig,
        transport: Transport,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Endpoint configuration, including retry and breaker policy
            transport: Performs the actual call against the remote service
            clock: Current time in seconds, shared with the circuit breaker
            sleep: Backoff sleep used by the retry handler
        """
        super().__init__()
        self.endpoint = endpoint
        self.transport = transport
        self.circuit_breaker = CircuitBreaker(endpoint.id, endpoint.circuit_breaker, clock=clock)
        self.retry_handler = RetryHandler(endpoint.retry, sleep=sleep)

        self._error_log: Dict[str, IntegrationError] = {}
        self._error_log_lock = threading.Lock()

        self.circuit_breaker.forward_to(self)

    @property
    def endpoint_id(self) -> str:
        return self.endpoint.id

    async def make_request(self, request: IntegrationRequest) -> IntegrationResult:
        """
        Call the endpoint through the circuit breaker and retry handler.

        Args:
            request: The request to send

        Returns:
            IntegrationResult with the response data, or with the classified error
            of the last failed attempt
        """
        request_id = generate_request_id()
        start_time = time.monotonic()
        attempts = 0
        last_error: Optional[IntegrationError] = None

        async def attempt_once() -> Any:
            nonlocal attempts, last_error
            attempts += 1
            try:
                return await self._execute_with_timeout(request, request_id)
            except Exception as e:
                last_error = self._create_integration_error(e, request, request_id, attempts - 1)
                self._log_error(last_error)
                raise

        async def run_with_retries() -> Any:
            return await self.retry_handler.execute(
                attempt_once,
                RetryContext(endpoint_id=self.endpoint.id, request_id=request_id)
            )

        try:
            data = await self.circuit_breaker.execute(run_with_retries)
        except CircuitOpenError as e:
            last_error = self._create_integration_error(e, request, request_id, 0)
            self._log_error(last_error)
        except Exception as e:
            if last_error is None:
                # Failed outside any attempt, so nothing has been recorded yet
                last_error = self._create_integration_error(e, request, request_id, max(attempts - 1, 0))
                self._log_error(last_error)
        else:
            return IntegrationResult.ok(data, attempts=attempts, total_time=time.monotonic() - start_time)

        logger.warning(
            "Integration request failed",
            endpoint_id=self.endpoint.id,
            request_id=request_id,
            error_type=last_error.error_type.value,
            attempts=attempts,
        )
        return IntegrationResult.failed(last_error, attempts=attempts, total_time=time.monotonic() - start_time)

    async def _execute_with_timeout(self, request: IntegrationRequest, request_id: str) -> Any:
        """One transport call with a fresh deadline"""
        timeout = self.endpoint.timeout
        try:
            return await asyncio.wait_for(
                self.transport.execute_request(request, request_id, timeout),
                timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise TransportTimeoutError(
                f"Request timed out after {timeout}s",
                timeout_seconds=timeout
            ) from e

    def _create_integration_error(
        self,
        error: Exception,
        request: IntegrationRequest,
        request_id: str,
        retry_count: int,
    ) -> IntegrationError:
        response = getattr(error, "response", None)
        error_type = ErrorClassifier.classify(error, response)

        response_data = None
        status_code = getattr(response, "status_code", None)
        if response is not None:
            response_data = {
                "status": status_code,
                "headers": sanitize_headers(dict(getattr(response, "headers", None) or {})),
                "data": getattr(response, "body", None),
            }

        if isinstance(error, CircuitOpenError):
            error_code = "circuit_open"
            # No remote response exists; expose when the breaker will admit the next call instead
            response_data = error.to_dict()
        elif status_code is not None:
            error_code = str(status_code)
        else:
            error_code = getattr(error, "error_code", None) or getattr(error, "code", None)

        return IntegrationError(
            id=request_id,
            endpoint_id=self.endpoint.id,
            error_type=error_type,
            error_code=str(error_code) if error_code is not None else None,
            message=str(error) or "Unknown error",
            severity=ErrorClassifier.severity(error_type),
            request_data={
                "method": request.method,
                "path": request.path,
                "headers": sanitize_headers(request.headers),
                "metadata": request.metadata,
            },
            response_data=response_data,
            retry_count=retry_count,
        )

    def _log_error(self, error: IntegrationError) -> None:
        with self._error_log_lock:
            self._error_log[error.id] = error

        logger.warning(
            "Integration error",
            endpoint_id=error.endpoint_id,
            request_id=error.id,
            error_type=error.error_type.value,
            error_code=error.error_code,
            retry_count=error.retry_count,
            message=error.message,
        )

        self.emit(EventType.INTEGRATION_ERROR, {"error": error})

        if ErrorClassifier.should_alert(error.error_type, error.retry_count):
            self.emit(EventType.INTEGRATION_ALERT, {"error": error, "severity": error.severity})

    # Monitoring and operator actions

    def get_circuit_breaker_stats(self) -> CircuitBreakerStats:
        return self.circuit_breaker.get_stats()

    def get_recent_errors(self, limit: int = 10) -> List[IntegrationError]:
        """Most recent errors first"""
        with self._error_log_lock:
            indexed = list(enumerate(self._error_log.values()))
        # Insertion order breaks ties between identical timestamps
        indexed.sort(key=lambda item: (item[1].occurred_at, item[0]), reverse=True)
        return [error for _, error in indexed[:max(limit, 0)]]

    def resolve_error(self, error_id: str) -> bool:
        """
        Mark a logged error as resolved.

        Returns:
            True if the error was found, False otherwise
        """
        with self._error_log_lock:
            error = self._error_log.get(error_id)
            if error is None:
                return False
            self._error_log[error_id] = error.model_copy(
                update={"resolved": True, "resolved_at": datetime.now(timezone.utc)}
            )
        logger.info("Integration error resolved", endpoint_id=self.endpoint.id, request_id=error_id)
        return True

    def reset_circuit_breaker(self) -> None:
        self.circuit_breaker.reset()

    def clear_error_log(self) -> None:
        with self._error_log_lock:
            self._error_log.clear()

    async def aclose(self) -> None:
        await self.transport.aclose()
