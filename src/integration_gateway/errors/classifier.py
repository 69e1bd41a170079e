"""
Error classification for integration failures.

ErrorClassifier maps a raw failure, plus the remote response when one exists, onto
the closed ErrorKind taxonomy. The kind decides whether a call is retried, how
severe the failure is, and whether operators get alerted. Classification is pure:
the same inputs always produce the same kind.
"""

from typing import Any, Optional, Tuple, Union

from integration_gateway.core.models import ErrorKind, Severity

# Checked in order against the lower-cased error message.
MESSAGE_PATTERNS: Tuple[Tuple[ErrorKind, Tuple[str, ...]], ...] = (
    (ErrorKind.TIMEOUT, ("timeout", "timed out")),
    (ErrorKind.CONNECTION_ERROR, ("connection", "network", "econnreset", "econnrefused")),
    (ErrorKind.AUTHENTICATION_ERROR, ("auth", "unauthorized", "forbidden")),
    (ErrorKind.RATE_LIMIT, ("rate limit", "too many requests")),
)

NON_RETRYABLE_KINDS = frozenset({
    ErrorKind.AUTHENTICATION_ERROR,
    ErrorKind.VALIDATION_ERROR,
})

SEVERITY_BY_KIND = {
    ErrorKind.AUTHENTICATION_ERROR: Severity.CRITICAL,
    ErrorKind.SERVER_ERROR: Severity.HIGH,
    ErrorKind.TIMEOUT: Severity.MEDIUM,
    ErrorKind.CONNECTION_ERROR: Severity.MEDIUM,
    ErrorKind.RATE_LIMIT: Severity.MEDIUM,
    ErrorKind.VALIDATION_ERROR: Severity.LOW,
}


def _status_code_of(response: Any) -> Optional[int]:
    """Read a status code from a TransportResponse, an httpx.Response or a mapping"""
    if response is None:
        return None
    if isinstance(response, dict):
        status = response.get("status_code", response.get("status"))
    else:
        status = getattr(response, "status_code", None)
        if status is None:
            status = getattr(response, "status", None)
    return status if isinstance(status, int) else None


class ErrorClassifier:
    """Stateless classification rules shared by retry, logging and alerting."""

    @staticmethod
    def classify(error: Optional[BaseException], response: Any = None) -> ErrorKind:
        """
        Classify a failure into an ErrorKind.

        A response status code takes precedence over the error message. When no
        response is passed explicitly, a ``response`` attribute on the error is used.

        Args:
            error: The exception raised by the failed call
            response: Optional remote response observed before the failure

        Returns:
            The ErrorKind for this failure
        """
        if response is None:
            response = getattr(error, "response", None)

        status = _status_code_of(response)
        if status:
            if status in (401, 403):
                return ErrorKind.AUTHENTICATION_ERROR
            if status == 429:
                return ErrorKind.RATE_LIMIT
            if 400 <= status < 500:
                return ErrorKind.VALIDATION_ERROR
            if status >= 500:
                return ErrorKind.SERVER_ERROR

        message = str(error).lower() if error is not None else ""
        for kind, patterns in MESSAGE_PATTERNS:
            if any(pattern in message for pattern in patterns):
                return kind

        return ErrorKind.SERVER_ERROR

    @staticmethod
    def severity(kind: ErrorKind) -> Severity:
        return SEVERITY_BY_KIND.get(kind, Severity.MEDIUM)

    @staticmethod
    def should_alert(kind: ErrorKind, retry_count: int) -> bool:
        """
        Decide whether a failure should page someone.

        Authentication problems always alert; server errors alert once a retry has
        already failed; timeouts and connection errors only when they persist.
        """
        if kind == ErrorKind.AUTHENTICATION_ERROR:
            return True
        if kind == ErrorKind.SERVER_ERROR:
            return retry_count >= 1
        if kind in (ErrorKind.TIMEOUT, ErrorKind.CONNECTION_ERROR):
            return retry_count >= 3
        return False

    @classmethod
    def is_retryable(cls, error_or_kind: Union[BaseException, ErrorKind]) -> bool:
        """Authentication and validation failures are caller mistakes; never retry them"""
        if isinstance(error_or_kind, ErrorKind):
            kind = error_or_kind
        else:
            kind = cls.classify(error_or_kind)
        return kind not in NON_RETRYABLE_KINDS
