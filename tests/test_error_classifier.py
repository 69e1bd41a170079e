"""Tests for error classification, severity and alerting rules."""

import pytest

from integration_gateway.core.models import ErrorKind, Severity, TransportResponse
from integration_gateway.errors import (
    ErrorClassifier,
    TransportAuthenticationError,
    TransportConnectionError,
    TransportTimeoutError,
    UpstreamStatusError,
)


def status_error(status_code: int) -> UpstreamStatusError:
    return UpstreamStatusError(f"HTTP {status_code}", response=TransportResponse(status_code=status_code))


class TestClassifyByStatus:
    """A response status code decides the kind before the message does."""

    @pytest.mark.parametrize("status_code,expected", [
        (401, ErrorKind.AUTHENTICATION_ERROR),
        (403, ErrorKind.AUTHENTICATION_ERROR),
        (429, ErrorKind.RATE_LIMIT),
        (400, ErrorKind.VALIDATION_ERROR),
        (404, ErrorKind.VALIDATION_ERROR),
        (422, ErrorKind.VALIDATION_ERROR),
        (500, ErrorKind.SERVER_ERROR),
        (503, ErrorKind.SERVER_ERROR),
    ])
    def test_status_codes(self, status_code, expected):
        assert ErrorClassifier.classify(status_error(status_code)) == expected

    def test_explicit_response_overrides_message(self):
        """A timeout message still classifies by the status of the response passed in"""
        error = Exception("upstream timed out")
        assert ErrorClassifier.classify(error, TransportResponse(status_code=429)) == ErrorKind.RATE_LIMIT

    def test_mapping_response(self):
        assert ErrorClassifier.classify(Exception("boom"), {"status": 401}) == ErrorKind.AUTHENTICATION_ERROR


class TestClassifyByMessage:
    """Without a response, the lower-cased message is pattern-matched."""

    @pytest.mark.parametrize("message,expected", [
        ("Request Timeout after 30s", ErrorKind.TIMEOUT),
        ("operation timed out", ErrorKind.TIMEOUT),
        ("Connection refused", ErrorKind.CONNECTION_ERROR),
        ("network unreachable", ErrorKind.CONNECTION_ERROR),
        ("read ECONNRESET", ErrorKind.CONNECTION_ERROR),
        ("Unauthorized", ErrorKind.AUTHENTICATION_ERROR),
        ("Forbidden resource", ErrorKind.AUTHENTICATION_ERROR),
        ("OAuth token expired", ErrorKind.AUTHENTICATION_ERROR),
        ("Rate limit exceeded", ErrorKind.RATE_LIMIT),
        ("Too Many Requests", ErrorKind.RATE_LIMIT),
        ("something odd happened", ErrorKind.SERVER_ERROR),
        ("", ErrorKind.SERVER_ERROR),
    ])
    def test_message_patterns(self, message, expected):
        assert ErrorClassifier.classify(Exception(message)) == expected

    def test_timeout_wins_over_connection(self):
        assert ErrorClassifier.classify(Exception("connection timed out")) == ErrorKind.TIMEOUT

    def test_transport_errors(self):
        assert ErrorClassifier.classify(TransportTimeoutError("Request timed out after 5.0s")) == ErrorKind.TIMEOUT
        assert ErrorClassifier.classify(TransportConnectionError("Connection error: refused")) == ErrorKind.CONNECTION_ERROR
        assert ErrorClassifier.classify(
            TransportAuthenticationError("CompanyCam authentication failed: no API key configured")
        ) == ErrorKind.AUTHENTICATION_ERROR

    def test_none_error_defaults_to_server_error(self):
        assert ErrorClassifier.classify(None) == ErrorKind.SERVER_ERROR

    def test_classification_is_deterministic(self):
        error = status_error(502)
        results = {ErrorClassifier.classify(error) for _ in range(50)}
        assert results == {ErrorKind.SERVER_ERROR}

        message_error = Exception("network down")
        assert {ErrorClassifier.classify(message_error) for _ in range(50)} == {ErrorKind.CONNECTION_ERROR}


class TestSeverity:
    @pytest.mark.parametrize("kind,expected", [
        (ErrorKind.AUTHENTICATION_ERROR, Severity.CRITICAL),
        (ErrorKind.SERVER_ERROR, Severity.HIGH),
        (ErrorKind.TIMEOUT, Severity.MEDIUM),
        (ErrorKind.CONNECTION_ERROR, Severity.MEDIUM),
        (ErrorKind.RATE_LIMIT, Severity.MEDIUM),
        (ErrorKind.VALIDATION_ERROR, Severity.LOW),
    ])
    def test_severity(self, kind, expected):
        assert ErrorClassifier.severity(kind) == expected


class TestShouldAlert:
    def test_authentication_always_alerts(self):
        assert ErrorClassifier.should_alert(ErrorKind.AUTHENTICATION_ERROR, 0) is True
        assert ErrorClassifier.should_alert(ErrorKind.AUTHENTICATION_ERROR, 5) is True

    @pytest.mark.parametrize("retry_count", [0, 1, 3, 10, 100])
    def test_validation_never_alerts(self, retry_count):
        assert ErrorClassifier.should_alert(ErrorKind.VALIDATION_ERROR, retry_count) is False

    def test_server_error_alerts_after_first_retry(self):
        assert ErrorClassifier.should_alert(ErrorKind.SERVER_ERROR, 0) is False
        assert ErrorClassifier.should_alert(ErrorKind.SERVER_ERROR, 1) is True

    @pytest.mark.parametrize("kind", [ErrorKind.TIMEOUT, ErrorKind.CONNECTION_ERROR])
    def test_transient_errors_alert_when_persistent(self, kind):
        assert ErrorClassifier.should_alert(kind, 2) is False
        assert ErrorClassifier.should_alert(kind, 3) is True

    def test_rate_limit_never_alerts(self):
        assert ErrorClassifier.should_alert(ErrorKind.RATE_LIMIT, 10) is False


class TestRetryability:
    @pytest.mark.parametrize("kind,expected", [
        (ErrorKind.AUTHENTICATION_ERROR, False),
        (ErrorKind.VALIDATION_ERROR, False),
        (ErrorKind.TIMEOUT, True),
        (ErrorKind.CONNECTION_ERROR, True),
        (ErrorKind.RATE_LIMIT, True),
        (ErrorKind.SERVER_ERROR, True),
    ])
    def test_kinds(self, kind, expected):
        assert ErrorClassifier.is_retryable(kind) is expected

    def test_errors_are_classified_first(self):
        assert ErrorClassifier.is_retryable(status_error(400)) is False
        assert ErrorClassifier.is_retryable(status_error(429)) is True
