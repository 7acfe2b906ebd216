"""Tests for stream error classification."""

import asyncio

from google.api_core import exceptions
import grpc
import pytest

from gcp_log_tail.ingestion.interfaces.errors import StreamCancelledError
from gcp_log_tail.resilience import ErrorCategory, ErrorClassifier


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier()


class TestErrorClassifier:
    """ErrorClassifier tests."""

    @pytest.mark.parametrize(
        "error",
        [
            exceptions.ServiceUnavailable("unavailable"),
            exceptions.OutOfRange("out of range"),
            exceptions.InternalServerError("internal"),
        ],
    )
    def test_retryable_status_codes(self, classifier, error):
        assert classifier.classify_error(error) == ErrorCategory.RETRYABLE
        assert classifier.is_retryable(error)

    @pytest.mark.parametrize(
        "error",
        [
            exceptions.PermissionDenied("denied"),
            exceptions.NotFound("missing"),
            exceptions.InvalidArgument("bad filter"),
            exceptions.ResourceExhausted("quota"),
            RuntimeError("boom"),
        ],
    )
    def test_other_errors_are_fatal(self, classifier, error):
        assert classifier.classify_error(error) == ErrorCategory.FATAL
        assert not classifier.is_retryable(error)

    @pytest.mark.parametrize(
        "error",
        [
            exceptions.Cancelled("cancelled"),
            StreamCancelledError("limit reached"),
            asyncio.CancelledError(),
        ],
    )
    def test_cancellation(self, classifier, error):
        assert classifier.classify_error(error) == ErrorCategory.CANCELLED
        assert not classifier.is_retryable(error)

    def test_raw_grpc_error(self, classifier):
        error = grpc.aio.AioRpcError(
            grpc.StatusCode.UNAVAILABLE,
            grpc.aio.Metadata(),
            grpc.aio.Metadata(),
            details="connection reset",
        )
        assert classifier.status_code(error) == grpc.StatusCode.UNAVAILABLE
        assert classifier.is_retryable(error)

    def test_custom_retryable_codes(self):
        classifier = ErrorClassifier(retryable_codes={grpc.StatusCode.RESOURCE_EXHAUSTED})
        assert classifier.is_retryable(exceptions.ResourceExhausted("quota"))
        assert not classifier.is_retryable(exceptions.ServiceUnavailable("unavailable"))
