# gcp_log_tail/resilience/error_classifier.py

"""Error classification for tail stream failures."""

import asyncio
from collections.abc import Iterable
from enum import Enum
import logging

from google.api_core.exceptions import GoogleAPICallError
import grpc

from ..ingestion.interfaces.errors import StreamCancelledError

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categories of stream errors."""

    RETRYABLE = "retryable"  # Re-open the stream and keep tailing
    CANCELLED = "cancelled"  # Shutdown was requested; stop quietly
    FATAL = "fatal"  # Stop tailing this source


# The tail service ends long-lived streams with these; a fresh stream works.
RETRYABLE_STATUS_CODES = frozenset(
    {
        grpc.StatusCode.UNAVAILABLE,
        grpc.StatusCode.OUT_OF_RANGE,
        grpc.StatusCode.INTERNAL,
    }
)


class ErrorClassifier:
    """Classifies stream errors by gRPC status code."""

    def __init__(
        self, retryable_codes: Iterable[grpc.StatusCode] = RETRYABLE_STATUS_CODES
    ) -> None:
        self._retryable_codes = frozenset(retryable_codes)

        # Exception type mappings
        self._exception_mappings: dict[type[BaseException], ErrorCategory] = {
            StreamCancelledError: ErrorCategory.CANCELLED,
            asyncio.CancelledError: ErrorCategory.CANCELLED,
        }

    @staticmethod
    def status_code(error: BaseException) -> grpc.StatusCode | None:
        """The gRPC status code carried by an error, if any."""
        if isinstance(error, GoogleAPICallError):
            return error.grpc_status_code
        if isinstance(error, grpc.aio.AioRpcError):
            return error.code()
        return None

    def classify_error(self, error: BaseException) -> ErrorCategory:
        """Classify an error into a category."""
        for exc_type, category in self._exception_mappings.items():
            if isinstance(error, exc_type):
                return category

        code = self.status_code(error)
        if code == grpc.StatusCode.CANCELLED:
            return ErrorCategory.CANCELLED
        if code in self._retryable_codes:
            logger.debug(f"Classified error by status code {code}: retryable")
            return ErrorCategory.RETRYABLE
        return ErrorCategory.FATAL

    def is_retryable(self, error: BaseException) -> bool:
        return self.classify_error(error) == ErrorCategory.RETRYABLE
