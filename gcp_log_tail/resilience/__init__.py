# gcp_log_tail/resilience/__init__.py

"""Error classification for the tail streams."""

from .error_classifier import RETRYABLE_STATUS_CODES, ErrorCategory, ErrorClassifier

__all__ = [
    "ErrorCategory",
    "ErrorClassifier",
    "RETRYABLE_STATUS_CODES",
]
