# gcp_log_tail/ingestion/interfaces/errors.py

"""
Error handling classes for log ingestion.
"""


class LogIngestionError(Exception):
    """Base exception for ingestion errors."""

    pass


class SourceConnectionError(LogIngestionError):
    """Connection to source failed."""

    pass


class StreamCancelledError(LogIngestionError):
    """The shared cancellation signal fired while a stream was in use."""

    pass


class SourceNotRunningError(LogIngestionError):
    """Attempt to use a stream that is not open."""

    pass
