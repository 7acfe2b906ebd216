# gcp_log_tail/ingestion/interfaces/__init__.py

"""
Core interfaces for the log ingestion system.
"""

from .core import ConnectionState, LogIngestionInterface, SourceHealth
from .errors import (
    LogIngestionError,
    SourceConnectionError,
    SourceNotRunningError,
    StreamCancelledError,
)

__all__ = [
    # Core interfaces
    "LogIngestionInterface",
    "ConnectionState",
    "SourceHealth",
    # Error handling
    "LogIngestionError",
    "SourceConnectionError",
    "StreamCancelledError",
    "SourceNotRunningError",
]
