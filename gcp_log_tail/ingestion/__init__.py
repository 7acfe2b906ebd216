# gcp_log_tail/ingestion/__init__.py

"""
Log Ingestion System

One tail source per project (``adapters``) feeds a bounded queue through a
global output cap (``queues``); processors (``processor``) drain the queue
into the output sink, orchestrated by ``manager.TailPipeline``.

Only the interfaces and queues are re-exported here; the adapter and
pipeline depend on ``resilience``, which itself imports the interfaces.
"""

from .interfaces import (
    ConnectionState,
    LogIngestionError,
    LogIngestionInterface,
    SourceConnectionError,
    SourceHealth,
    SourceNotRunningError,
    StreamCancelledError,
)
from .queues import GlobalLimiter, MemoryQueue, QueueConfig, QueueStats

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
    # Queues
    "GlobalLimiter",
    "MemoryQueue",
    "QueueConfig",
    "QueueStats",
]
