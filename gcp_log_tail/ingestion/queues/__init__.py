# gcp_log_tail/ingestion/queues/__init__.py

"""
Bounded queue and output cap for log ingestion.
"""

from .limiter import GlobalLimiter
from .memory_queue import MemoryQueue, QueueConfig, QueueStats

__all__ = [
    "GlobalLimiter",
    "MemoryQueue",
    "QueueConfig",
    "QueueStats",
]
