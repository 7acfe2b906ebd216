# gcp_log_tail/ingestion/interfaces/core.py

"""
Core interfaces and data structures for log ingestion.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConnectionState(Enum):
    """Lifecycle of a tail source.

    ``DISCONNECTED -> CONNECTING -> STREAMING -> {RECONNECTING | TERMINATED}``;
    ``RECONNECTING`` leads back to ``CONNECTING`` and ``TERMINATED`` is final.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"
    TERMINATED = "terminated"


@dataclass
class SourceHealth:
    """Health status for a log source."""

    is_healthy: bool
    state: ConnectionState = ConnectionState.DISCONNECTED
    last_success: str | None = None
    error_count: int = 0
    last_error: str | None = None
    metrics: dict[str, Any] = field(default_factory=dict)


class LogIngestionInterface(ABC):
    """Abstract interface for log ingestion sources."""

    @abstractmethod
    async def run(self) -> None:
        """Ingest until the source terminates. Must not raise."""
        pass

    @abstractmethod
    def get_health(self) -> SourceHealth:
        """Snapshot of the source's health."""
        pass
