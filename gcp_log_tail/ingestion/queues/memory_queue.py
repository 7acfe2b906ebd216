# gcp_log_tail/ingestion/queues/memory_queue.py

"""
In-memory queue for log buffering and backpressure management.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime
import logging
from typing import Any

from ..interfaces.errors import SourceNotRunningError

logger = logging.getLogger(__name__)


@dataclass
class QueueConfig:
    """Configuration for memory queue."""

    max_size: int = 1000


@dataclass
class QueueStats:
    """Statistics for queue performance."""

    total_enqueued: int = 0
    total_dequeued: int = 0
    current_size: int = 0
    max_size_reached: int = 0
    producer_waits: int = 0
    last_enqueue_time: datetime | None = None
    last_dequeue_time: datetime | None = None


class MemoryQueue:
    """Bounded multi-producer, multi-consumer queue of log entries.

    Producers wait while the queue is full and consumers wait while it is
    empty. After ``close()`` no new entries are accepted; consumers drain
    what is left and then receive ``None``.
    """

    def __init__(self, config: QueueConfig | None = None) -> None:
        self.config = config or QueueConfig()
        if self.config.max_size < 1:
            raise ValueError(f"max_size must be positive, got {self.config.max_size}")
        self._queue: deque[Any] = deque()
        self._cond = asyncio.Condition()
        self._stats = QueueStats()
        self._closed = False

    async def enqueue(self, log_entry: Any) -> None:
        """Enqueue a log entry, waiting for space when full.

        Raises:
            SourceNotRunningError: If the queue has been closed.
        """
        async with self._cond:
            if self.is_full() and not self._closed:
                self._stats.producer_waits += 1
            await self._cond.wait_for(
                lambda: self._closed or len(self._queue) < self.config.max_size
            )
            if self._closed:
                raise SourceNotRunningError("Queue is closed")

            self._queue.append(log_entry)
            self._stats.total_enqueued += 1
            self._stats.current_size = len(self._queue)
            self._stats.max_size_reached = max(
                self._stats.max_size_reached, len(self._queue)
            )
            self._stats.last_enqueue_time = datetime.now(UTC)
            self._cond.notify_all()

    async def dequeue(self) -> Any | None:
        """
        Dequeue the next log entry.

        Returns:
            The oldest entry, or None once the queue is closed and drained
        """
        async with self._cond:
            await self._cond.wait_for(lambda: self._queue or self._closed)
            if not self._queue:
                return None

            item = self._queue.popleft()
            self._stats.total_dequeued += 1
            self._stats.current_size = len(self._queue)
            self._stats.last_dequeue_time = datetime.now(UTC)
            self._cond.notify_all()
            return item

    async def close(self) -> None:
        """Stop accepting entries and wake every waiter."""
        async with self._cond:
            if self._closed:
                return
            self._closed = True
            self._cond.notify_all()

        logger.debug(
            f"Closed memory queue: enqueued={self._stats.total_enqueued}, "
            f"pending={len(self._queue)}"
        )

    def get_stats(self) -> QueueStats:
        """Get current queue statistics."""
        return QueueStats(
            total_enqueued=self._stats.total_enqueued,
            total_dequeued=self._stats.total_dequeued,
            current_size=self._stats.current_size,
            max_size_reached=self._stats.max_size_reached,
            producer_waits=self._stats.producer_waits,
            last_enqueue_time=self._stats.last_enqueue_time,
            last_dequeue_time=self._stats.last_dequeue_time,
        )

    def is_full(self) -> bool:
        """Check if the queue is full."""
        return len(self._queue) >= self.config.max_size

    def size(self) -> int:
        """Get current queue size."""
        return len(self._queue)
