# gcp_log_tail/ingestion/queues/limiter.py

"""
Global output cap shared by every tail source.
"""

import asyncio
import logging
from typing import Any

from .memory_queue import MemoryQueue

logger = logging.getLogger(__name__)


class GlobalLimiter:
    """Counts entries handed to the queue across all sources.

    When ``limit`` entries have been accepted the shared ``cancelled`` event
    is set, exactly once, and every later ``try_enqueue`` is refused. A
    ``limit`` of zero or less means no cap and no counting.
    """

    def __init__(self, limit: int, queue: MemoryQueue) -> None:
        self.limit = limit
        self.queue = queue
        self.cancelled = asyncio.Event()
        self._count = 0
        self._lock = asyncio.Lock()

    @property
    def unlimited(self) -> bool:
        return self.limit <= 0

    @property
    def count(self) -> int:
        return self._count

    async def try_enqueue(self, entry: Any) -> bool:
        """Enqueue ``entry`` unless the cap has been reached.

        Returns:
            True if the entry was accepted
        """
        if self.unlimited:
            await self.queue.enqueue(entry)
            return True

        async with self._lock:
            if self._count >= self.limit:
                return False

            await self.queue.enqueue(entry)
            self._count += 1

            if self._count == self.limit:
                logger.info(f"Reached limit of {self.limit} entries, stopping sources")
                self.cancel()
            return True

    def cancel(self) -> None:
        """Fire the shared cancellation signal; later calls do nothing."""
        if self.cancelled.is_set():
            return
        self.cancelled.set()
