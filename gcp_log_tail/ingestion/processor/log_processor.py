# gcp_log_tail/ingestion/processor/log_processor.py

"""
LogProcessor turns queued log entries into serialized output records.
"""

import logging
from typing import Any

from google.protobuf.message import Message

from ...config.tail_config import TailConfig
from ...output.serializers import SerializationError, serialize
from ...output.sink import OutputSink
from ...transform.drop_filter import should_drop
from ...transform.output_builder import OutputBuilder
from ..queues.limiter import GlobalLimiter
from ..queues.memory_queue import MemoryQueue

logger = logging.getLogger(__name__)


class LogProcessor:
    """Drop filter, output builder and serializer for each queued entry."""

    def __init__(
        self,
        config: TailConfig,
        builder: OutputBuilder,
        sink: OutputSink,
        limiter: GlobalLimiter | None = None,
    ) -> None:
        self.config = config
        self.builder = builder
        self.sink = sink
        self.limiter = limiter

        # Processing statistics
        self.processed_count = 0
        self.dropped_count = 0
        self.failed_count = 0

    async def process_log(self, entry: Message) -> bool:
        """Process one entry. Returns True if a record was written."""
        if should_drop(entry, self.config):
            self.dropped_count += 1
            return False

        result = self.builder.build(entry)
        try:
            text = serialize(result, self.config.format)
        except SerializationError as e:
            self.failed_count += 1
            logger.error(f"Skipping entry {entry.insert_id}: {e}")
            return False

        await self.sink.write(text)
        self.processed_count += 1
        return True

    async def run(self, queue: MemoryQueue) -> None:
        """Consume entries until the queue is closed and drained.

        A failing entry is logged and skipped. A failing output stream stops
        every source and closes the queue.
        """
        while True:
            entry = await queue.dequeue()
            if entry is None:
                break
            try:
                await self.process_log(entry)
            except OSError as e:
                self.failed_count += 1
                logger.error(f"Output stream failed, stopping: {e}")
                await self._stop_output(queue)
                return
            except Exception as e:
                self.failed_count += 1
                logger.exception(f"Failed to process entry {entry.insert_id}: {e}")

    async def _stop_output(self, queue: MemoryQueue) -> None:
        if self.limiter is not None:
            self.limiter.cancel()
        await queue.close()

    def get_processing_stats(self) -> dict[str, Any]:
        """Get processing statistics."""
        return {
            "processed": self.processed_count,
            "dropped": self.dropped_count,
            "failed": self.failed_count,
        }
