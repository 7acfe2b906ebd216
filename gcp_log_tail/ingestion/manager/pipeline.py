# gcp_log_tail/ingestion/manager/pipeline.py

"""
TailPipeline runs one tail source per project and a pool of output workers.
"""

import asyncio
import logging
from typing import Any

from ...config.settings import TailSettings
from ...config.tail_config import TailConfig
from ...output.sink import OutputSink
from ...resilience.error_classifier import ErrorClassifier
from ...transform.output_builder import OutputBuilder
from ...transform.payload import PayloadDecoder, TypeRegistry
from ..adapters.gcp_tail import GCPTailAdapter
from ..interfaces.core import SourceHealth
from ..processor.log_processor import LogProcessor
from ..queues.limiter import GlobalLimiter
from ..queues.memory_queue import MemoryQueue, QueueConfig

logger = logging.getLogger(__name__)


class TailPipeline:
    """Producers feed a bounded queue that a fixed worker pool drains.

    Shutdown runs in order: every source finishes, the queue is closed,
    and the workers drain what is left before ``run`` returns.
    """

    def __init__(
        self,
        config: TailConfig,
        settings: TailSettings,
        client: Any,
        sink: OutputSink,
    ) -> None:
        self.config = config
        self.settings = settings
        self.client = client
        self.sink = sink

        self.queue = MemoryQueue(QueueConfig(max_size=settings.queue_size))
        self.limiter = GlobalLimiter(config.limit, self.queue)
        self.classifier = ErrorClassifier()

        registry = TypeRegistry.with_defaults(config.proto_modules)
        self.builder = OutputBuilder(config, PayloadDecoder(registry))

        self.sources: dict[str, GCPTailAdapter] = {
            project_id: GCPTailAdapter(
                project_id,
                config,
                client,
                self.limiter,
                classifier=self.classifier,
                reconnect_delay=settings.reconnect_delay,
            )
            for project_id in config.projects
        }
        self.processors = [
            LogProcessor(config, self.builder, sink, self.limiter)
            for _ in range(settings.worker_count)
        ]

    async def run(self) -> None:
        """Tail every project until all sources terminate."""
        producers = [
            asyncio.create_task(source.run(), name=f"tail-{project_id}")
            for project_id, source in self.sources.items()
        ]
        workers = [
            asyncio.create_task(processor.run(self.queue), name=f"worker-{i}")
            for i, processor in enumerate(self.processors)
        ]
        logger.info(
            f"Started {len(producers)} source(s) and {len(workers)} worker(s)"
        )

        try:
            await asyncio.gather(*producers)
        finally:
            await self.queue.close()
            results = await asyncio.gather(*workers, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Worker failed: {result}")
            if self.sink.buffered:
                await self.sink.flush()

        logger.info(f"Pipeline finished: {self.get_stats()}")

    def get_health(self) -> dict[str, SourceHealth]:
        return {
            project_id: source.get_health()
            for project_id, source in self.sources.items()
        }

    def get_stats(self) -> dict[str, Any]:
        """Aggregate worker statistics."""
        stats = {"processed": 0, "dropped": 0, "failed": 0}
        for processor in self.processors:
            for key, value in processor.get_processing_stats().items():
                stats[key] += value
        stats["accepted"] = self.limiter.count
        return stats
