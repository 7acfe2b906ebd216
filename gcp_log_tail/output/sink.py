# gcp_log_tail/output/sink.py

"""
The shared output stream.
"""

import asyncio
import sys
from typing import TextIO


class OutputSink:
    """Writes whole serialized records to a stream, one writer at a time."""

    def __init__(self, stream: TextIO | None = None, buffered: bool = False) -> None:
        self.stream = stream or sys.stdout
        self.buffered = buffered
        self.records_written = 0
        self._lock = asyncio.Lock()

    async def write(self, text: str) -> None:
        async with self._lock:
            self.stream.write(text)
            if not self.buffered:
                self.stream.flush()
            self.records_written += 1

    async def flush(self) -> None:
        async with self._lock:
            self.stream.flush()
