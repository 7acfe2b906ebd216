# gcp_log_tail/ingestion/adapters/gcp_tail.py

"""
Google Cloud Logging tail adapter for log ingestion.

This adapter implements the LogIngestionInterface for one project: it opens
a ``TailLogEntries`` stream, hands every received entry to the shared
limiter, and re-opens the stream when the service ends it with a retryable
status.
"""

import asyncio
from collections.abc import AsyncIterator
from datetime import UTC, datetime
import inspect
import logging
from typing import Any

from google.api_core.exceptions import GoogleAPICallError
from google.cloud.logging_v2.types import TailLogEntriesRequest, TailLogEntriesResponse
import grpc
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_never,
    wait_fixed,
)

from ...config.tail_config import TailConfig
from ...resilience.error_classifier import ErrorCategory, ErrorClassifier
from ...transform.paths import escape_log_name
from ..interfaces.core import ConnectionState, LogIngestionInterface, SourceHealth
from ..interfaces.errors import (
    SourceConnectionError,
    SourceNotRunningError,
    StreamCancelledError,
)
from ..queues.limiter import GlobalLimiter

logger = logging.getLogger(__name__)


def log_resource_name(project_id: str, log_name: str) -> str:
    return f"projects/{project_id}/logs/{log_name}"


def build_filter(project_id: str, config: TailConfig) -> str:
    """Build the tail filter for a project.

    Every configured log rule name is OR-ed into a ``logName`` clause, and
    each free-text filter clause is AND-ed after it.
    """
    parts = []
    names = config.rule_names()
    if names:
        quoted = [
            f'"{log_resource_name(project_id, escape_log_name(name))}"'
            for name in names
        ]
        parts.append(f"logName = ({' OR '.join(quoted)})")
    parts.extend(clause for clause in config.filters if clause.strip())
    return " AND ".join(parts)


class TailStream:
    """One bidirectional ``TailLogEntries`` call.

    Requests are fed through an internal queue; ``close_send`` ends the
    request side. ``recv`` returns ``None`` at end of stream and raises
    ``StreamCancelledError`` as soon as ``cancelled`` is set.
    """

    def __init__(self, client: Any, cancelled: asyncio.Event) -> None:
        self._client = client
        self._cancelled = cancelled
        self._requests: asyncio.Queue[TailLogEntriesRequest | None] = asyncio.Queue()
        self._call: Any = None
        self._responses: AsyncIterator[TailLogEntriesResponse] | None = None

    async def _request_iterator(self) -> AsyncIterator[TailLogEntriesRequest]:
        while True:
            request = await self._requests.get()
            if request is None:
                return
            yield request

    async def open(self) -> None:
        try:
            call = self._client.tail_log_entries(requests=self._request_iterator())
            if inspect.isawaitable(call):
                call = await call
        except (GoogleAPICallError, grpc.RpcError) as e:
            raise SourceConnectionError(f"Failed to open tail stream: {e}") from e
        self._call = call
        self._responses = call.__aiter__()

    async def send(self, request: TailLogEntriesRequest) -> None:
        if self._responses is None:
            raise SourceNotRunningError("Tail stream is not open")
        if self._cancelled.is_set():
            raise StreamCancelledError("Tail stream cancelled before send")
        await self._requests.put(request)

    async def _next_response(self) -> TailLogEntriesResponse | None:
        try:
            return await self._responses.__anext__()
        except StopAsyncIteration:
            return None

    async def recv(self) -> TailLogEntriesResponse | None:
        """Wait for the next response, or None at end of stream."""
        if self._responses is None:
            raise SourceNotRunningError("Tail stream is not open")
        if self._cancelled.is_set():
            raise StreamCancelledError("Tail stream cancelled")

        receive = asyncio.ensure_future(self._next_response())
        cancelled = asyncio.ensure_future(self._cancelled.wait())
        try:
            done, _ = await asyncio.wait(
                {receive, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancelled.cancel()

        if receive not in done:
            receive.cancel()
            await asyncio.gather(receive, return_exceptions=True)
            raise StreamCancelledError("Tail stream cancelled")
        return receive.result()

    async def close_send(self) -> None:
        """Signal that no further requests follow."""
        await self._requests.put(None)

    async def close(self) -> None:
        """End the request side and drop the call."""
        await self.close_send()
        if self._call is not None and hasattr(self._call, "cancel"):
            self._call.cancel()
        self._call = None
        self._responses = None


class GCPTailAdapter(LogIngestionInterface):
    """Tails one project's log entries into the shared limiter."""

    def __init__(
        self,
        project_id: str,
        config: TailConfig,
        client: Any,
        limiter: GlobalLimiter,
        classifier: ErrorClassifier | None = None,
        reconnect_delay: float = 0.0,
    ) -> None:
        self.project_id = project_id
        self.config = config
        self.client = client
        self.limiter = limiter
        self.classifier = classifier or ErrorClassifier()
        self.reconnect_delay = reconnect_delay

        # State management
        self.state = ConnectionState.DISCONNECTED
        self.log_filter = build_filter(project_id, config)

        # Health tracking
        self._reconnects = 0
        self._error_count = 0
        self._last_error: str | None = None
        self._last_success: datetime | None = None
        self._total_received = 0
        self._total_accepted = 0
        self._total_suppressed = 0

    def build_request(self) -> TailLogEntriesRequest:
        return TailLogEntriesRequest(
            resource_names=[f"projects/{self.project_id}"],
            filter=self.log_filter,
        )

    async def run(self) -> None:
        """Tail until end of stream, cancellation, the limit, or a fatal error."""
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(self.classifier.is_retryable),
                wait=wait_fixed(self.reconnect_delay),
                stop=stop_never,
                before_sleep=self._before_reconnect,
                reraise=True,
            ):
                with attempt:
                    await self._tail()
        except SourceConnectionError as e:
            self._record_error(e)
            logger.error(f"Failed to start tailing {self.project_id}: {e}")
        except Exception as e:
            self._record_error(e)
            if self.classifier.classify_error(e) == ErrorCategory.CANCELLED:
                logger.debug(f"Tail stream for {self.project_id} cancelled: {e}")
            else:
                logger.error(
                    f"Error receiving ({self.project_id}): {type(e).__name__}: {e}"
                )
        finally:
            self.state = ConnectionState.TERMINATED

    async def _tail(self) -> None:
        """One tailing session: open, send the request, receive until done."""
        if self.limiter.cancelled.is_set():
            return

        self.state = ConnectionState.CONNECTING
        stream = TailStream(self.client, self.limiter.cancelled)
        try:
            await stream.open()
            try:
                await stream.send(self.build_request())
            except StreamCancelledError:
                return
            self.state = ConnectionState.STREAMING
            logger.info(f"Tailing {self.project_id} with filter: {self.log_filter!r}")

            while True:
                try:
                    response = await stream.recv()
                except StreamCancelledError:
                    return

                if response is None:
                    logger.info(f"EOF: {self.project_id}")
                    return

                self._report_suppression(response)
                for entry in TailLogEntriesResponse.pb(response).entries:
                    self._total_received += 1
                    try:
                        accepted = await self.limiter.try_enqueue(entry)
                    except SourceNotRunningError:
                        logger.debug(f"Output closed, stopping {self.project_id}")
                        return
                    if not accepted:
                        return
                    self._total_accepted += 1
                    self._last_success = datetime.now(UTC)
        finally:
            await stream.close()

    def _report_suppression(self, response: TailLogEntriesResponse) -> None:
        for info in response.suppression_info:
            self._total_suppressed += info.suppressed_count
            logger.warning(
                f"{info.suppressed_count} entries suppressed for {self.project_id} "
                f"({info.reason.name})"
            )

    def _before_reconnect(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        self._record_error(error)
        self._reconnects += 1
        self.state = ConnectionState.RECONNECTING
        logger.warning(
            f"Error receiving ({self.project_id}): {type(error).__name__}: {error}; "
            f"reconnecting (attempt {retry_state.attempt_number})"
        )

    def _record_error(self, error: BaseException) -> None:
        self._error_count += 1
        self._last_error = str(error)

    def get_health(self) -> SourceHealth:
        """Get health status of the tail adapter."""
        return SourceHealth(
            is_healthy=self.state
            in (ConnectionState.STREAMING, ConnectionState.CONNECTING),
            state=self.state,
            last_success=self._last_success.isoformat() if self._last_success else None,
            error_count=self._error_count,
            last_error=self._last_error,
            metrics={
                "project_id": self.project_id,
                "log_filter": self.log_filter,
                "reconnects": self._reconnects,
                "total_received": self._total_received,
                "total_accepted": self._total_accepted,
                "total_suppressed": self._total_suppressed,
            },
        )
