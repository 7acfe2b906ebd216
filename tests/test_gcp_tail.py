"""Tests for the tail adapter: filter building, reconnects and termination."""

import asyncio
import logging

from google.api_core import exceptions
from google.cloud.logging_v2.types import TailLogEntriesResponse
import pytest

from conftest import FakeStream, FakeTailClient, make_entry, make_response
from gcp_log_tail.config import TailConfig
from gcp_log_tail.ingestion.adapters.gcp_tail import GCPTailAdapter, build_filter
from gcp_log_tail.ingestion.interfaces.core import ConnectionState
from gcp_log_tail.ingestion.queues import GlobalLimiter, MemoryQueue, QueueConfig


def make_config(**data) -> TailConfig:
    return TailConfig.model_validate({"projects": ["p1"], **data})


def make_adapter(client, limit: int = 0, config: TailConfig | None = None):
    queue = MemoryQueue(QueueConfig(max_size=100))
    limiter = GlobalLimiter(limit, queue)
    adapter = GCPTailAdapter("p1", config or make_config(), client, limiter)
    return adapter, queue


async def drain(queue: MemoryQueue) -> list:
    await queue.close()
    items = []
    while (item := await queue.dequeue()) is not None:
        items.append(item)
    return items


class TestBuildFilter:
    """build_filter tests."""

    def test_single_log(self):
        config = make_config(logs=[{"name": "syslog"}])
        assert build_filter("p1", config) == 'logName = ("projects/p1/logs/syslog")'

    def test_several_logs_with_clauses(self):
        config = make_config(
            logs=[
                {"name": "syslog"},
                {"name": "cloudaudit.googleapis.com/activity"},
                {"name": "syslog", "type": "k8s_node"},
            ],
            filters=["severity>=WARNING", 'resource.type="gce_instance"'],
        )
        assert build_filter("p1", config) == (
            'logName = ("projects/p1/logs/syslog" OR '
            '"projects/p1/logs/cloudaudit.googleapis.com%2Factivity") '
            'AND severity>=WARNING AND resource.type="gce_instance"'
        )

    def test_clauses_only(self):
        config = make_config(filters=["a=1", "b=2"])
        assert build_filter("p1", config) == "a=1 AND b=2"

    def test_empty(self):
        assert build_filter("p1", make_config()) == ""


class TestGCPTailAdapter:
    """GCPTailAdapter.run tests."""

    @pytest.mark.asyncio
    async def test_reads_until_end_of_stream(self):
        e1, e2 = make_entry(insert_id="1"), make_entry(insert_id="2")
        client = FakeTailClient([make_response(e1, e2)])
        adapter, queue = make_adapter(client, config=make_config(logs=[{"name": "audit"}]))

        await adapter.run()

        assert [entry.insert_id for entry in await drain(queue)] == ["1", "2"]
        assert client.calls == 1
        (request,) = client.requests
        assert list(request.resource_names) == ["projects/p1"]
        assert request.filter == 'logName = ("projects/p1/logs/audit")'
        assert adapter.state == ConnectionState.TERMINATED
        assert adapter.get_health().metrics["total_accepted"] == 2

    @pytest.mark.asyncio
    async def test_reconnects_on_retryable_error(self):
        client = FakeTailClient(
            [make_response(make_entry(insert_id="1")), exceptions.ServiceUnavailable("gone")],
            [exceptions.InternalServerError("oops")],
            [make_response(make_entry(insert_id="2"))],
        )
        adapter, queue = make_adapter(client)

        await adapter.run()

        assert [entry.insert_id for entry in await drain(queue)] == ["1", "2"]
        assert client.calls == 3
        assert len(client.requests) == 3
        assert all(stream.cancelled for stream in client.streams)
        health = adapter.get_health()
        assert health.metrics["reconnects"] == 2
        assert health.state == ConnectionState.TERMINATED

    @pytest.mark.asyncio
    async def test_fatal_error_terminates(self, caplog):
        client = FakeTailClient(
            [make_response(make_entry(insert_id="1")), exceptions.PermissionDenied("nope")],
            [make_response(make_entry(insert_id="2"))],
        )
        adapter, queue = make_adapter(client)

        with caplog.at_level(logging.ERROR):
            await adapter.run()

        assert [entry.insert_id for entry in await drain(queue)] == ["1"]
        assert client.calls == 1
        health = adapter.get_health()
        assert not health.is_healthy
        assert health.error_count == 1
        assert "nope" in health.last_error
        assert "Error receiving (p1)" in caplog.text

    @pytest.mark.asyncio
    async def test_open_failure_terminates(self, caplog):
        client = FakeTailClient(open_error=exceptions.ServiceUnavailable("down"))
        adapter, queue = make_adapter(client)

        with caplog.at_level(logging.ERROR):
            await adapter.run()

        assert await drain(queue) == []
        assert client.calls == 1
        assert adapter.state == ConnectionState.TERMINATED
        assert "Failed to start tailing p1" in caplog.text

    @pytest.mark.asyncio
    async def test_stops_at_limit(self):
        client = FakeTailClient(
            [
                make_response(make_entry(insert_id="1"), make_entry(insert_id="2")),
                FakeStream.HANG,
            ]
        )
        adapter, queue = make_adapter(client, limit=1)

        await asyncio.wait_for(adapter.run(), timeout=5)

        assert [entry.insert_id for entry in await drain(queue)] == ["1"]
        assert adapter.limiter.cancelled.is_set()
        assert adapter.get_health().metrics["total_received"] == 2

    @pytest.mark.asyncio
    async def test_cancellation_interrupts_a_waiting_receive(self):
        client = FakeTailClient([FakeStream.HANG])
        adapter, queue = make_adapter(client, limit=10)

        task = asyncio.create_task(adapter.run())
        await asyncio.sleep(0.05)
        assert adapter.state == ConnectionState.STREAMING
        assert not task.done()

        adapter.limiter.cancel()
        await asyncio.wait_for(task, timeout=5)
        assert adapter.state == ConnectionState.TERMINATED
        assert client.calls == 1

    @pytest.mark.asyncio
    async def test_already_cancelled_does_not_connect(self):
        client = FakeTailClient([make_response(make_entry())])
        adapter, queue = make_adapter(client, limit=10)
        adapter.limiter.cancel()

        await adapter.run()

        assert client.calls == 0
        assert adapter.state == ConnectionState.TERMINATED

    @pytest.mark.asyncio
    async def test_suppression_is_reported(self, caplog):
        info = TailLogEntriesResponse.SuppressionInfo(
            reason=TailLogEntriesResponse.SuppressionInfo.Reason.RATE_LIMIT,
            suppressed_count=7,
        )
        client = FakeTailClient([TailLogEntriesResponse(suppression_info=[info])])
        adapter, _ = make_adapter(client)

        with caplog.at_level(logging.WARNING):
            await adapter.run()

        assert "7 entries suppressed for p1 (RATE_LIMIT)" in caplog.text
        assert adapter.get_health().metrics["total_suppressed"] == 7
