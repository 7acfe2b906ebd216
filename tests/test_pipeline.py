"""End-to-end tests for the tail pipeline."""

import asyncio
import io
import json

from google.api_core import exceptions
import pytest

from conftest import FakeStream, FakeTailClient, make_entry, make_response
from gcp_log_tail.config import TailConfig, TailSettings
from gcp_log_tail.ingestion.interfaces.core import ConnectionState
from gcp_log_tail.ingestion.manager.pipeline import TailPipeline
from gcp_log_tail.output.sink import OutputSink


@pytest.fixture
def settings() -> TailSettings:
    return TailSettings(queue_size=4, worker_multiplier=1)


def audit_config(**data) -> TailConfig:
    return TailConfig.model_validate(
        {
            "projects": ["p1"],
            "match-rule": "drop-no-match",
            "logs": [{"name": "audit", "output": [{"sev": "severity"}]}],
            **data,
        }
    )


async def run_pipeline(config, settings, client) -> tuple[TailPipeline, str]:
    stream = io.StringIO()
    pipeline = TailPipeline(config, settings, client, OutputSink(stream))
    await asyncio.wait_for(pipeline.run(), timeout=5)
    return pipeline, stream.getvalue()


class TestTailPipeline:
    """TailPipeline tests."""

    @pytest.mark.asyncio
    async def test_limit_stops_after_second_record(self, settings):
        client = FakeTailClient(
            [
                make_response(
                    make_entry(short_name="audit", insert_id="1"),
                    make_entry(short_name="audit", insert_id="2"),
                    make_entry(short_name="other", insert_id="3"),
                ),
                FakeStream.HANG,
            ]
        )

        pipeline, output = await run_pipeline(
            audit_config(limit=2, format="jsonl"), settings, client
        )

        records = [json.loads(line) for line in output.splitlines()]
        assert records == [{"sev": "WARNING"}, {"sev": "WARNING"}]
        assert pipeline.limiter.cancelled.is_set()
        assert pipeline.get_stats()["accepted"] == 2

    @pytest.mark.asyncio
    async def test_unmatched_records_are_dropped(self, settings):
        client = FakeTailClient(
            [
                make_response(
                    make_entry(short_name="audit", insert_id="1"),
                    make_entry(short_name="other", insert_id="2"),
                    make_entry(short_name="audit", insert_id="3"),
                )
            ]
        )

        pipeline, output = await run_pipeline(audit_config(), settings, client)

        assert output == "---\nsev: WARNING\n---\nsev: WARNING\n"
        stats = pipeline.get_stats()
        assert stats["processed"] == 2
        assert stats["dropped"] == 1

    @pytest.mark.asyncio
    async def test_one_source_failing_leaves_others_running(self, settings):
        config = TailConfig.model_validate(
            {"projects": ["p1", "p2"], "format": "jsonl", "common-output": [{"id": "insertId"}]}
        )
        client = FakeTailClient(
            [exceptions.PermissionDenied("nope")],
            [make_response(make_entry(insert_id="a"), make_entry(insert_id="b"))],
        )

        pipeline, output = await run_pipeline(config, settings, client)

        ids = sorted(json.loads(line)["id"] for line in output.splitlines())
        assert ids == ["a", "b"]
        health = pipeline.get_health()
        assert all(h.state == ConnectionState.TERMINATED for h in health.values())
        assert sum(h.error_count for h in health.values()) == 1

    @pytest.mark.asyncio
    async def test_backpressure_with_small_queue(self):
        settings = TailSettings(queue_size=1, worker_multiplier=1)
        entries = [make_entry(insert_id=str(i)) for i in range(20)]
        client = FakeTailClient([make_response(*entries)])
        config = TailConfig.model_validate(
            {"projects": ["p1"], "format": "csv", "common-output": [{"id": "insertId"}]}
        )

        pipeline, output = await run_pipeline(config, settings, client)

        assert sorted(output.splitlines(), key=int) == [str(i) for i in range(20)]
        assert pipeline.queue.get_stats().max_size_reached == 1

    @pytest.mark.asyncio
    async def test_closed_output_shuts_everything_down(self, caplog):
        settings = TailSettings(queue_size=2, worker_multiplier=1)
        entries = [make_entry(insert_id=str(i)) for i in range(50)]
        client = FakeTailClient([make_response(*entries), FakeStream.HANG])
        config = TailConfig.model_validate({"projects": ["p1", "p2"], "format": "jsonl"})
        pipeline = TailPipeline(config, settings, client, BrokenPipeSink())

        await asyncio.wait_for(pipeline.run(), timeout=5)

        assert pipeline.limiter.cancelled.is_set()
        assert pipeline.get_stats()["processed"] == 0
        assert pipeline.get_stats()["failed"] >= 1
        health = pipeline.get_health()
        assert all(h.state == ConnectionState.TERMINATED for h in health.values())
        assert "Output stream failed, stopping: stdout closed" in caplog.text


class BrokenPipeSink(OutputSink):
    """A sink whose reader has gone away, as with ``| head``."""

    def __init__(self) -> None:
        super().__init__(io.StringIO())

    async def write(self, text: str) -> None:
        raise BrokenPipeError("stdout closed")
