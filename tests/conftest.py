"""Shared test fixtures: log entries, configurations and a fake tail client."""

import asyncio
from typing import Any

from google.api.monitored_resource_pb2 import MonitoredResource
from google.cloud.audit import audit_log_pb2
from google.cloud.logging_v2.types import LogEntry, TailLogEntriesResponse
from google.logging.type import log_severity_pb2
from google.protobuf import any_pb2, struct_pb2, timestamp_pb2
import pytest

from gcp_log_tail.config import TailConfig

LogEntryPb = LogEntry.pb()

PROJECT = "p1"


def log_name(project: str, short_name: str) -> str:
    return f"projects/{project}/logs/{short_name}"


def make_entry(
    short_name: str = "audit",
    project: str = PROJECT,
    resource_type: str = "gce_instance",
    resource_labels: dict[str, str] | None = None,
    labels: dict[str, str] | None = None,
    severity: int = log_severity_pb2.WARNING,
    insert_id: str = "abc123",
    seconds: int = 1700000000,
    nanos: int = 500000000,
    text: str | None = None,
    json: dict[str, Any] | None = None,
    proto: Any = None,
) -> Any:
    """Build a raw ``google.logging.v2.LogEntry`` message."""
    entry = LogEntryPb(
        log_name=log_name(project, short_name),
        resource=MonitoredResource(
            type=resource_type,
            labels=resource_labels or {"project_id": project, "zone": "us-central1-a"},
        ),
        timestamp=timestamp_pb2.Timestamp(seconds=seconds, nanos=nanos),
        severity=severity,
        insert_id=insert_id,
        labels=labels or {},
    )
    if text is not None:
        entry.text_payload = text
    elif json is not None:
        payload = struct_pb2.Struct()
        payload.update(json)
        entry.json_payload.CopyFrom(payload)
    elif proto is not None:
        packed = any_pb2.Any()
        packed.Pack(proto)
        entry.proto_payload.CopyFrom(packed)
    return entry


def make_audit_log(
    method: str = "v1.compute.instances.insert",
    principal: str = "alice@example.com",
) -> audit_log_pb2.AuditLog:
    return audit_log_pb2.AuditLog(
        service_name="compute.googleapis.com",
        method_name=method,
        authentication_info=audit_log_pb2.AuthenticationInfo(principal_email=principal),
    )


def make_response(*entries: Any) -> TailLogEntriesResponse:
    """Wrap raw entries into a tail response."""
    response = TailLogEntriesResponse.pb()()
    response.entries.extend(entries)
    return TailLogEntriesResponse.wrap(response)


class FakeStream:
    """Async iterator over scripted responses and errors.

    Each script item is a response, an exception to raise, or ``HANG`` to
    block until the read is cancelled. The stream ends after the last item.
    The first read pulls the initial request, as the service does.
    """

    HANG = object()

    def __init__(self, script: list[Any], requests: Any, client: "FakeTailClient"):
        self._script = list(script)
        self._requests = requests
        self._client = client
        self._started = False
        self.cancelled = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._started:
            self._started = True
            self._client.requests.append(await self._requests.__anext__())
        if not self._script:
            raise StopAsyncIteration
        item = self._script.pop(0)
        if item is FakeStream.HANG:
            await asyncio.Event().wait()
        if isinstance(item, BaseException):
            raise item
        return item

    def cancel(self) -> None:
        self.cancelled = True


class FakeTailClient:
    """Stands in for ``LoggingServiceV2AsyncClient``.

    ``scripts`` holds one script per ``tail_log_entries`` call; calls beyond
    the last script get an empty stream.
    """

    def __init__(self, *scripts: list[Any], open_error: Exception | None = None):
        self.scripts = list(scripts)
        self.open_error = open_error
        self.calls = 0
        self.requests: list[Any] = []
        self.streams: list[FakeStream] = []

    async def tail_log_entries(self, requests=None):
        self.calls += 1
        if self.open_error is not None:
            raise self.open_error
        script = self.scripts.pop(0) if self.scripts else []
        stream = FakeStream(script, requests, self)
        self.streams.append(stream)
        return stream


@pytest.fixture
def entry():
    """An audit entry with labels and a text payload."""
    return make_entry(
        labels={"authorization.k8s.io/decision": "allow", "env": "prod"},
        text="hello",
    )


@pytest.fixture
def audit_entry():
    """An entry carrying an AuditLog proto payload."""
    return make_entry(short_name="cloudaudit.googleapis.com%2Factivity", proto=make_audit_log())


@pytest.fixture
def basic_config() -> TailConfig:
    return TailConfig.model_validate({"projects": [PROJECT]})
