# gcp_log_tail/transform/paths.py

"""
Field path parsing and resolution against Cloud Logging entries.

A path is a dot separated list of field names, for example
``resource.labels.project_id``. Map keys that contain dots are written with
the ``key(...)`` escape: ``labels.key(authorization.k8s.io/decision)``.

Resolution walks the raw ``google.logging.v2.LogEntry`` protobuf message.
Message fields are looked up through explicit field tables so that
``insertId``, ``insertid`` and ``insert_id`` all address the same field.
Missing fields and keys resolve to a descriptive string instead of raising,
so one bad path never aborts a record.
"""

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
import logging
import re
from typing import Any
from urllib.parse import quote, unquote

from google.protobuf import json_format
from google.protobuf.message import Message

from .errors import PathSyntaxError, PayloadDecodeError
from .payload import PayloadDecoder

logger = logging.getLogger(__name__)

KEY_PREFIX = "key("
KEY_SUFFIX = ")"

# Names the Cloud Console shows for the payload oneof.
PAYLOAD_FIELDS = ("protoPayload", "jsonPayload", "textPayload")
_PAYLOAD_SEGMENTS = frozenset(field.lower() for field in PAYLOAD_FIELDS)

# Characters url path-segment escaping leaves alone besides unreserved ones.
_PATH_SEGMENT_SAFE = "$&+:=@"

_LOG_NAME_RE = re.compile(r"^.*/(.*)$")

_TIMESTAMP = "google.protobuf.Timestamp"
_DURATION = "google.protobuf.Duration"
_ANY = "google.protobuf.Any"
_JSON_TYPES = ("google.protobuf.Struct", "google.protobuf.Value", "google.protobuf.ListValue")


def _normalize(segment: str) -> str:
    return segment.replace("_", "").lower()


def _table(*names: str) -> dict[str, str]:
    return {_normalize(name): name for name in names}


# Normalized path segment -> protobuf field name, per message type.
FIELD_TABLES: dict[str, dict[str, str]] = {
    "google.logging.v2.LogEntry": _table(
        "log_name",
        "resource",
        "timestamp",
        "receive_timestamp",
        "severity",
        "insert_id",
        "http_request",
        "labels",
        "operation",
        "trace",
        "span_id",
        "trace_sampled",
        "source_location",
        "split",
    ),
    "google.api.MonitoredResource": _table("type", "labels"),
    "google.logging.v2.LogEntryOperation": _table("id", "producer", "first", "last"),
    "google.logging.v2.LogEntrySourceLocation": _table("file", "line", "function"),
    "google.logging.v2.LogSplit": _table("uid", "index", "total_splits"),
    "google.logging.type.HttpRequest": _table(
        "request_method",
        "request_url",
        "request_size",
        "status",
        "response_size",
        "user_agent",
        "remote_ip",
        "server_ip",
        "referer",
        "latency",
        "cache_lookup",
        "cache_hit",
        "cache_validated_with_origin_server",
        "cache_fill_bytes",
        "protocol",
    ),
}


def split_path(path: str) -> list[str]:
    """Split a path into its elements, honouring ``key(...)`` escapes.

    Raises:
        PathSyntaxError: If a ``key(`` is not closed before the path ends.
    """
    if KEY_PREFIX not in path:
        return path.split(".")

    tokens = path.split(".")
    elements = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.startswith(KEY_PREFIX):
            raw = [token[len(KEY_PREFIX) :]]
            while not raw[-1].endswith(KEY_SUFFIX):
                i += 1
                if i >= len(tokens):
                    raise PathSyntaxError(path)
                raw.append(tokens[i])
            elements.append(".".join(raw)[: -len(KEY_SUFFIX)])
        else:
            elements.append(token)
        i += 1
    return elements


def escape_log_name(name: str) -> str:
    """Percent-escape a log name for use in a filter. Cloud Logging is picky."""
    if "/" in name:
        return quote(name, safe=_PATH_SEGMENT_SAFE)
    return name


def unescape_log_name(name: str) -> str:
    return unquote(name)


def short_log_name(entry: Message) -> str:
    """The trailing segment of the entry's log name, percent-decoded."""
    m = _LOG_NAME_RE.match(entry.log_name)
    if m is None:
        logger.warning(f"Unexpected log name format: {entry.log_name}")
        return entry.log_name
    return unescape_log_name(m.group(1))


def format_timestamp(ts: Message) -> str:
    """RFC 3339 with up to nanosecond precision, trailing zeros trimmed."""
    moment = datetime.fromtimestamp(ts.seconds, tz=UTC)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if ts.nanos:
        text += "." + f"{ts.nanos:09d}".rstrip("0")
    return text + "Z"


def enum_name(field: Any, number: int) -> str | int:
    """The symbolic name of an enum field value, or the number if unknown."""
    enum_value = field.enum_type.values_by_number.get(number)
    return enum_value.name if enum_value is not None else number


def to_plain(value: Any) -> Any:
    """Convert protobuf values into plain dicts, lists and scalars."""
    if isinstance(value, Message):
        name = value.DESCRIPTOR.full_name
        if name == _TIMESTAMP:
            return format_timestamp(value)
        if name == _DURATION:
            return value.ToJsonString()
        return json_format.MessageToDict(value)
    if isinstance(value, Mapping):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [to_plain(item) for item in value]
    return value


class PathResolver:
    """Reads values out of log entries by path."""

    def __init__(self, decoder: PayloadDecoder) -> None:
        self.decoder = decoder

    def payload(self, entry: Message) -> Any:
        """The entry's payload, whichever variant is present."""
        variant = entry.WhichOneof("payload")
        if variant == "proto_payload":
            return self.decode_any(entry.proto_payload)
        if variant == "json_payload":
            return json_format.MessageToDict(entry.json_payload)
        if variant == "text_payload":
            return entry.text_payload
        return None

    def decode_any(self, payload: Message) -> Any:
        try:
            return self.decoder.decode(payload)
        except PayloadDecodeError as e:
            logger.debug(f"Payload decode failed: {e}")
            return str(e)

    def resolve(self, entry: Message, path: str) -> Any:
        """Resolve a path against an entry.

        Returns the plain value found, or a descriptive string when a field
        or map key along the path does not exist.
        """
        value: Any = entry
        for i, segment in enumerate(split_path(path)):
            # The console names the payload after its variant; accept any of them.
            if i == 0 and _normalize(segment) in _PAYLOAD_SEGMENTS:
                value = self.payload(entry)
                continue

            value = self._unwrap(value)

            if isinstance(value, Message):
                field = self._find_field(value, segment)
                if field is None:
                    return f"Field {path} not found"
                field_value = getattr(value, field.name)
                if field.message_type is not None and field.message_type.full_name == _TIMESTAMP:
                    return format_timestamp(field_value)
                if field.enum_type is not None and isinstance(field_value, int):
                    field_value = enum_name(field, field_value)
                value = field_value
            elif isinstance(value, Mapping):
                if segment not in value:
                    return f"Key {segment} not found in map"
                value = value[segment]
            else:
                return f"Field {path} not found"

        result = to_plain(self._unwrap(value))

        # Log names arrive percent-encoded when they contain a slash.
        if path == "logName" and isinstance(result, str):
            return unescape_log_name(result)
        return result

    def _unwrap(self, value: Any) -> Any:
        if not isinstance(value, Message):
            return value
        name = value.DESCRIPTOR.full_name
        if name == _ANY:
            return self.decode_any(value)
        if name in _JSON_TYPES:
            return json_format.MessageToDict(value)
        return value

    @staticmethod
    def _find_field(message: Message, segment: str):
        descriptor = message.DESCRIPTOR
        table = FIELD_TABLES.get(descriptor.full_name)
        if table is None:
            table = {_normalize(f.name): f.name for f in descriptor.fields}
        field_name = table.get(_normalize(segment))
        if field_name is None:
            return None
        return descriptor.fields_by_name[field_name]
