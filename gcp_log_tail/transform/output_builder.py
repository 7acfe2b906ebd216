# gcp_log_tail/transform/output_builder.py

"""
Builds output records from log entries and the configured output fields.
"""

from dataclasses import dataclass, field
from typing import Any

from google.protobuf.message import Message

from ..config.tail_config import GroupNode, LogRule, OutputNode, RegexNode, TailConfig
from .paths import (
    PathResolver,
    enum_name,
    format_timestamp,
    short_log_name,
    to_plain,
    unescape_log_name,
)
from .payload import PayloadDecoder
from .regex_value import regex_value

_PAYLOAD_KEYS = {
    "proto_payload": "protoPayload",
    "json_payload": "jsonPayload",
    "text_payload": "textPayload",
}


@dataclass
class BuildResult:
    """An output record plus what produced it."""

    record: dict[str, Any]
    rule: LogRule | None = None
    # Field names in declaration order; CSV columns follow it.
    columns: list[str] = field(default_factory=list)
    full_dump: bool = False


class OutputBuilder:
    """Applies ``common-output`` and the first matching log rule to an entry."""

    def __init__(self, config: TailConfig, decoder: PayloadDecoder | None = None) -> None:
        self.config = config
        self.resolver = PathResolver(decoder or PayloadDecoder())

    def build(self, entry: Message) -> BuildResult:
        """Build the output record for an entry.

        When neither ``common-output`` nor a matching rule yields a field,
        the whole entry is dumped instead, so every entry produces output.
        """
        record: dict[str, Any] = {}
        declared: list[OutputNode] = list(self.config.common)
        self.apply(self.config.common, record, entry)

        rule = self.config.find_rule(short_log_name(entry), entry.resource.type)
        if rule is not None:
            self.apply(rule.output, record, entry)
            declared.extend(rule.output)

        if not record:
            record = self.dump(entry)
            return BuildResult(
                record=record, rule=rule, columns=list(record), full_dump=True
            )

        columns = list(dict.fromkeys(node.name for node in declared))
        return BuildResult(record=record, rule=rule, columns=columns)

    def apply(
        self, nodes: list[OutputNode], record: dict[str, Any], entry: Message
    ) -> None:
        """Assign each node's value into ``record``."""
        for node in nodes:
            if isinstance(node, GroupNode):
                child: dict[str, Any] = {}
                record[node.name] = child
                self.apply(node.children, child, entry)
            elif isinstance(node, RegexNode):
                source = self.resolver.resolve(entry, node.src)
                # Only strings can be matched; anything else yields no field.
                if isinstance(source, str):
                    record[node.name] = regex_value(source, node.regex, node.value)
            else:
                record[node.name] = self.resolver.resolve(entry, node.path)

    def dump(self, entry: Message) -> dict[str, Any]:
        """Every structural field of the entry."""
        item: dict[str, Any] = {"logName": unescape_log_name(entry.log_name)}
        if entry.HasField("resource"):
            item["resource"] = to_plain(entry.resource)
        item["timestamp"] = format_timestamp(entry.timestamp)
        item["receiveTimestamp"] = format_timestamp(entry.receive_timestamp)
        item["severity"] = enum_name(
            entry.DESCRIPTOR.fields_by_name["severity"], entry.severity
        )
        item["insertId"] = entry.insert_id
        if entry.HasField("http_request"):
            item["httpRequest"] = to_plain(entry.http_request)
        item["labels"] = dict(entry.labels)
        if entry.HasField("operation"):
            item["operation"] = to_plain(entry.operation)
        item["trace"] = entry.trace
        item["spanId"] = entry.span_id
        item["traceSampled"] = entry.trace_sampled
        if entry.HasField("source_location"):
            item["sourceLocation"] = to_plain(entry.source_location)
        if entry.HasField("split"):
            item["split"] = to_plain(entry.split)

        key = _PAYLOAD_KEYS.get(entry.WhichOneof("payload"), "payload")
        item[key] = self.resolver.payload(entry)
        return item
