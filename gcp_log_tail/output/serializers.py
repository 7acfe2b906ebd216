# gcp_log_tail/output/serializers.py

"""
Serializers for output records: YAML documents, JSON lines and CSV rows.
"""

import csv
import io
import json
from typing import Any

import yaml

from ..config.tail_config import OutputFormat
from ..transform.output_builder import BuildResult


class SerializationError(Exception):
    """An output record could not be serialized."""

    pass


def to_yaml(record: dict[str, Any]) -> str:
    """One YAML document, starting with ``---``."""
    return "---\n" + yaml.safe_dump(
        record, sort_keys=False, default_flow_style=False, allow_unicode=True
    )


def to_jsonl(record: dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False) + "\n"


def csv_cell(value: Any) -> str:
    # Strings go out verbatim, everything else as JSON.
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def to_csv(record: dict[str, Any], columns: list[str]) -> str:
    """One CSV row; ``columns`` fixes the cell order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([csv_cell(record.get(column)) for column in columns])
    return buffer.getvalue()


def serialize(result: BuildResult, fmt: OutputFormat | str) -> str:
    """Serialize a built record in the requested format.

    Raises:
        SerializationError: If the record cannot be encoded or the format is unknown
    """
    try:
        fmt = OutputFormat(fmt)
        if fmt == OutputFormat.YAML:
            return to_yaml(result.record)
        if fmt == OutputFormat.JSONL:
            return to_jsonl(result.record)
        return to_csv(result.record, result.columns or list(result.record))
    except (TypeError, ValueError, yaml.YAMLError, csv.Error) as e:
        raise SerializationError(f"Failed to serialize record as {fmt}: {e}") from e
