# gcp_log_tail/config/tail_config.py

"""
Configuration models for tailing and reshaping log entries.

Example YAML::

    projects: [my-project]
    match-rule: drop-no-match
    common-output:
      - project: resource.labels.project_id
    logs:
      - name: cloudaudit.googleapis.com/activity
        type: gce_instance
        output:
          - when: timestamp
          - who: protoPayload.authenticationInfo.principalEmail
          - zone:
              src: resource.labels.zone
              regex: (.*)-(.*)-(.*)
              value: $1-$2
          - request:
              method: protoPayload.methodName
              decision: labels.key(authorization.k8s.io/decision)
    filters:
      - severity>=WARNING

Each output list is a list of single-field mappings. A field's value is a
path, a regex rule (a mapping with ``src``, ``regex`` and ``value``), or a
nested group of further fields.
"""

from collections.abc import Mapping
from enum import Enum
import importlib
import re
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..transform.errors import PathSyntaxError
from ..transform.paths import split_path

# A limit of zero means no limit.
UNLIMITED = 0

REGEX_KEYS = ("src", "regex", "value")


class OutputFormat(str, Enum):
    """Supported output formats."""

    YAML = "yaml"
    JSONL = "jsonl"
    CSV = "csv"


class MatchRule(str, Enum):
    """What happens to entries no log rule matches."""

    ALL = "all"
    DROP_NO_MATCH = "drop-no-match"


def _check_path(path: str) -> str:
    try:
        split_path(path)
    except PathSyntaxError as e:
        raise ValueError(str(e)) from e
    return path


class PathNode(BaseModel):
    """Copies the value found at ``path``."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return _check_path(v)


class RegexNode(BaseModel):
    """Derives a string from the value at ``src`` with a regex template."""

    model_config = ConfigDict(frozen=True)

    name: str
    src: str
    regex: str
    value: str

    @field_validator("src")
    @classmethod
    def validate_src(cls, v: str) -> str:
        return _check_path(v)

    @field_validator("regex")
    @classmethod
    def validate_regex(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regex {v!r}: {e}") from e
        return v


class GroupNode(BaseModel):
    """A named sub-tree of further output fields."""

    model_config = ConfigDict(frozen=True)

    name: str
    children: list["OutputNode"] = Field(default_factory=list)


OutputNode = Union[PathNode, RegexNode, GroupNode]
GroupNode.model_rebuild()


def parse_output_nodes(raw: Any, where: str = "output") -> list[OutputNode]:
    """Turn the YAML form of an output list into output nodes.

    Raises:
        ValueError: On malformed items, bad paths or regexes, or a name used
            twice at the same level.
    """
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        items = [{key: value} for key, value in raw.items()]
    elif isinstance(raw, list):
        items = raw
    else:
        raise ValueError(f"{where} must be a list of single-field mappings")

    nodes: list[OutputNode] = []
    seen: set[str] = set()
    for item in items:
        if isinstance(item, (PathNode, RegexNode, GroupNode)):
            node = item
        elif isinstance(item, Mapping) and len(item) == 1:
            ((name, value),) = item.items()
            node = _parse_node(str(name), value)
        else:
            raise ValueError(
                f"each {where} item must be a mapping with exactly one field, got {item!r}"
            )

        if node.name in seen:
            raise ValueError(f"duplicate output field '{node.name}' in {where}")
        seen.add(node.name)
        nodes.append(node)
    return nodes


def _parse_node(name: str, value: Any) -> OutputNode:
    try:
        if isinstance(value, str):
            return PathNode(name=name, path=value)
        if isinstance(value, Mapping) and all(key in value for key in REGEX_KEYS):
            return RegexNode(
                name=name, src=value["src"], regex=value["regex"], value=value["value"]
            )
        if isinstance(value, (Mapping, list)):
            return GroupNode(name=name, children=parse_output_nodes(value, where=name))
    except ValidationError as e:
        raise ValueError(f"output field '{name}': {e.errors()[0]['msg']}") from e
    raise ValueError(
        f"output field '{name}' must be a path, a regex rule or a group, got {value!r}"
    )


class LogRule(BaseModel):
    """Selects a log (and optionally a resource type) and says what to output."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Short log name")
    resource_type: str | None = Field(
        default=None, alias="type", description="Required resource type"
    )
    output: list[OutputNode] = Field(default_factory=list)

    @field_validator("output", mode="before")
    @classmethod
    def parse_output(cls, v: Any) -> list[OutputNode]:
        return parse_output_nodes(v)

    def matches(self, log_name: str, resource_type: str) -> bool:
        """Whether an entry with this short log name and resource type is selected."""
        if log_name != self.name:
            return False
        return not self.resource_type or self.resource_type == resource_type


class TailConfig(BaseModel):
    """Complete, validated configuration for one tailing run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    projects: list[str] = Field(default_factory=list, validate_default=True)
    format: OutputFormat = OutputFormat.YAML
    match_rule: MatchRule = Field(default=MatchRule.ALL, alias="match-rule")
    common: list[OutputNode] = Field(default_factory=list, alias="common-output")
    logs: list[LogRule] = Field(default_factory=list)
    filters: list[str] = Field(default_factory=list)
    limit: int = Field(default=UNLIMITED, ge=0)
    buffered: bool = False
    proto_modules: list[str] = Field(default_factory=list, alias="proto-modules")

    @field_validator("projects")
    @classmethod
    def validate_projects(cls, v: list[str]) -> list[str]:
        projects = [p.strip() for p in v if p and p.strip()]
        if not projects:
            raise ValueError("You must specify at least one project.")
        return projects

    @field_validator("format", mode="before")
    @classmethod
    def validate_format(cls, v: Any) -> Any:
        # "json" is accepted as another name for line-delimited JSON.
        if isinstance(v, str) and v.strip().lower() == "json":
            return OutputFormat.JSONL
        return v

    @field_validator("common", mode="before")
    @classmethod
    def parse_common(cls, v: Any) -> list[OutputNode]:
        return parse_output_nodes(v, where="common-output")

    @field_validator("match_rule", mode="before")
    @classmethod
    def default_match_rule(cls, v: Any) -> Any:
        return v or MatchRule.ALL

    @field_validator("proto_modules")
    @classmethod
    def validate_proto_modules(cls, v: list[str]) -> list[str]:
        for module_name in v:
            try:
                importlib.import_module(module_name)
            except ImportError as e:
                raise ValueError(f"Cannot import schema module {module_name}: {e}") from e
        return v

    @property
    def unlimited(self) -> bool:
        return self.limit == UNLIMITED

    def rule_names(self) -> list[str]:
        """Distinct log rule names, in declaration order."""
        return list(dict.fromkeys(rule.name for rule in self.logs))

    def find_rule(self, log_name: str, resource_type: str) -> LogRule | None:
        """The first matching rule that declares output fields."""
        for rule in self.logs:
            if rule.output and rule.matches(log_name, resource_type):
                return rule
        return None
