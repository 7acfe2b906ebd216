# gcp_log_tail/config/loader.py

"""
Configuration loader: YAML from a file or stdin, then command line overrides.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, TextIO

from pydantic import ValidationError
import yaml

from .errors import ConfigFileError, ConfigValidationError
from .tail_config import TailConfig

logger = logging.getLogger(__name__)


@dataclass
class CommandLineOverrides:
    """Values given on the command line. They win over the YAML file."""

    projects: list[str] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    filters: list[str] = field(default_factory=list)
    format: str | None = None
    limit: int | None = None
    match_rule: str | None = None
    buffered: bool = False

    def apply(self, data: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of ``data`` with the overrides merged in."""
        merged = dict(data)
        if self.projects:
            merged["projects"] = list(self.projects)
        if self.logs:
            # Selecting logs on the command line drops their output rules.
            merged["logs"] = [{"name": name} for name in self.logs]
        if self.filters:
            merged["filters"] = list(self.filters)
        if self.format is not None:
            merged["format"] = self.format
        if self.limit is not None:
            merged["limit"] = self.limit
        if self.match_rule is not None:
            merged.pop("match_rule", None)
            merged["match-rule"] = self.match_rule
        if self.buffered:
            merged["buffered"] = True
        return merged


class ConfigLoader:
    """Loads and validates a :class:`TailConfig`."""

    def load(
        self,
        config_file: str | Path | None = None,
        stream: TextIO | None = None,
        overrides: CommandLineOverrides | None = None,
    ) -> TailConfig:
        """Load configuration from a file, else from a stream, then apply overrides.

        Raises:
            ConfigFileError: If the YAML cannot be read or parsed.
            ConfigValidationError: If the merged configuration is invalid.
        """
        source: str | None = None
        data: dict[str, Any] = {}

        if config_file is not None:
            source = str(config_file)
            data = self._load_yaml_file(Path(config_file))
        elif stream is not None:
            source = "<stdin>"
            data = self.parse(stream.read(), source)

        data = (overrides or CommandLineOverrides()).apply(data)
        return self.validate(data, source)

    def parse(self, text: str, source: str | None = None) -> dict[str, Any]:
        """Parse YAML text into a mapping."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigFileError(f"Invalid YAML configuration: {e}", source) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigFileError(
                f"Top-level YAML structure must be a mapping (dict), "
                f"got {type(data).__name__}",
                source,
            )
        return data

    def validate(self, data: dict[str, Any], source: str | None = None) -> TailConfig:
        try:
            config = TailConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(e.errors(), source) from e

        logger.debug(
            f"Loaded configuration: {len(config.projects)} projects, "
            f"{len(config.logs)} log rules, format={config.format.value}"
        )
        return config

    def _load_yaml_file(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            raise ConfigFileError("Configuration file not found", str(path))
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigFileError(
                f"Failed to read configuration file: {e}", str(path)
            ) from e
        return self.parse(text, str(path))
