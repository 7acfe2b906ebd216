# gcp_log_tail/config/errors.py

"""
Errors raised while reading and validating a tail configuration.
"""

from typing import Any

VALUE_ERROR_PREFIX = "Value error, "


class ConfigError(Exception):
    """Base configuration error.

    ``source`` names where the configuration came from: a file path,
    ``<stdin>``, or None for command line options only.
    """

    def __init__(self, message: str, source: str | None = None):
        self.message = message
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        if self.source:
            return f"{self.message} (in {self.source})"
        return self.message


class ConfigValidationError(ConfigError):
    """The merged configuration failed validation.

    ``errors`` is the pydantic error list, with locations given by the YAML
    key names.
    """

    def __init__(self, errors: list[dict[str, Any]], source: str | None = None):
        self.errors = errors
        super().__init__("Invalid configuration", source)

    def format_errors(self) -> str:
        """One line per problem, each pointing at the offending key."""
        lines = [f"Invalid configuration in {self.source or 'command line options'}:"]
        for error in self.errors:
            where = ".".join(str(loc) for loc in error.get("loc", ())) or "<root>"
            msg = error["msg"].removeprefix(VALUE_ERROR_PREFIX)
            lines.append(f"  {where}: {msg}")
        return "\n".join(lines)


class ConfigFileError(ConfigError):
    """The configuration could not be read or is not a YAML mapping."""
