# gcp_log_tail/config/__init__.py

"""
Configuration for gcp-log-tail: the validated tail configuration, its
loader with command line overrides, and process settings from the
environment.
"""

from .errors import ConfigError, ConfigFileError, ConfigValidationError
from .loader import CommandLineOverrides, ConfigLoader
from .settings import TailSettings
from .tail_config import (
    UNLIMITED,
    GroupNode,
    LogRule,
    MatchRule,
    OutputFormat,
    OutputNode,
    PathNode,
    RegexNode,
    TailConfig,
    parse_output_nodes,
)

__all__ = [
    # Models
    "TailConfig",
    "LogRule",
    "OutputNode",
    "PathNode",
    "RegexNode",
    "GroupNode",
    "OutputFormat",
    "MatchRule",
    "UNLIMITED",
    "parse_output_nodes",
    "TailSettings",
    # Loading
    "ConfigLoader",
    "CommandLineOverrides",
    # Error classes
    "ConfigError",
    "ConfigValidationError",
    "ConfigFileError",
]
