# gcp_log_tail/transform/__init__.py

"""
Field resolution and record transformation.

``paths`` parses and resolves field paths, ``payload`` decodes typed
payloads, ``regex_value`` derives values with regex templates, and
``output_builder`` / ``drop_filter`` apply the configured rules.
"""

from .errors import PathSyntaxError, PayloadDecodeError, TransformError
from .paths import (
    PathResolver,
    escape_log_name,
    format_timestamp,
    short_log_name,
    split_path,
    unescape_log_name,
)
from .payload import PayloadDecoder, TypeRegistry
from .regex_value import regex_value

__all__ = [
    "PathResolver",
    "PayloadDecoder",
    "TypeRegistry",
    "split_path",
    "escape_log_name",
    "unescape_log_name",
    "short_log_name",
    "format_timestamp",
    "regex_value",
    # Errors
    "TransformError",
    "PathSyntaxError",
    "PayloadDecodeError",
]
