# gcp_log_tail/transform/errors.py

"""
Error classes for field resolution and record transformation.
"""


class TransformError(Exception):
    """Base exception for transformation errors."""

    pass


class PathSyntaxError(TransformError, ValueError):
    """A field path expression could not be parsed."""

    def __init__(self, path: str, message: str | None = None) -> None:
        self.path = path
        super().__init__(message or f"Parse error on key(): {path}")


class PayloadDecodeError(TransformError):
    """A structured payload could not be decoded."""

    pass
