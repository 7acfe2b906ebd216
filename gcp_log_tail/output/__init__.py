# gcp_log_tail/output/__init__.py

"""
Output serialization and the shared sink.
"""

from .serializers import SerializationError, serialize
from .sink import OutputSink

__all__ = [
    "OutputSink",
    "SerializationError",
    "serialize",
]
