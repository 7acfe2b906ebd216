# gcp_log_tail/ingestion/adapters/__init__.py

"""
Log source adapters for the ingestion system.
"""

from .gcp_tail import GCPTailAdapter, TailStream, build_filter

__all__ = [
    "GCPTailAdapter",
    "TailStream",
    "build_filter",
]
