# gcp_log_tail/ingestion/processor/__init__.py

from .log_processor import LogProcessor

__all__ = ["LogProcessor"]
