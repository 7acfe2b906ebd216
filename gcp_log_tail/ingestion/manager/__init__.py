# gcp_log_tail/ingestion/manager/__init__.py

from .pipeline import TailPipeline

__all__ = ["TailPipeline"]
