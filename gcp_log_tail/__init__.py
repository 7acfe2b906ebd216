# gcp_log_tail/__init__.py

"""Tail Google Cloud Logging entries from many projects at once."""

__version__ = "0.1.0"
