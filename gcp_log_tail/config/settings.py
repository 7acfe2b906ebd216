# gcp_log_tail/config/settings.py

"""
Process settings read from the environment.

These tune the runtime (logging, queue capacity, worker count) and are
separate from the tail configuration, which describes what to read and how
to reshape it.
"""

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TailSettings(BaseSettings):
    """Runtime settings, overridable with ``GCP_LOG_TAIL_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="GCP_LOG_TAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Diagnostic log level")
    log_format: str = Field(default="text", description="Diagnostic log format")
    queue_size: int = Field(
        default=1000, ge=1, description="Capacity of the record queue"
    )
    worker_multiplier: int = Field(
        default=3, ge=1, description="Workers per available CPU"
    )
    reconnect_delay: float = Field(
        default=0.0, ge=0, description="Seconds to wait before re-opening a stream"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v.lower()

    @property
    def worker_count(self) -> int:
        return self.worker_multiplier * (os.cpu_count() or 1)
