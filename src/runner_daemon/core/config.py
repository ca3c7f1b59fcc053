"""Configuration management for Runner Daemon."""

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from runner_daemon.core.exceptions import ConfigurationError


DEFAULT_PID_DIR = "/var/run/runnerdaemon"
DEFAULT_LOG_DIR = "/var/log/runnerdaemon"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DaemonSettings(BaseSettings):
    """Daemon configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="RUNNER_DAEMON_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    name: str = Field(..., description="Daemon name, used for default paths and as log channel")
    pid_file: Optional[str] = Field(None, description="Pid file path")
    log_file: Optional[str] = Field(None, description="Log file path")

    # Observability
    log_level: str = Field("INFO", description="Minimum log level")
    log_format: Literal["line", "json"] = Field("line", description="Log record rendering")

    # Supervision
    reap_interval: float = Field(
        0.05,
        ge=0,
        description="Idle wait between reap passes while the pool is full, 0 to busy-wait",
    )
    shutdown_timeout: float = Field(
        10.0,
        ge=0,
        description="How long the controller waits for workers to exit on shutdown",
    )
    set_process_title: bool = Field(True, description="Rename processes as shown by ps")
    process_title_prefix: str = Field("runnerdaemon", description="Prefix of process titles")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject empty names."""
        if not v or not v.strip():
            raise ValueError("Not set daemon name")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard logging level names, case-insensitively."""
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level `{v}`, expected one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def pid_path(self) -> Path:
        """Pid file path, derived from the name when not set."""
        if self.pid_file:
            return Path(self.pid_file)
        return Path(DEFAULT_PID_DIR) / f"{self.name}.pid"

    @property
    def log_path(self) -> Path:
        """Log file path, derived from the name when not set."""
        if self.log_file:
            return Path(self.log_file)
        return Path(DEFAULT_LOG_DIR) / f"{self.name}.log"

    def process_title(self, role: str) -> str:
        """Title shown by ps for the main ("m") or child ("c") process."""
        return f"{self.process_title_prefix}.{role}.{self.name}"


def prepare_directories(settings: DaemonSettings) -> None:
    """Create the pid and log directories and make sure they are writable."""
    for path in (settings.pid_path.parent, settings.log_path.parent):
        try:
            path.mkdir(mode=0o777, parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Directory `{path}` was not created: {e}") from e
        if not path.is_dir() or not os.access(path, os.W_OK):
            raise ConfigurationError(f"Directory `{path}` not writable")
