"""
Logger configuration, built in code or from the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: str = "true") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class LoggerConfig:
    """
    Configuration for the clinicsync logger.

    Use LoggerConfig.from_env() for env-based config, or build explicitly.
    """

    # DEBUG, INFO, WARNING, ERROR, CRITICAL
    level: str = "INFO"
    # Directory for the rotating JSON file; None disables the file handler
    log_dir: Optional[str] = None
    log_file_basename: str = "clinicsync"
    max_bytes: int = 5 * 1024 * 1024  # 5 MB
    backup_count: int = 5
    # Handlers are attached here; module loggers (clinicsync.*) inherit them
    root_name: str = "clinicsync"
    console: bool = True
    file_rotating: bool = True

    @classmethod
    def from_env(cls) -> "LoggerConfig":
        """Build config from LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, LOG_MAX_BYTES,
        LOG_BACKUP_COUNT, LOG_CONSOLE and LOG_FILE_ROTATING."""
        return cls(
            level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_dir=os.environ.get("LOG_DIR") or None,
            log_file_basename=os.environ.get("LOG_FILE_BASENAME", "clinicsync"),
            max_bytes=int(os.environ.get("LOG_MAX_BYTES", "5242880")),
            backup_count=int(os.environ.get("LOG_BACKUP_COUNT", "5")),
            console=_env_flag("LOG_CONSOLE"),
            file_rotating=_env_flag("LOG_FILE_ROTATING"),
        )
