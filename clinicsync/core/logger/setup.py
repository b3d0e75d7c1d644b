"""
Logger setup: attach console and rotating JSON file handlers from config.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from clinicsync.core.logger.config import LoggerConfig
from clinicsync.core.logger.formatters import JsonFormatter, PlainConsoleFormatter

_default_config: Optional[LoggerConfig] = None


def configure(config: Optional[LoggerConfig] = None) -> None:
    """
    Configure the ``clinicsync`` root logger. Uses LoggerConfig.from_env()
    when no config is given. Call once at application startup; calling it
    again replaces the handlers (tests reconfigure freely).
    """
    global _default_config
    if config is None:
        config = LoggerConfig.from_env()
    _default_config = config

    level = getattr(logging, config.level.upper(), logging.INFO)
    root = logging.getLogger(config.root_name or "clinicsync")
    root.setLevel(level)
    root.handlers.clear()

    if config.console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(PlainConsoleFormatter())
        root.addHandler(console)

    if config.file_rotating and config.log_dir and config.log_dir.strip():
        try:
            os.makedirs(config.log_dir, exist_ok=True)
        except OSError:
            root.warning("Could not create log dir %s, skipping file handler", config.log_dir)
        else:
            file_handler = RotatingFileHandler(
                os.path.join(config.log_dir, f"{config.log_file_basename}.log"),
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(JsonFormatter())
            root.addHandler(file_handler)

    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger, configuring from env on first use so that the root
    has handlers even in scripts that never call configure().
    """
    if _default_config is None:
        configure()
    return logging.getLogger(name)
