"""
clinicsync logger: console + rotating JSON file.

Usage:
    from clinicsync.core.logger import LoggerConfig, configure, get_logger

    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/clinicsync"))
    configure()  # or from env: LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, ...

    logger = get_logger(__name__)
    logger.info("Export finished", extra={"owner_id": str(owner_id)})
"""
from clinicsync.core.logger.config import LoggerConfig
from clinicsync.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from clinicsync.core.logger.setup import configure, get_logger

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "get_logger",
]
