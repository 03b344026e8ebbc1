"""Logging setup based on loguru."""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure loguru sinks for console and (optionally) a rotating file.

    Args:
        level: Minimum log level name (loguru levels, e.g. INFO, SUCCESS)
        log_file: Optional path of the log file
    """
    logger.remove()
    logger.configure(extra={"name": "tagsense"})
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, enqueue=False)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=_LOG_FORMAT,
            rotation="10 MB",
            retention="14 days",
            encoding="utf-8",
        )


def get_logger(name: str | None = None):
    """Get a loguru logger bound to a module name."""
    return logger.bind(name=name or "tagsense")
