"""Utility helpers shared across TagSense.

- logger_utils: loguru logger setup
- decorator_utils: retry decorators for flaky I/O
"""

from .decorator_utils import async_retry_decorator
from .logger_utils import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "async_retry_decorator",
]
