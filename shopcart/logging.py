"""
Logging setup for the shopcart service.

Usage:
    from shopcart.logging import get_logger
    logger = get_logger(__name__)
"""

import logging
import sys
from functools import cache

from .config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _get_log_level() -> int:
    return getattr(logging, get_settings().log_level, logging.INFO)


def _configure_root_logger() -> None:
    root = logging.getLogger()

    # uvicorn or pytest may already have installed handlers
    if root.handlers:
        return

    root.setLevel(_get_log_level())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_get_log_level())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    if not get_settings().sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_configure_root_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def sanitize_for_logging(value, max_length: int = 50) -> str:
    """
    Make a user-supplied value safe to put in a log line.

    Control characters that could forge log entries are escaped and the
    result is truncated to ``max_length`` characters.
    """
    if value is None or value == "":
        return "N/A"
    safe_value = (
        str(value)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."


__all__ = ["LOG_FORMAT", "get_logger", "sanitize_for_logging"]
