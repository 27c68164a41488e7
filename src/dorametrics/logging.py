"""
Logging setup for dorametrics.

structlog is bridged onto the stdlib "dorametrics" logger. Records are
written as JSON lines to stderr; stdout carries only report output.
"""

import logging
import sys
from typing import Any

import structlog

from dorametrics.config import get_settings

LOGGER_NAME = "dorametrics"


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = get_settings().log_level
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(level: int | str | None = None) -> int:
    """
    Configure structlog/standard logging bridge.

    Args:
        level: Level name or number. Defaults to DORAMETRICS_LOG_LEVEL.

    Returns:
        The numeric level applied to the "dorametrics" logger
    """
    resolved = _resolve_level(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger = logging.getLogger(LOGGER_NAME)
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(resolved)
    package_logger.propagate = False

    return resolved


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Bind contextual fields for downstream logs."""

    logger = structlog.get_logger(LOGGER_NAME)
    return logger.bind(**kwargs)
