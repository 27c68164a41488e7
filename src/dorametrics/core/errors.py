"""
Unified error handling for dorametrics.

The metrics core is total over well-typed input and never raises; errors
come from the edges (loading data, configuration, the CLI).

Exit Codes:
- 0: Elite/high performance
- 1: Medium performance
- 2: Low performance
- 10: Configuration error
- 11: Data load error (missing or malformed input files)
- 12: Validation error
- 13: Metrics calculation error
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    LOW_PERFORMANCE = 2
    CONFIG_ERROR = 10
    DATA_LOAD_ERROR = 11
    VALIDATION_ERROR = 12
    METRICS_ERROR = 13
    UNKNOWN_ERROR = 127


class DoraMetricsError(Exception):
    """Base exception for dorametrics errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DoraMetricsError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class DataLoadError(DoraMetricsError):
    """Raised when deployment or incident data cannot be read or parsed."""

    exit_code = ExitCode.DATA_LOAD_ERROR


class ValidationError(DoraMetricsError):
    """Raised for validation failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class MetricsError(DoraMetricsError):
    """Raised by a fallible step of the metrics calculation."""

    exit_code = ExitCode.METRICS_ERROR


F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI commands that converts exceptions to exit codes.

    Exit codes:
        - DoraMetricsError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except DoraMetricsError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                _print_error(format_error_message(e))
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: DoraMetricsError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg


def _print_error(message: str) -> None:
    from dorametrics.cli.ux import error as print_error

    print_error(message)
