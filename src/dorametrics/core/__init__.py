"""Core modules for dorametrics - error taxonomy and exit codes."""

from dorametrics.core.errors import (
    ConfigurationError,
    DataLoadError,
    DoraMetricsError,
    ExitCode,
    MetricsError,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "DoraMetricsError",
    "ConfigurationError",
    "DataLoadError",
    "ValidationError",
    "MetricsError",
    "main_with_error_handling",
    "format_error_message",
]
