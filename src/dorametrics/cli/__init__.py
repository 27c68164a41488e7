"""
CLI commands for dorametrics.
"""

from dorametrics.cli.report import report_command

__all__ = ["report_command"]
