"""
dorametrics configuration.

Pydantic-based settings read from DORAMETRICS_* environment variables
and an optional .env file.
"""

from dorametrics.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
