"""Root test configuration."""

import logging
from datetime import UTC, datetime, timedelta

import pytest
import structlog

from dorametrics.config import get_settings
from dorametrics.metrics import (
    Deployment,
    DeploymentStatus,
    Incident,
    IncidentSeverity,
    TimeRange,
)

NOW = datetime(2025, 1, 31, 12, 0, tzinfo=UTC)


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    """Isolate tests from DORAMETRICS_* variables and cached settings."""
    for name in (
        "DORAMETRICS_LOG_LEVEL",
        "DORAMETRICS_DEFAULT_WINDOW_DAYS",
        "DORAMETRICS_OUTPUT_FORMAT",
        "DORAMETRICS_DEPLOYMENTS_FILE",
        "DORAMETRICS_INCIDENTS_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo configure_logging() calls made by the code under test."""
    saved = structlog.get_config()
    package_logger = logging.getLogger("dorametrics")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    propagate = package_logger.propagate
    yield
    structlog.configure(**saved)
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


def make_deployment(
    id: str = "d1",
    status: DeploymentStatus = DeploymentStatus.SUCCESS,
    start_time: datetime = NOW - timedelta(days=1),
    end_time: datetime | None = None,
    commit_time: datetime | None = None,
    service: str = "checkout",
    environment: str = "production",
    **kwargs,
) -> Deployment:
    """Build a deployment with sensible defaults."""
    if end_time is None and status == DeploymentStatus.SUCCESS:
        end_time = start_time + timedelta(minutes=10)
    return Deployment(
        id=id,
        service=service,
        environment=environment,
        status=status,
        start_time=start_time,
        end_time=end_time,
        commit_sha=f"sha-{id}",
        commit_time=commit_time if commit_time is not None else start_time - timedelta(hours=1),
        **kwargs,
    )


def make_incident(
    id: str = "i1",
    start_time: datetime = NOW - timedelta(days=1),
    resolved_time: datetime | None = None,
    severity: IncidentSeverity = IncidentSeverity.HIGH,
    service: str = "checkout",
    environment: str = "production",
    **kwargs,
) -> Incident:
    """Build an incident with sensible defaults."""
    return Incident(
        id=id,
        title=f"Incident {id}",
        service=service,
        environment=environment,
        severity=severity,
        start_time=start_time,
        resolved_time=resolved_time,
        **kwargs,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def thirty_days():
    """A 30-day window ending at NOW."""
    return TimeRange(start=NOW - timedelta(days=30), end=NOW)
