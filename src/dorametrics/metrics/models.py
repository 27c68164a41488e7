"""
DORA metrics data models.

Deployments and incidents are the two input streams; TimeRange bounds the
observation window and DORAMetrics holds the computed result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, Iterable, TypeVar

from dorametrics.core.errors import ValidationError


class DeploymentStatus(StrEnum):
    """Deployment lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class IncidentSeverity(StrEnum):
    """Incident severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DataQuality(StrEnum):
    """Confidence label for a computed metrics set."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IncidentAlreadyResolvedError(ValidationError):
    """Raised when resolving an incident that already has a resolved time."""


@dataclass
class Deployment:
    """A single deployment attempt."""

    id: str
    service: str
    environment: str
    status: DeploymentStatus
    start_time: datetime
    commit_sha: str
    commit_time: datetime
    end_time: datetime | None = None

    # Metadata
    version: str = ""
    author: str = ""
    repository: str = ""
    branch: str = ""
    build_url: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_successful(self) -> bool:
        return self.status == DeploymentStatus.SUCCESS

    def is_failed(self) -> bool:
        return self.status == DeploymentStatus.FAILED

    def lead_time(self) -> timedelta:
        """Time from commit to the end of this deployment (zero while unfinished)."""
        if self.end_time is None:
            return timedelta(0)
        return self.end_time - self.commit_time

    def duration(self) -> timedelta:
        """Wall-clock duration of the deployment (zero while unfinished)."""
        if self.end_time is None:
            return timedelta(0)
        return self.end_time - self.start_time

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "service": self.service,
            "environment": self.environment,
            "version": self.version,
            "status": self.status.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "commit_sha": self.commit_sha,
            "commit_time": self.commit_time.isoformat(),
            "author": self.author,
            "repository": self.repository,
            "branch": self.branch,
            "build_url": self.build_url,
            "tags": dict(self.tags),
        }


@dataclass
class Incident:
    """A service disruption."""

    id: str
    title: str
    service: str
    environment: str
    severity: IncidentSeverity
    start_time: datetime
    resolved_time: datetime | None = None
    description: str = ""
    root_cause: str | None = None
    assignee: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_resolved(self) -> bool:
        return self.resolved_time is not None

    def mttr(self) -> timedelta:
        """Time from start to resolution (zero while open)."""
        if self.resolved_time is None:
            return timedelta(0)
        return self.resolved_time - self.start_time

    def resolve(self, resolved_at: datetime) -> None:
        """
        Mark the incident resolved.

        An incident is resolved exactly once; a second call raises and
        leaves the original resolved time in place.

        Raises:
            IncidentAlreadyResolvedError: If the incident is already resolved
        """
        if self.resolved_time is not None:
            raise IncidentAlreadyResolvedError(
                "Incident already resolved",
                details={"incident_id": self.id, "resolved_time": self.resolved_time.isoformat()},
            )
        self.resolved_time = resolved_at
        self.updated_at = resolved_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "service": self.service,
            "environment": self.environment,
            "severity": self.severity.value,
            "start_time": self.start_time.isoformat(),
            "resolved_time": self.resolved_time.isoformat() if self.resolved_time else None,
            "root_cause": self.root_cause,
            "assignee": self.assignee,
            "tags": dict(self.tags),
        }


@dataclass(frozen=True)
class TimeRange:
    """Observation window for metrics calculation."""

    start: datetime
    end: datetime

    def duration(self) -> timedelta:
        return self.end - self.start

    def days(self) -> float:
        """Length of the range in days. Zero or negative for empty/inverted ranges."""
        return self.duration().total_seconds() / 3600 / 24

    def contains(self, t: datetime) -> bool:
        """Strictly exclusive on both bounds: start < t < end."""
        return self.start < t < self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class DORAMetrics:
    """Computed DORA metrics for a time range."""

    deployment_frequency: float  # Successful deployments per day
    lead_time: timedelta
    mttr: timedelta
    change_failure_rate: float  # Ratio, 0.15 = 15%
    time_range: TimeRange
    calculated_at: datetime
    data_quality: DataQuality

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON export."""
        return {
            "deployment_frequency": round(self.deployment_frequency, 4),
            "lead_time": format_duration(self.lead_time),
            "lead_time_seconds": self.lead_time.total_seconds(),
            "mttr": format_duration(self.mttr),
            "mttr_seconds": self.mttr.total_seconds(),
            "change_failure_rate": round(self.change_failure_rate, 4),
            "time_range": self.time_range.to_dict(),
            "calculated_at": self.calculated_at.isoformat(),
            "data_quality": self.data_quality.value,
        }


Entity = TypeVar("Entity", Deployment, Incident)


@dataclass
class MetricsFilter:
    """
    Narrows deployments and incidents before calculation.

    Empty service/environment lists mean no constraint. Every tag given
    must be present with the same value.
    """

    time_range: TimeRange
    services: list[str] = field(default_factory=list)
    environments: list[str] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)

    def _matches(self, service: str, environment: str, tags: dict[str, str]) -> bool:
        if self.services and service not in self.services:
            return False
        if self.environments and environment not in self.environments:
            return False
        return all(tags.get(key) == value for key, value in self.tags.items())

    def matches_deployment(self, deployment: Deployment) -> bool:
        return self._matches(deployment.service, deployment.environment, deployment.tags)

    def matches_incident(self, incident: Incident) -> bool:
        return self._matches(incident.service, incident.environment, incident.tags)

    def apply(self, entities: Iterable[Entity]) -> list[Entity]:
        """Return entities matching service, environment and tag constraints."""
        return [e for e in entities if self._matches(e.service, e.environment, e.tags)]


def format_duration(value: timedelta) -> str:
    """Render a duration as e.g. '2h 30m', '45m' or '3d 4h'."""
    total_seconds = int(value.total_seconds())
    if total_seconds <= 0:
        return "0m"

    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    if days:
        return f"{days}d {hours}h" if hours else f"{days}d"
    if hours:
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    if minutes:
        return f"{minutes}m"
    return f"{seconds}s"


# Predefined time ranges


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


def last_n_days(days: int, now: datetime | None = None) -> TimeRange:
    end = _now(now)
    return TimeRange(start=end - timedelta(days=days), end=end)


def last_7_days(now: datetime | None = None) -> TimeRange:
    return last_n_days(7, now)


def last_30_days(now: datetime | None = None) -> TimeRange:
    return last_n_days(30, now)


def last_90_days(now: datetime | None = None) -> TimeRange:
    return last_n_days(90, now)


def this_month(now: datetime | None = None) -> TimeRange:
    """From midnight on the first of the current month until now."""
    end = _now(now)
    start = end.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return TimeRange(start=start, end=end)


def last_month(now: datetime | None = None) -> TimeRange:
    """The whole previous calendar month, ending one microsecond before this month."""
    current = _now(now)
    this_month_start = current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if this_month_start.month == 1:
        start = this_month_start.replace(year=this_month_start.year - 1, month=12)
    else:
        start = this_month_start.replace(month=this_month_start.month - 1)
    return TimeRange(start=start, end=this_month_start - timedelta(microseconds=1))


PREDEFINED_RANGES = {
    "last-7-days": last_7_days,
    "last-30-days": last_30_days,
    "last-90-days": last_90_days,
    "this-month": this_month,
    "last-month": last_month,
}


def parse_time_range(name: str, now: datetime | None = None) -> TimeRange:
    """
    Resolve a named range such as 'last-30-days'.

    Raises:
        ValidationError: If the name is not a known range
    """
    factory = PREDEFINED_RANGES.get(name)
    if factory is None:
        raise ValidationError(
            f"Unknown time range: {name}",
            details={"valid": ", ".join(PREDEFINED_RANGES)},
        )
    return factory(now)
