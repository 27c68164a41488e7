"""
DORA metrics calculator.

Computes deployment frequency, lead time for changes, mean time to recovery
and change failure rate from in-memory deployments and incidents, then
classifies each metric into a performance level.

All operations are pure: inputs are never mutated and the calculator holds
no state, so one instance can be shared freely between threads.
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol, Sequence, TypeVar

import structlog

from dorametrics.metrics.models import (
    DataQuality,
    Deployment,
    DORAMetrics,
    Incident,
    TimeRange,
)

logger = structlog.get_logger()

# An incident starting within this long after a successful deployment
# finished is attributed to that deployment.
CORRELATION_WINDOW = timedelta(hours=2)

# Data quality heuristic
MIN_QUALITY_WINDOW_DAYS = 7
HIGH_QUALITY_DEPLOYS_PER_DAY = 0.5


class PerformanceLevel(StrEnum):
    """DORA performance levels."""

    ELITE = "elite"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Threshold ladders, evaluated top-down (first match wins)
DEPLOYMENT_FREQUENCY_THRESHOLDS: tuple[tuple[float, PerformanceLevel], ...] = (
    (1.0, PerformanceLevel.ELITE),  # Daily or more
    (0.14, PerformanceLevel.HIGH),  # Weekly
    (0.033, PerformanceLevel.MEDIUM),  # Monthly
)
LEAD_TIME_HOURS_THRESHOLDS: tuple[tuple[float, PerformanceLevel], ...] = (
    (24, PerformanceLevel.ELITE),  # Under a day
    (168, PerformanceLevel.HIGH),  # Under a week
    (720, PerformanceLevel.MEDIUM),  # Under a month
)
MTTR_HOURS_THRESHOLDS: tuple[tuple[float, PerformanceLevel], ...] = (
    (1, PerformanceLevel.ELITE),  # Under an hour
    (24, PerformanceLevel.HIGH),  # Under a day
    (168, PerformanceLevel.MEDIUM),  # Under a week
)
CHANGE_FAILURE_RATE_THRESHOLDS: tuple[tuple[float, PerformanceLevel], ...] = (
    (0.15, PerformanceLevel.ELITE),
    (0.20, PerformanceLevel.HIGH),
    (0.30, PerformanceLevel.MEDIUM),
)

METRIC_NAMES = ("deployment_frequency", "lead_time", "mttr", "change_failure_rate")


class _Timed(Protocol):
    start_time: datetime


T = TypeVar("T", bound=_Timed)


def _hours(value: timedelta) -> float:
    return value.total_seconds() / 3600


def _at_least(value: float, ladder: Sequence[tuple[float, PerformanceLevel]]) -> PerformanceLevel:
    for threshold, level in ladder:
        if value >= threshold:
            return level
    return PerformanceLevel.LOW


def _at_most(value: float, ladder: Sequence[tuple[float, PerformanceLevel]]) -> PerformanceLevel:
    for threshold, level in ladder:
        if value <= threshold:
            return level
    return PerformanceLevel.LOW


class DORACalculator:
    """Calculates DORA metrics and performance classification."""

    def calculate_all(
        self,
        deployments: Sequence[Deployment],
        incidents: Sequence[Incident],
        time_range: TimeRange,
    ) -> DORAMetrics:
        """
        Calculate all four DORA metrics for a time range.

        Deployments and incidents are first narrowed to those starting
        strictly inside the range.

        Args:
            deployments: Deployment records (any time span)
            incidents: Incident records (any time span)
            time_range: Observation window

        Returns:
            DORAMetrics stamped with the current UTC time

        Raises:
            MetricsError: Reserved for fallible calculation steps; none of
                the current steps can fail on well-typed input.
        """
        window_deployments = self.filter_by_window(deployments, time_range)
        window_incidents = self.filter_by_window(incidents, time_range)

        metrics = DORAMetrics(
            deployment_frequency=self.calculate_deployment_frequency(
                window_deployments, time_range
            ),
            lead_time=self.calculate_lead_time(window_deployments),
            mttr=self.calculate_mttr(window_incidents),
            change_failure_rate=self.calculate_change_failure_rate(
                window_deployments, window_incidents
            ),
            time_range=time_range,
            calculated_at=datetime.now(UTC),
            data_quality=self.assess_data_quality(
                window_deployments, window_incidents, time_range
            ),
        )

        logger.debug(
            "dora_metrics_calculated",
            deployments=len(window_deployments),
            incidents=len(window_incidents),
            deployment_frequency=metrics.deployment_frequency,
            lead_time_seconds=metrics.lead_time.total_seconds(),
            mttr_seconds=metrics.mttr.total_seconds(),
            change_failure_rate=metrics.change_failure_rate,
            data_quality=metrics.data_quality.value,
        )

        return metrics

    def filter_by_window(self, entities: Sequence[T], time_range: TimeRange) -> list[T]:
        """Keep entities whose start time lies strictly inside the range."""
        return [e for e in entities if time_range.contains(e.start_time)]

    def calculate_deployment_frequency(
        self, deployments: Sequence[Deployment], time_range: TimeRange
    ) -> float:
        """Successful deployments per day. Zero for empty or inverted ranges."""
        days = time_range.days()
        if days <= 0:
            return 0.0

        successful = sum(1 for d in deployments if d.is_successful())
        return successful / days

    def calculate_lead_time(self, deployments: Sequence[Deployment]) -> timedelta:
        """
        Average commit-to-production time over successful deployments.

        Deployments with a zero or negative lead time (clock skew, end before
        commit) are skipped rather than averaged in, so the result is only
        ever zero when nothing qualifies.
        """
        total = timedelta(0)
        count = 0

        for deployment in deployments:
            if not deployment.is_successful() or deployment.end_time is None:
                continue
            lead_time = deployment.lead_time()
            if lead_time > timedelta(0):
                total += lead_time
                count += 1

        if count == 0:
            return timedelta(0)
        return total / count

    def calculate_mttr(self, incidents: Sequence[Incident]) -> timedelta:
        """Average recovery time over resolved incidents with a positive duration."""
        total = timedelta(0)
        count = 0

        for incident in incidents:
            if not incident.is_resolved():
                continue
            recovery = incident.mttr()
            if recovery > timedelta(0):
                total += recovery
                count += 1

        if count == 0:
            return timedelta(0)
        return total / count

    def calculate_change_failure_rate(
        self, deployments: Sequence[Deployment], incidents: Sequence[Incident]
    ) -> float:
        """
        Ratio of failed changes to all deployments.

        Failed deployments count directly. Each incident additionally counts
        once against the first successful deployment (in input order) that
        finished less than CORRELATION_WINDOW before the incident started.
        An incident can land on a deployment that is already counted, so the
        rate can exceed 1.0.
        """
        if not deployments:
            return 0.0

        failures = sum(1 for d in deployments if d.is_failed())

        for incident in incidents:
            for deployment in deployments:
                if not deployment.is_successful() or deployment.end_time is None:
                    continue
                gap = incident.start_time - deployment.end_time
                if timedelta(0) < gap < CORRELATION_WINDOW:
                    failures += 1
                    break

        return failures / len(deployments)

    def assess_data_quality(
        self,
        deployments: Sequence[Deployment],
        incidents: Sequence[Incident],
        time_range: TimeRange,
    ) -> DataQuality:
        """Label how much the metrics can be trusted given window length and volume."""
        days = time_range.days()
        if days < MIN_QUALITY_WINDOW_DAYS:
            return DataQuality.LOW

        deployments_per_day = len(deployments) / days
        if deployments_per_day >= HIGH_QUALITY_DEPLOYS_PER_DAY and len(incidents) > 0:
            return DataQuality.HIGH

        if deployments or incidents:
            return DataQuality.MEDIUM

        return DataQuality.LOW

    def classify_performance(self, metrics: DORAMetrics) -> dict[str, PerformanceLevel]:
        """Classify each metric against the DORA research thresholds."""
        return {
            "deployment_frequency": _at_least(
                metrics.deployment_frequency, DEPLOYMENT_FREQUENCY_THRESHOLDS
            ),
            "lead_time": _at_most(_hours(metrics.lead_time), LEAD_TIME_HOURS_THRESHOLDS),
            "mttr": _at_most(_hours(metrics.mttr), MTTR_HOURS_THRESHOLDS),
            "change_failure_rate": _at_most(
                metrics.change_failure_rate, CHANGE_FAILURE_RATE_THRESHOLDS
            ),
        }

    def overall_performance(
        self, classification: dict[str, PerformanceLevel]
    ) -> PerformanceLevel:
        """
        Roll per-metric levels up into one level.

        Three or more elite -> elite; three or more elite/high -> high;
        three or more low -> low; anything else falls through to medium.
        """
        counts = Counter(classification.values())

        if counts[PerformanceLevel.ELITE] >= 3:
            return PerformanceLevel.ELITE
        if counts[PerformanceLevel.ELITE] + counts[PerformanceLevel.HIGH] >= 3:
            return PerformanceLevel.HIGH
        if counts[PerformanceLevel.LOW] >= 3:
            return PerformanceLevel.LOW
        return PerformanceLevel.MEDIUM


# Module-level API. Each call uses a fresh calculator.


def calculate_all(
    deployments: Sequence[Deployment],
    incidents: Sequence[Incident],
    time_range: TimeRange,
) -> DORAMetrics:
    """Calculate all four DORA metrics for a time range."""
    return DORACalculator().calculate_all(deployments, incidents, time_range)


def filter_by_window(entities: Sequence[T], time_range: TimeRange) -> list[T]:
    return DORACalculator().filter_by_window(entities, time_range)


def calculate_deployment_frequency(
    deployments: Sequence[Deployment], time_range: TimeRange
) -> float:
    return DORACalculator().calculate_deployment_frequency(deployments, time_range)


def calculate_lead_time(deployments: Sequence[Deployment]) -> timedelta:
    return DORACalculator().calculate_lead_time(deployments)


def calculate_mttr(incidents: Sequence[Incident]) -> timedelta:
    return DORACalculator().calculate_mttr(incidents)


def calculate_change_failure_rate(
    deployments: Sequence[Deployment], incidents: Sequence[Incident]
) -> float:
    return DORACalculator().calculate_change_failure_rate(deployments, incidents)


def assess_data_quality(
    deployments: Sequence[Deployment],
    incidents: Sequence[Incident],
    time_range: TimeRange,
) -> DataQuality:
    return DORACalculator().assess_data_quality(deployments, incidents, time_range)


def classify_performance(metrics: DORAMetrics) -> dict[str, PerformanceLevel]:
    """Classify each metric against the DORA research thresholds."""
    return DORACalculator().classify_performance(metrics)


def overall_performance(classification: dict[str, PerformanceLevel]) -> PerformanceLevel:
    """Roll per-metric levels up into one level."""
    return DORACalculator().overall_performance(classification)
