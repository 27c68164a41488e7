"""
DORA metrics engine.

Computes the four DORA delivery-performance indicators from deployment
and incident records:
- Deployment frequency (successful deployments per day)
- Lead time for changes (commit to production)
- Mean time to recovery
- Change failure rate
"""

from dorametrics.metrics.calculator import (
    CORRELATION_WINDOW,
    METRIC_NAMES,
    DORACalculator,
    PerformanceLevel,
    assess_data_quality,
    calculate_all,
    calculate_change_failure_rate,
    calculate_deployment_frequency,
    calculate_lead_time,
    calculate_mttr,
    classify_performance,
    filter_by_window,
    overall_performance,
)
from dorametrics.metrics.loader import load_deployments, load_incidents
from dorametrics.metrics.models import (
    DataQuality,
    Deployment,
    DeploymentStatus,
    DORAMetrics,
    Incident,
    IncidentAlreadyResolvedError,
    IncidentSeverity,
    MetricsFilter,
    TimeRange,
    format_duration,
    last_7_days,
    last_30_days,
    last_90_days,
    last_month,
    parse_time_range,
    this_month,
)

__all__ = [
    # Models
    "DataQuality",
    "Deployment",
    "DeploymentStatus",
    "DORAMetrics",
    "Incident",
    "IncidentAlreadyResolvedError",
    "IncidentSeverity",
    "MetricsFilter",
    "TimeRange",
    "format_duration",
    # Ranges
    "last_7_days",
    "last_30_days",
    "last_90_days",
    "this_month",
    "last_month",
    "parse_time_range",
    # Calculator
    "CORRELATION_WINDOW",
    "METRIC_NAMES",
    "DORACalculator",
    "PerformanceLevel",
    "assess_data_quality",
    "calculate_all",
    "calculate_change_failure_rate",
    "calculate_deployment_frequency",
    "calculate_lead_time",
    "calculate_mttr",
    "classify_performance",
    "filter_by_window",
    "overall_performance",
    # Loading
    "load_deployments",
    "load_incidents",
]
