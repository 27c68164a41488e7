"""
CLI command for the DORA metrics report.

Usage:
    dorametrics report --deployments deploys.yaml --incidents incidents.yaml
    dorametrics report ... --range last-90-days
    dorametrics report ... --since 2025-01-01T00:00:00Z --until 2025-02-01T00:00:00Z
    dorametrics report ... --service checkout --environment production
    dorametrics report ... --format json

Exit codes:
    0 = elite/high overall performance
    1 = medium
    2 = low
"""

from __future__ import annotations

import argparse
import csv
import io
import json
from datetime import UTC, datetime, timedelta

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dorametrics.cli.ux import console, header, info, warning
from dorametrics.config import get_settings
from dorametrics.core.errors import (
    ConfigurationError,
    ExitCode,
    ValidationError,
    main_with_error_handling,
)
from dorametrics.logging import bind_context
from dorametrics.metrics.calculator import DORACalculator, PerformanceLevel
from dorametrics.metrics.loader import load_deployments, load_incidents, parse_timestamp
from dorametrics.metrics.models import (
    DataQuality,
    DORAMetrics,
    MetricsFilter,
    PREDEFINED_RANGES,
    TimeRange,
    format_duration,
    last_n_days,
    parse_time_range,
)

# Level styling for table output
LEVEL_STYLES: dict[PerformanceLevel, tuple[str, str]] = {
    PerformanceLevel.ELITE: ("green bold", "\u2605"),  # ★
    PerformanceLevel.HIGH: ("green", "\u2713"),  # ✓
    PerformanceLevel.MEDIUM: ("yellow", "!"),
    PerformanceLevel.LOW: ("red bold", "\u2717"),  # ✗
}

METRIC_LABELS = {
    "deployment_frequency": "Deployment Frequency",
    "lead_time": "Lead Time for Changes",
    "mttr": "Mean Time to Recovery",
    "change_failure_rate": "Change Failure Rate",
}


def resolve_time_range(
    range_name: str | None = None,
    since: str | None = None,
    until: str | None = None,
    now: datetime | None = None,
) -> TimeRange:
    """
    Work out the report window.

    Explicit --since/--until win over a named range; with neither, the
    configured default window ending now is used.

    Raises:
        ValidationError: On conflicting options, bad timestamps, or a
            window that is empty or inverted
    """
    now = now or datetime.now(UTC)

    if since or until:
        if range_name:
            raise ValidationError("Use either --range or --since/--until, not both")
        try:
            start = parse_timestamp(since) if since else None
            end = parse_timestamp(until) if until else now
        except ValueError as e:
            raise ValidationError("Invalid timestamp", details={"error": str(e)}) from e
        if start is None:
            start = end - timedelta(days=get_settings().default_window_days)
        if start >= end:
            raise ValidationError(
                "--since must be before --until",
                details={"since": start.isoformat(), "until": end.isoformat()},
            )
        return TimeRange(start=start, end=end)

    if range_name:
        return parse_time_range(range_name, now)

    return last_n_days(get_settings().default_window_days, now)


def _format_value(metric: str, metrics: DORAMetrics) -> str:
    if metric == "deployment_frequency":
        return f"{metrics.deployment_frequency:.2f}/day"
    if metric == "lead_time":
        return format_duration(metrics.lead_time)
    if metric == "mttr":
        return format_duration(metrics.mttr)
    return f"{metrics.change_failure_rate * 100:.1f}%"


def build_report(
    metrics: DORAMetrics,
    classification: dict[str, PerformanceLevel],
    overall: PerformanceLevel,
) -> dict:
    """Assemble a plain-data report for JSON export."""
    return {
        "metrics": metrics.to_dict(),
        "classification": {name: level.value for name, level in classification.items()},
        "overall_performance": overall.value,
    }


@main_with_error_handling()
def report_command(
    deployments_file: str | None = None,
    incidents_file: str | None = None,
    range_name: str | None = None,
    since: str | None = None,
    until: str | None = None,
    services: list[str] | None = None,
    environments: list[str] | None = None,
    format: str | None = None,
) -> int:
    """
    Calculate and display DORA metrics.

    Args:
        deployments_file: JSON/YAML file of deployments
        incidents_file: JSON/YAML file of incidents
        range_name: Named window (last-30-days, this-month, ...)
        since: Window start (ISO 8601)
        until: Window end (ISO 8601)
        services: Restrict to these services
        environments: Restrict to these environments
        format: Output format (table, json, csv)

    Returns:
        Exit code: 0=elite/high, 1=medium, 2=low
    """
    settings = get_settings()
    deployments_file = deployments_file or settings.deployments_file
    incidents_file = incidents_file or settings.incidents_file
    output_format = format or settings.output_format

    if not deployments_file:
        raise ConfigurationError(
            "No deployments file given (use --deployments or DORAMETRICS_DEPLOYMENTS_FILE)"
        )

    time_range = resolve_time_range(range_name, since, until)
    log = bind_context(
        command="report",
        start=time_range.start.isoformat(),
        end=time_range.end.isoformat(),
    )

    metrics_filter = MetricsFilter(
        time_range=time_range,
        services=services or [],
        environments=environments or [],
    )
    deployments = metrics_filter.apply(load_deployments(deployments_file))
    incidents = metrics_filter.apply(load_incidents(incidents_file)) if incidents_file else []
    log.info("report_inputs_loaded", deployments=len(deployments), incidents=len(incidents))

    calculator = DORACalculator()
    metrics = calculator.calculate_all(deployments, incidents, time_range)
    classification = calculator.classify_performance(metrics)
    overall = calculator.overall_performance(classification)

    if output_format == "json":
        _print_json(metrics, classification, overall)
    elif output_format == "csv":
        _print_csv(metrics, classification)
    else:
        _print_table(metrics, classification, overall, metrics_filter)

    return _calculate_exit_code(overall)


def _calculate_exit_code(overall: PerformanceLevel) -> int:
    if overall in (PerformanceLevel.ELITE, PerformanceLevel.HIGH):
        return ExitCode.SUCCESS
    if overall == PerformanceLevel.MEDIUM:
        return ExitCode.WARNING
    return ExitCode.LOW_PERFORMANCE


def _print_table(
    metrics: DORAMetrics,
    classification: dict[str, PerformanceLevel],
    overall: PerformanceLevel,
    metrics_filter: MetricsFilter,
) -> None:
    """Print metrics in table format."""
    console.print()
    header("DORA Metrics")
    console.print()

    time_range = metrics.time_range
    console.print(
        f"[muted]Window:[/muted] {time_range.start:%Y-%m-%d %H:%M} → "
        f"{time_range.end:%Y-%m-%d %H:%M} ({time_range.days():.1f} days)"
    )
    if metrics_filter.services:
        console.print(f"[muted]Services:[/muted] {escape(', '.join(metrics_filter.services))}")
    if metrics_filter.environments:
        console.print(f"[muted]Environments:[/muted] {escape(', '.join(metrics_filter.environments))}")
    console.print()

    style, icon = LEVEL_STYLES[overall]
    console.print(
        Panel(
            f"[{style}]{icon} {overall.value.upper()}[/{style}]",
            title="Overall Performance",
            border_style=style.split()[0],
        )
    )
    console.print()

    table = Table(title="Metrics", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Level")

    for name, label in METRIC_LABELS.items():
        level = classification[name]
        style, icon = LEVEL_STYLES[level]
        table.add_row(
            label,
            _format_value(name, metrics),
            f"[{style}]{icon} {level.value}[/{style}]",
        )

    console.print(table)
    console.print()

    console.rule(style="dim")
    console.print(f"[bold]Data quality:[/bold] {metrics.data_quality.value}")
    if metrics.data_quality == DataQuality.LOW:
        warning("Low data quality: use a window of at least 7 days with deployment and incident data")
    if metrics.change_failure_rate > 1:
        info("Change failure rate exceeds 100%: several incidents were attributed to the same deployments")
    console.print()


def _print_json(
    metrics: DORAMetrics,
    classification: dict[str, PerformanceLevel],
    overall: PerformanceLevel,
) -> None:
    """Print metrics in JSON format."""
    print(json.dumps(build_report(metrics, classification, overall), indent=2, sort_keys=True))


def _print_csv(metrics: DORAMetrics, classification: dict[str, PerformanceLevel]) -> None:
    """Print one row per metric in CSV format."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=["metric", "value", "level", "data_quality"])
    writer.writeheader()
    for name in METRIC_LABELS:
        writer.writerow(
            {
                "metric": name,
                "value": _format_value(name, metrics),
                "level": classification[name].value,
                "data_quality": metrics.data_quality.value,
            }
        )

    print(output.getvalue())


def register_report_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register report subcommand parser."""
    parser = subparsers.add_parser(
        "report",
        help="Calculate DORA metrics from deployment and incident files",
        description=(
            "Calculate deployment frequency, lead time, MTTR and change failure rate. "
            "Exit codes: 0=elite/high, 1=medium, 2=low"
        ),
    )

    parser.add_argument(
        "--deployments",
        dest="deployments_file",
        help="Deployments file, JSON or YAML (or set DORAMETRICS_DEPLOYMENTS_FILE)",
    )

    parser.add_argument(
        "--incidents",
        dest="incidents_file",
        help="Incidents file, JSON or YAML (or set DORAMETRICS_INCIDENTS_FILE)",
    )

    parser.add_argument(
        "--range",
        dest="range_name",
        choices=sorted(PREDEFINED_RANGES),
        help="Named time window (default: last DORAMETRICS_DEFAULT_WINDOW_DAYS days)",
    )

    parser.add_argument("--since", help="Window start, ISO 8601")
    parser.add_argument("--until", help="Window end, ISO 8601 (default: now)")

    parser.add_argument(
        "--service",
        action="append",
        dest="services",
        help="Only include this service (repeatable)",
    )

    parser.add_argument(
        "--environment",
        action="append",
        dest="environments",
        help="Only include this environment (repeatable)",
    )

    parser.add_argument(
        "--format",
        choices=["table", "json", "csv"],
        default=None,
        help="Output format (default: table)",
    )


def handle_report_command(args: argparse.Namespace) -> int:
    """Handle report subcommand."""
    return report_command(
        deployments_file=getattr(args, "deployments_file", None),
        incidents_file=getattr(args, "incidents_file", None),
        range_name=getattr(args, "range_name", None),
        since=getattr(args, "since", None),
        until=getattr(args, "until", None),
        services=getattr(args, "services", None),
        environments=getattr(args, "environments", None),
        format=getattr(args, "format", None),
    )
