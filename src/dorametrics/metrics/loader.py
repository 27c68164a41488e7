"""
Deployment and incident file loading.

Reads JSON or YAML files holding either a bare list of records or a mapping
with a "deployments" / "incidents" key.
"""

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Callable, TypeVar

import structlog
import yaml

from dorametrics.core.errors import DataLoadError
from dorametrics.metrics.models import (
    Deployment,
    DeploymentStatus,
    Incident,
    IncidentSeverity,
)

logger = structlog.get_logger()

T = TypeVar("T")


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO 8601 timestamp. A trailing 'Z' is accepted and naive
    values are taken as UTC. Bare dates (which YAML loads as date objects)
    become midnight UTC, matching the same date given as a string.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"expected ISO 8601 timestamp, got {type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _optional_timestamp(data: dict[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    return parse_timestamp(value)


def _tags(data: dict[str, Any]) -> dict[str, str]:
    tags = data.get("tags") or {}
    if not isinstance(tags, dict):
        raise ValueError("tags must be a mapping")
    return {str(k): str(v) for k, v in tags.items()}


def deployment_from_dict(data: dict[str, Any]) -> Deployment:
    """Build a Deployment from a raw record."""
    return Deployment(
        id=str(data["id"]),
        service=data["service"],
        environment=data.get("environment", "production"),
        status=DeploymentStatus(data["status"]),
        start_time=parse_timestamp(data["start_time"]),
        end_time=_optional_timestamp(data, "end_time"),
        commit_sha=data.get("commit_sha", ""),
        commit_time=parse_timestamp(data["commit_time"]),
        version=data.get("version", ""),
        author=data.get("author", ""),
        repository=data.get("repository", ""),
        branch=data.get("branch", ""),
        build_url=data.get("build_url"),
        tags=_tags(data),
        created_at=_optional_timestamp(data, "created_at"),
        updated_at=_optional_timestamp(data, "updated_at"),
    )


def incident_from_dict(data: dict[str, Any]) -> Incident:
    """Build an Incident from a raw record."""
    return Incident(
        id=str(data["id"]),
        title=data.get("title", ""),
        description=data.get("description", ""),
        service=data["service"],
        environment=data.get("environment", "production"),
        severity=IncidentSeverity(data.get("severity", "medium")),
        start_time=parse_timestamp(data["start_time"]),
        resolved_time=_optional_timestamp(data, "resolved_time"),
        root_cause=data.get("root_cause"),
        assignee=data.get("assignee"),
        tags=_tags(data),
        created_at=_optional_timestamp(data, "created_at"),
        updated_at=_optional_timestamp(data, "updated_at"),
    )


def _read_records(path: Path, key: str) -> list[dict[str, Any]]:
    if not path.exists():
        raise DataLoadError(f"File not found: {path}", details={"path": str(path)})

    try:
        with open(path) as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DataLoadError(
            f"Could not parse {path.name}", details={"path": str(path), "error": str(e)}
        ) from e

    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise DataLoadError(
            f"Expected a list of {key} in {path.name}", details={"path": str(path)}
        )
    return data


def _parse_records(
    records: list[dict[str, Any]],
    parse: Callable[[dict[str, Any]], T],
    path: Path,
) -> list[T]:
    parsed: list[T] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise DataLoadError(
                "Record is not a mapping", details={"path": str(path), "index": index}
            )
        try:
            parsed.append(parse(record))
        except KeyError as e:
            raise DataLoadError(
                "Missing required field",
                details={"path": str(path), "index": index, "field": e.args[0]},
            ) from e
        except (TypeError, ValueError) as e:
            raise DataLoadError(
                "Invalid record",
                details={"path": str(path), "index": index, "error": str(e)},
            ) from e
    return parsed


def load_deployments(path: str | Path) -> list[Deployment]:
    """
    Load deployments from a JSON or YAML file.

    Raises:
        DataLoadError: If the file is missing, unparseable or holds bad records
    """
    path = Path(path)
    deployments = _parse_records(_read_records(path, "deployments"), deployment_from_dict, path)
    logger.debug("loaded_deployments", path=str(path), count=len(deployments))
    return deployments


def load_incidents(path: str | Path) -> list[Incident]:
    """
    Load incidents from a JSON or YAML file.

    Raises:
        DataLoadError: If the file is missing, unparseable or holds bad records
    """
    path = Path(path)
    incidents = _parse_records(_read_records(path, "incidents"), incident_from_dict, path)
    logger.debug("loaded_incidents", path=str(path), count=len(incidents))
    return incidents
