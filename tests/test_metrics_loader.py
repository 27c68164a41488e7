"""Tests for metrics/loader.py.

Tests for reading deployments and incidents from JSON and YAML files.
"""

import json
from datetime import UTC, date, datetime, timedelta, timezone

import pytest
import yaml

from dorametrics.core.errors import DataLoadError, ExitCode
from dorametrics.metrics import DeploymentStatus, IncidentSeverity
from dorametrics.metrics.loader import (
    deployment_from_dict,
    incident_from_dict,
    load_deployments,
    load_incidents,
    parse_timestamp,
)

DEPLOYMENT_RECORD = {
    "id": "dep-1",
    "service": "checkout",
    "environment": "production",
    "version": "1.4.2",
    "status": "success",
    "start_time": "2025-01-10T10:00:00Z",
    "end_time": "2025-01-10T10:12:00Z",
    "commit_sha": "abc123",
    "commit_time": "2025-01-10T08:00:00Z",
    "author": "dev@example.com",
    "repository": "shop/checkout",
    "branch": "main",
    "tags": {"team": "payments"},
}

INCIDENT_RECORD = {
    "id": "inc-1",
    "title": "Checkout errors",
    "service": "checkout",
    "severity": "critical",
    "start_time": "2025-01-10T11:00:00Z",
    "resolved_time": "2025-01-10T11:40:00Z",
}


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_z_suffix(self):
        assert parse_timestamp("2025-01-10T10:00:00Z") == datetime(2025, 1, 10, 10, 0, tzinfo=UTC)

    def test_offset_preserved(self):
        parsed = parse_timestamp("2025-01-10T10:00:00+02:00")
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_naive_assumed_utc(self):
        assert parse_timestamp("2025-01-10T10:00:00").tzinfo == UTC

    def test_datetime_passthrough(self):
        value = datetime(2025, 1, 10, tzinfo=timezone.utc)
        assert parse_timestamp(value) == value

    def test_date_becomes_midnight_utc(self):
        assert parse_timestamp(date(2025, 1, 10)) == datetime(2025, 1, 10, tzinfo=UTC)
        assert parse_timestamp(date(2025, 1, 10)) == parse_timestamp("2025-01-10")

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")
        with pytest.raises(ValueError):
            parse_timestamp(12345)


class TestFromDict:
    """Tests for record parsing."""

    def test_deployment(self):
        deployment = deployment_from_dict(DEPLOYMENT_RECORD)

        assert deployment.id == "dep-1"
        assert deployment.status == DeploymentStatus.SUCCESS
        assert deployment.lead_time() == timedelta(hours=2, minutes=12)
        assert deployment.tags == {"team": "payments"}
        assert deployment.version == "1.4.2"

    def test_deployment_without_end_time(self):
        record = {**DEPLOYMENT_RECORD, "status": "running"}
        del record["end_time"]

        deployment = deployment_from_dict(record)

        assert deployment.end_time is None
        assert deployment.status == DeploymentStatus.RUNNING

    def test_incident_defaults(self):
        incident = incident_from_dict(INCIDENT_RECORD)

        assert incident.severity == IncidentSeverity.CRITICAL
        assert incident.environment == "production"
        assert incident.mttr() == timedelta(minutes=40)

    def test_open_incident(self):
        record = {**INCIDENT_RECORD, "resolved_time": None}

        assert not incident_from_dict(record).is_resolved()


class TestLoadFiles:
    """Tests for load_deployments / load_incidents."""

    def test_load_json_list(self, tmp_path):
        path = tmp_path / "deployments.json"
        path.write_text(json.dumps([DEPLOYMENT_RECORD]))

        deployments = load_deployments(path)

        assert len(deployments) == 1
        assert deployments[0].service == "checkout"

    def test_load_yaml_mapping(self, tmp_path):
        path = tmp_path / "incidents.yaml"
        path.write_text(yaml.safe_dump({"incidents": [INCIDENT_RECORD, {**INCIDENT_RECORD, "id": "inc-2"}]}))

        incidents = load_incidents(str(path))

        assert [i.id for i in incidents] == ["inc-1", "inc-2"]

    def test_yaml_bare_dates_match_json(self, tmp_path):
        yaml_path = tmp_path / "deployments.yaml"
        yaml_path.write_text(
            "- id: dep-1\n"
            "  service: checkout\n"
            "  status: success\n"
            "  start_time: 2025-01-11\n"
            "  end_time: 2025-01-11T00:30:00Z\n"
            "  commit_time: 2025-01-10\n"
        )
        json_path = tmp_path / "deployments.json"
        json_path.write_text(
            json.dumps(
                [
                    {
                        "id": "dep-1",
                        "service": "checkout",
                        "status": "success",
                        "start_time": "2025-01-11",
                        "end_time": "2025-01-11T00:30:00Z",
                        "commit_time": "2025-01-10",
                    }
                ]
            )
        )

        from_yaml = load_deployments(yaml_path)[0]
        from_json = load_deployments(json_path)[0]

        assert from_yaml.commit_time == datetime(2025, 1, 10, tzinfo=UTC)
        assert from_yaml.start_time == from_json.start_time
        assert from_yaml.lead_time() == from_json.lead_time() == timedelta(hours=24, minutes=30)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "deployments.yaml"
        path.write_text("")

        assert load_deployments(path) == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError) as exc_info:
            load_deployments(tmp_path / "missing.yaml")

        assert exc_info.value.exit_code == ExitCode.DATA_LOAD_ERROR

    def test_unparseable_json(self, tmp_path):
        path = tmp_path / "deployments.json"
        path.write_text("{not json")

        with pytest.raises(DataLoadError, match="Could not parse"):
            load_deployments(path)

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "deployments.yaml"
        path.write_text(yaml.safe_dump({"deployments": "nope"}))

        with pytest.raises(DataLoadError, match="Expected a list"):
            load_deployments(path)

    def test_missing_field_reports_index(self, tmp_path):
        record = dict(DEPLOYMENT_RECORD)
        del record["commit_time"]
        path = tmp_path / "deployments.json"
        path.write_text(json.dumps([DEPLOYMENT_RECORD, record]))

        with pytest.raises(DataLoadError) as exc_info:
            load_deployments(path)

        assert exc_info.value.details["index"] == 1
        assert exc_info.value.details["field"] == "commit_time"

    def test_unknown_status_rejected(self, tmp_path):
        path = tmp_path / "deployments.json"
        path.write_text(json.dumps([{**DEPLOYMENT_RECORD, "status": "done"}]))

        with pytest.raises(DataLoadError, match="Invalid record"):
            load_deployments(path)

    def test_non_mapping_record(self, tmp_path):
        path = tmp_path / "incidents.json"
        path.write_text(json.dumps(["inc-1"]))

        with pytest.raises(DataLoadError, match="not a mapping"):
            load_incidents(path)
