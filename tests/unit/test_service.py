"""
Unit tests for MigrationService.

Tests for:
- Success envelopes of each operation
- Parameter validation envelopes
- Known and unexpected failure envelopes
- The full migration flow
"""

from __future__ import annotations

import pytest

from kolmigrate.exceptions import InvalidParameterError
from kolmigrate.models import TrackingStatus
from kolmigrate.observability import MockTracer
from kolmigrate.service import MigrationService, parse_tracking_status
from kolmigrate.session import MigrationSession


class TestParseTrackingStatus:
    """Tests for parse_tracking_status."""

    @pytest.mark.parametrize("value", [None, ""])
    def test_defaults_to_archived(self, value: str | None) -> None:
        """Test a missing status means archived."""
        assert parse_tracking_status(value) is TrackingStatus.ARCHIVED

    def test_accepts_values_and_members(self) -> None:
        """Test string values and enum members are accepted."""
        assert parse_tracking_status("active") is TrackingStatus.ACTIVE
        assert parse_tracking_status(TrackingStatus.DISABLED) is TrackingStatus.DISABLED

    def test_rejects_unknown(self) -> None:
        """Test an unknown status lists the allowed values."""
        with pytest.raises(InvalidParameterError) as exc_info:
            parse_tracking_status("paused")

        assert exc_info.value.context() == {
            "parameter": "trackingStatus",
            "allowed": ["active", "archived", "disabled"],
        }


class TestMigrationFlow:
    """Tests running every operation in order."""

    async def test_full_flow(self, service: MigrationService) -> None:
        """Test the operator flow from listing to validation."""
        listing = await service.list_source_projects()
        assert listing["success"]
        assert listing["count"] == 1
        assert listing["data"][0]["migrationStatus"] == "pending"

        talents = await service.validate_talents("p1")
        assert talents["success"]
        assert talents["canProceed"]

        project = await service.migrate_project("p1")
        assert project["success"]
        assert project["created"]
        target_project_id = project["targetProjectId"]
        assert project["newProjectId"] == target_project_id
        assert project["discountComparison"]["hasDiscrepancy"] is True

        collaborations = await service.migrate_collaborations("p1", target_project_id)
        assert collaborations["count"] == 1
        mappings = collaborations["mappings"]

        effects = await service.migrate_effects("p1", mappings)
        assert effects["updatedCount"] == 1

        stats = await service.migrate_daily_stats("p1", mappings, "archived")
        assert stats["migratedCount"] == 1
        assert stats["lastReportDate"] == "2025-03-03"

        report = await service.validate_migration("p1", target_project_id)
        assert report["success"]
        assert report["allMatch"] is True
        assert report["newProjectId"] == target_project_id

        listing = await service.list_source_projects()
        assert listing["data"][0]["migrationStatus"] == "completed"
        assert listing["data"][0]["nextPhase"] == "validation"

    async def test_repeated_structure_phases(self, service: MigrationService) -> None:
        """Test repeating the project and collaboration phases keeps one copy."""
        project = await service.migrate_project("p1")
        first = await service.migrate_collaborations("p1", project["targetProjectId"])

        again = await service.migrate_project("p1")
        second = await service.migrate_collaborations("p1", again["newProjectId"])

        assert second["success"]
        assert second["count"] == 0
        assert second["alreadyMigratedCount"] == 1
        assert second["mappings"] == first["mappings"]
        report = await service.validate_migration("p1", project["targetProjectId"])
        assert report["comparison"]["collaborations"] == {
            "source": 1,
            "target": 1,
            "match": True,
        }

    async def test_continue_migration(self, service: MigrationService) -> None:
        """Test a repeated project migration returns the existing id."""
        first = await service.migrate_project("p1")
        second = await service.migrate_project("p1")

        assert second["success"]
        assert second["created"] is False
        assert second["reason"] == "already-exists"
        assert second["newProjectId"] == first["targetProjectId"]

    async def test_rollback(self, service: MigrationService) -> None:
        """Test rollback removes what was migrated."""
        project = await service.migrate_project("p1")
        await service.migrate_collaborations("p1", project["targetProjectId"])

        result = await service.rollback_migration(project["targetProjectId"])

        assert result == {
            "success": True,
            "targetProjectId": project["targetProjectId"],
            "deletedProject": 1,
            "deletedCollaborations": 1,
        }


class TestFailureEnvelopes:
    """Tests for envelopes of failed operations."""

    @pytest.mark.parametrize("project_id", [None, ""])
    async def test_missing_project_id(
        self, service: MigrationService, project_id: str | None
    ) -> None:
        """Test a missing id is reported by name."""
        result = await service.validate_talents(project_id)

        assert result["success"] is False
        assert result["errorCode"] == "MISSING_PARAMETER"
        assert result["parameter"] == "projectId"

    async def test_missing_target_project_id(self, service: MigrationService) -> None:
        """Test collaboration migration requires a target project."""
        result = await service.migrate_collaborations("p1", None)

        assert result["errorCode"] == "MISSING_PARAMETER"
        assert result["parameter"] == "targetProjectId"

    async def test_invalid_tracking_status(self, service: MigrationService) -> None:
        """Test an unknown tracking status fails before any write."""
        result = await service.migrate_daily_stats("p1", None, "paused")

        assert result["success"] is False
        assert result["errorCode"] == "INVALID_PARAMETERS"
        assert result["allowed"] == ["active", "archived", "disabled"]

    async def test_source_project_not_found(self, service: MigrationService) -> None:
        """Test an unknown source project yields a lookup failure."""
        result = await service.migrate_project("p404")

        assert result["success"] is False
        assert result["errorCode"] == "SOURCE_PROJECT_NOT_FOUND"
        assert result["sourceProjectId"] == "p404"
        assert result["classification"]["category"] == "lookup"

    async def test_unmatched_talents(self, spring_launch: MigrationSession) -> None:
        """Test unmatched talents are listed in the envelope."""
        await spring_launch.target_collection("talents").delete_many({})
        service = MigrationService(spring_launch, enable_tracing=False)

        result = await service.migrate_collaborations("p1", "proj_1")

        assert result["success"] is False
        assert result["errorCode"] == "UNMATCHED_TALENTS"
        assert result["unmatched"][0]["sourceTalentId"] == "t1"

    async def test_unexpected_error(
        self,
        service: MigrationService,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test an unexpected exception becomes an internal error envelope."""

        async def boom(source_project_id: str, collaboration_mapping: object = None) -> None:
            raise RuntimeError("connection reset")

        monkeypatch.setattr(service.effect_phase, "migrate", boom)

        with caplog.at_level("ERROR", logger="kolmigrate.service"):
            result = await service.migrate_effects("p1")

        assert result == {
            "success": False,
            "message": "internal error",
            "error": "connection reset",
        }
        assert "migrate_effects failed unexpectedly" in caplog.text


class TestTracing:
    """Tests for service spans."""

    async def test_operation_span_wraps_components(
        self, spring_launch: MigrationSession
    ) -> None:
        """Test the service span precedes the component spans."""
        tracer = MockTracer()
        service = MigrationService(spring_launch, tracer=tracer)

        await service.validate_talents("p1")

        assert tracer.span_names == [
            "kolmigrate.service.validate_talents",
            "kolmigrate.identity_matcher.match",
        ]
