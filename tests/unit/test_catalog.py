"""
Unit tests for the source project catalog.

Tests for:
- SourceProjectSummary status and next phase derivation
- SourceCatalog listing over the Spring Launch scenario
"""

from __future__ import annotations

import pytest

from kolmigrate.catalog import SourceCatalog, SourceProjectSummary
from kolmigrate.models import MigrationStep, SourceMigrationStatus
from kolmigrate.observability import MockTracer
from kolmigrate.phases import DailyStatsPhase, EffectPhase
from kolmigrate.session import MigrationSession
from tests.fixtures import seed_source, source_project


def _summary(**overrides: object) -> SourceProjectSummary:
    values: dict[str, object] = {
        "id": "p1",
        "name": "Spring Launch",
        "status": "执行中",
        "financial_year": 2025,
        "financial_month": "M3",
        "discount": "0.85",
        "budget": "8万",
        "collaboration_count": 1,
        "works_count": 1,
        "works_with_stats_count": 1,
    }
    values.update(overrides)
    return SourceProjectSummary(**values)  # type: ignore[arg-type]


class TestSourceProjectSummary:
    """Tests for summary status derivation."""

    def test_pending(self) -> None:
        """Test a project without a target is pending at the project step."""
        summary = _summary()

        assert summary.migration_status is SourceMigrationStatus.PENDING
        assert summary.next_phase is MigrationStep.PROJECT

    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({}, MigrationStep.COLLABORATIONS),
            ({"has_collaborations": True}, MigrationStep.EFFECTS),
            ({"has_collaborations": True, "has_effects": True}, MigrationStep.DAILY_STATS),
            (
                {"has_collaborations": True, "has_effects": True, "has_daily_stats": True},
                MigrationStep.VALIDATION,
            ),
            ({"collaboration_count": 0, "works_count": 0}, MigrationStep.VALIDATION),
        ],
    )
    def test_next_phase(self, overrides: dict[str, object], expected: MigrationStep) -> None:
        """Test the first step without data is suggested."""
        summary = _summary(target_project_id="proj_1", **overrides)
        assert summary.next_phase is expected

    def test_partial_until_effects(self) -> None:
        """Test collaborations alone leave the project partial."""
        summary = _summary(target_project_id="proj_1", has_collaborations=True)
        assert summary.migration_status is SourceMigrationStatus.PARTIAL

    def test_completed_with_effects(self) -> None:
        """Test collaborations plus effects complete the project."""
        summary = _summary(target_project_id="proj_1", has_collaborations=True, has_effects=True)
        assert summary.migration_status is SourceMigrationStatus.COMPLETED

    def test_completed_without_works(self) -> None:
        """Test a project without works completes with its collaborations."""
        summary = _summary(
            target_project_id="proj_1", has_collaborations=True, works_count=0
        )
        assert summary.migration_status is SourceMigrationStatus.COMPLETED

    def test_to_dict_reports_source_fields_as_stored(self) -> None:
        """Test raw source values and both target id keys are reported."""
        data = _summary(target_project_id="proj_1").to_dict()

        assert data["financialMonth"] == "M3"
        assert data["budget"] == "8万"
        assert data["migratedProjectId"] == "proj_1"
        assert data["targetProjectId"] == "proj_1"
        assert data["migrationStatus"] == "partial"
        assert data["nextPhase"] == "collaborations"


class TestSourceCatalog:
    """Tests for SourceCatalog.list_projects."""

    async def test_unmigrated_project(self, spring_launch: MigrationSession) -> None:
        """Test counts and pending status before migration."""
        [summary] = await SourceCatalog(spring_launch, enable_tracing=False).list_projects()

        assert summary.id == "p1"
        assert summary.collaboration_count == 1
        assert summary.works_count == 1
        assert summary.works_with_stats_count == 1
        assert summary.migration_status is SourceMigrationStatus.PENDING

    async def test_progress_through_phases(
        self,
        spring_launch: MigrationSession,
        migrated_spring_launch: tuple[str, dict[str, str]],
    ) -> None:
        """Test status and next phase follow the migration."""
        target_project_id, _ = migrated_spring_launch
        catalog = SourceCatalog(spring_launch, enable_tracing=False)

        [summary] = await catalog.list_projects()
        assert summary.target_project_id == target_project_id
        assert summary.migration_status is SourceMigrationStatus.PARTIAL
        assert summary.next_phase is MigrationStep.EFFECTS

        await EffectPhase(spring_launch, enable_tracing=False).migrate("p1")
        [summary] = await catalog.list_projects()
        assert summary.migration_status is SourceMigrationStatus.COMPLETED
        assert summary.next_phase is MigrationStep.DAILY_STATS

        await DailyStatsPhase(spring_launch, enable_tracing=False).migrate("p1")
        [summary] = await catalog.list_projects()
        assert summary.has_daily_stats
        assert summary.next_phase is MigrationStep.VALIDATION

    async def test_keeps_source_order(self, spring_launch: MigrationSession) -> None:
        """Test summaries come back in source order."""
        await seed_source(
            spring_launch,
            projects=[source_project(id="p2", name="Summer"), source_project(id="p3", name="Fall")],
        )

        summaries = await SourceCatalog(spring_launch, enable_tracing=False).list_projects()

        assert [s.id for s in summaries] == ["p1", "p2", "p3"]
        assert summaries[1].collaboration_count == 0

    async def test_empty_source(self, session: MigrationSession) -> None:
        """Test an empty source yields an empty listing."""
        assert await SourceCatalog(session, enable_tracing=False).list_projects() == []

    async def test_records_span(self, spring_launch: MigrationSession) -> None:
        """Test listing is traced."""
        tracer = MockTracer()

        await SourceCatalog(spring_launch, tracer=tracer).list_projects()

        assert tracer.span_names == ["kolmigrate.catalog.list_projects"]
