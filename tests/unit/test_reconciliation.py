"""
Unit tests for reconciliation.

Tests for:
- Comparison value objects
- ReconciliationValidator over a migrated project
- Mismatch detection
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from kolmigrate.phases import DailyStatsPhase, EffectPhase
from kolmigrate.reconciliation import (
    AmountComparison,
    CountComparison,
    DailyStatsComparison,
    ReconciliationValidator,
)
from kolmigrate.session import Collections, MigrationSession
from tests.fixtures import seed_source, source_collaboration


async def _migrate_performance(session: MigrationSession) -> None:
    await EffectPhase(session, enable_tracing=False).migrate("p1")
    await DailyStatsPhase(session, enable_tracing=False).migrate("p1")


class TestComparisons:
    """Tests for the comparison value objects."""

    def test_count_comparison(self) -> None:
        """Test counts match only when equal."""
        assert CountComparison(3, 3).match
        assert CountComparison(3, 2).to_dict() == {"source": 3, "target": 2, "match": False}

    @pytest.mark.parametrize(
        ("source", "target", "expected"),
        [
            (Decimal("1000"), 100000, True),
            (Decimal("0.3"), 30, True),
            (Decimal("12.345"), 1235, True),
            (Decimal("12.344"), 1235, False),
        ],
    )
    def test_amount_comparison(self, source: Decimal, target: int, expected: bool) -> None:
        """Test the source total is rounded half up to minor units."""
        assert AmountComparison(source, target).match is expected

    def test_amount_to_dict(self) -> None:
        """Test both representations of the source total are reported."""
        assert AmountComparison(Decimal("1000.5"), 100050).to_dict() == {
            "source": 1000.5,
            "sourceMinorUnits": 100050,
            "target": 100050,
            "match": True,
        }

    def test_daily_stats_compares_entries(self) -> None:
        """Test record counts may differ when entry counts agree."""
        comparison = DailyStatsComparison(
            source_works_with_stats=2, target_with_stats=1, source_entries=5, target_entries=5
        )
        assert comparison.match

    def test_daily_stats_to_dict(self) -> None:
        """Test entry counts are reported under both key spellings."""
        comparison = DailyStatsComparison(
            source_works_with_stats=1, target_with_stats=1, source_entries=3, target_entries=2
        )
        assert comparison.to_dict() == {
            "sourceWorksWithStats": 1,
            "targetWithStats": 1,
            "sourceStatsEntries": 3,
            "targetStatsEntries": 2,
            "sourceEntries": 3,
            "targetEntries": 2,
            "match": False,
        }


class TestReconciliationValidator:
    """Tests for ReconciliationValidator.validate."""

    async def test_complete_migration_matches(
        self,
        spring_launch: MigrationSession,
        migrated_spring_launch: tuple[str, dict[str, str]],
    ) -> None:
        """Test a fully migrated project reconciles."""
        target_project_id, _ = migrated_spring_launch
        await _migrate_performance(spring_launch)

        report = await ReconciliationValidator(spring_launch, enable_tracing=False).validate(
            "p1", target_project_id
        )

        assert report.all_match
        data = report.to_dict()
        assert data["targetProjectId"] == target_project_id
        assert data["comparison"]["collaborations"] == {"source": 1, "target": 1, "match": True}
        assert data["comparison"]["totalAmount"]["target"] == 100000
        assert data["comparison"]["effects"] == {"sourceWorks": 1, "targetWithEffects": 1}
        assert data["comparison"]["dailyStats"]["sourceStatsEntries"] == 3
        assert data["comparison"]["dailyStats"]["targetStatsEntries"] == 3
        assert data["allMatch"] is True

    async def test_missing_daily_stats_do_not_match(
        self,
        spring_launch: MigrationSession,
        migrated_spring_launch: tuple[str, dict[str, str]],
    ) -> None:
        """Test a project without migrated daily stats fails reconciliation."""
        target_project_id, _ = migrated_spring_launch

        report = await ReconciliationValidator(spring_launch, enable_tracing=False).validate(
            "p1", target_project_id
        )

        assert report.collaborations.match
        assert report.total_amount.match
        assert not report.daily_stats.match
        assert not report.all_match

    async def test_effects_are_informational(
        self,
        spring_launch: MigrationSession,
        migrated_spring_launch: tuple[str, dict[str, str]],
    ) -> None:
        """Test missing effect data does not fail reconciliation."""
        target_project_id, _ = migrated_spring_launch
        await DailyStatsPhase(spring_launch, enable_tracing=False).migrate("p1")

        report = await ReconciliationValidator(spring_launch, enable_tracing=False).validate(
            "p1", target_project_id
        )

        assert report.effects.target_with_effects == 0
        assert report.all_match

    async def test_amount_drift_detected(
        self,
        spring_launch: MigrationSession,
        migrated_spring_launch: tuple[str, dict[str, str]],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test an edited target amount is reported and logged."""
        target_project_id, mapping = migrated_spring_launch
        await _migrate_performance(spring_launch)
        await spring_launch.target_collection(Collections.COLLABORATIONS).update_one(
            {"id": mapping["c1"]}, {"$set": {"amount": 99999}}
        )

        with caplog.at_level("WARNING", logger="kolmigrate.reconciliation"):
            report = await ReconciliationValidator(spring_launch, enable_tracing=False).validate(
                "p1", target_project_id
            )

        assert not report.total_amount.match
        assert not report.all_match
        assert "does not reconcile" in caplog.text

    async def test_missing_collaboration_detected(
        self,
        spring_launch: MigrationSession,
        migrated_spring_launch: tuple[str, dict[str, str]],
    ) -> None:
        """Test a source collaboration added after migration shows up."""
        target_project_id, _ = migrated_spring_launch
        await _migrate_performance(spring_launch)
        await seed_source(spring_launch, collaborations=[source_collaboration(id="c2")])

        report = await ReconciliationValidator(spring_launch, enable_tracing=False).validate(
            "p1", target_project_id
        )

        assert report.collaborations.to_dict() == {"source": 2, "target": 1, "match": False}
        assert not report.all_match

    async def test_fractional_amounts_reconcile(self, session: MigrationSession) -> None:
        """Test float source amounts are summed exactly."""
        await seed_source(
            session,
            collaborations=[
                source_collaboration(id="c1", amount=0.1),
                source_collaboration(id="c2", amount=0.2),
            ],
        )
        await session.target_collection(Collections.COLLABORATIONS).insert_many(
            [
                {"id": "a", "projectId": "proj_1", "amount": 10},
                {"id": "b", "projectId": "proj_1", "amount": 20},
            ]
        )

        report = await ReconciliationValidator(session, enable_tracing=False).validate(
            "p1", "proj_1"
        )

        assert report.total_amount.source_minor_units == 30
        assert report.total_amount.match
        assert report.all_match
