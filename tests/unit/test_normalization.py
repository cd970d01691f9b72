"""
Unit tests for ingestion-boundary normalization.

Tests for:
- Minor unit conversion and exact sums
- Budget parsing with the 万 suffix
- Financial year and month parsing
- Discount parsing
- Status and order mode mapping
- Source document models
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from kolmigrate.ingestion import SourceCollaboration, SourceProject, SourceWork
from kolmigrate.models import OrderMode, TargetProjectStatus
from kolmigrate.normalization import (
    map_order_mode,
    map_project_status,
    parse_budget,
    parse_discount,
    parse_financial_month,
    parse_financial_year,
    sum_major_units,
    to_minor_units,
)
from tests.fixtures import source_collaboration, source_project, source_work


class TestToMinorUnits:
    """Tests for to_minor_units."""

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (1000, 100000),
            (0.1, 10),
            ("12.345", 1235),
            (19.99, 1999),
            (Decimal("0.005"), 1),
        ],
    )
    def test_converts_major_units(self, amount: object, expected: int) -> None:
        """Test amounts are scaled by 100 and rounded half up."""
        assert to_minor_units(amount) == expected

    @pytest.mark.parametrize("amount", [None, "", "abc", True, float("nan")])
    def test_unreadable_amount_is_zero(self, amount: object) -> None:
        """Test missing and non-numeric amounts become 0."""
        assert to_minor_units(amount) == 0

    def test_float_noise_does_not_leak(self) -> None:
        """Test 0.1 + 0.2 converts to exactly 30."""
        assert to_minor_units(0.1 + 0.2) == 30


class TestSumMajorUnits:
    """Tests for sum_major_units."""

    def test_sums_exactly(self) -> None:
        """Test decimal sum avoids binary float error."""
        assert sum_major_units([0.1, 0.2]) == Decimal("0.3")

    def test_skips_unreadable_values(self) -> None:
        """Test None and text are ignored."""
        assert sum_major_units([100, None, "n/a", "50.5"]) == Decimal("150.5")

    def test_empty_is_zero(self) -> None:
        """Test an empty input sums to 0."""
        assert sum_major_units([]) == Decimal(0)


class TestParseBudget:
    """Tests for parse_budget."""

    def test_wan_suffix(self) -> None:
        """Test 万 multiplies by ten thousand before conversion."""
        assert parse_budget("5万") == 5_000_000
        assert parse_budget("8万") == 8_000_000
        assert parse_budget("1.5万") == 1_500_000

    def test_plain_numeric_string(self) -> None:
        """Test a numeric string is converted to minor units."""
        assert parse_budget("1234.5") == 123450

    def test_number(self) -> None:
        """Test a number is converted to minor units."""
        assert parse_budget(2000) == 200000
        assert parse_budget(99.99) == 9999

    def test_surrounding_whitespace(self) -> None:
        """Test whitespace around the value is ignored."""
        assert parse_budget(" 3万 ") == 3_000_000

    @pytest.mark.parametrize("value", ["about 5k", "5 万", "万", "-100", "", None, True])
    def test_non_matching_is_zero(self, value: object) -> None:
        """Test non-matching input yields 0 instead of raising."""
        assert parse_budget(value) == 0


class TestParsePeriod:
    """Tests for financial year and month parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(3, 3), ("3", 3), ("M3", 3), ("M12", 12), ("m7", 7), (" 11 ", 11)],
    )
    def test_month_forms(self, value: object, expected: int) -> None:
        """Test integer, numeric and prefixed months."""
        assert parse_financial_month(value) == expected

    @pytest.mark.parametrize("value", [None, "March", "M", "M123", True])
    def test_unreadable_month(self, value: object) -> None:
        """Test unreadable months become None."""
        assert parse_financial_month(value) is None

    def test_year_forms(self) -> None:
        """Test integer and string years."""
        assert parse_financial_year(2025) == 2025
        assert parse_financial_year("2025") == 2025
        assert parse_financial_year("FY25") is None
        assert parse_financial_year(None) is None


class TestParseDiscount:
    """Tests for parse_discount."""

    def test_string_discount(self) -> None:
        """Test a numeric string discount is parsed."""
        assert parse_discount("0.85") == 0.85

    @pytest.mark.parametrize("value", [None, 0, "0", "", "n/a"])
    def test_absent_discount(self, value: object) -> None:
        """Test zero and unreadable discounts are treated as absent."""
        assert parse_discount(value) is None


class TestMappings:
    """Tests for status and order mode mapping."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("执行中", TargetProjectStatus.EXECUTING),
            ("已完成", TargetProjectStatus.SETTLED),
            ("已暂停", TargetProjectStatus.PENDING_SETTLEMENT),
            ("已归档", TargetProjectStatus.CLOSED),
            ("草稿", TargetProjectStatus.EXECUTING),
            (None, TargetProjectStatus.EXECUTING),
        ],
    )
    def test_project_status(self, label: str | None, expected: TargetProjectStatus) -> None:
        """Test known labels map and unknown ones default to executing."""
        assert map_project_status(label) is expected

    @pytest.mark.parametrize(
        ("order_type", "expected"),
        [
            ("original", OrderMode.ORIGINAL),
            ("modified", OrderMode.ADJUSTED),
            ("custom", OrderMode.ADJUSTED),
            (None, OrderMode.ADJUSTED),
        ],
    )
    def test_order_mode(self, order_type: str | None, expected: OrderMode) -> None:
        """Test anything other than original is adjusted."""
        assert map_order_mode(order_type) is expected


class TestSourceModels:
    """Tests for the pydantic source document models."""

    def test_source_project_normalizes_fields(self) -> None:
        """Test loosely typed project fields are normalized on parse."""
        project = SourceProject.model_validate(
            source_project(financialYear="2025", benchmarkCPM="18", extra_field="ignored")
        )

        assert project.financial_year == 2025
        assert project.financial_month == 3
        assert project.budget_minor_units == 8_000_000
        assert project.source_discount == 0.85
        assert project.benchmark_cpm == 18.0
        assert project.audit_log == []

    def test_source_project_is_frozen(self) -> None:
        """Test parsed projects cannot be mutated."""
        project = SourceProject.model_validate(source_project())
        with pytest.raises(ValueError):
            project.name = "Other"  # type: ignore[misc]

    def test_source_collaboration_amounts(self) -> None:
        """Test amounts and rebates are converted to minor units."""
        collaboration = SourceCollaboration.model_validate(
            source_collaboration(amount="1000.5", actualRebate=99.5, rebate=None)
        )

        assert collaboration.amount_minor_units == 100050
        assert collaboration.actual_rebate_minor_units == 9950
        assert collaboration.rebate_rate == 0

    def test_zero_actual_rebate_is_absent(self) -> None:
        """Test a zero actual rebate is treated as absent."""
        collaboration = SourceCollaboration.model_validate(source_collaboration(actualRebate=0))
        assert collaboration.actual_rebate_minor_units is None

    def test_ids_are_stringified(self) -> None:
        """Test numeric video ids are read as strings."""
        collaboration = SourceCollaboration.model_validate(source_collaboration(videoId=7123))
        work = SourceWork.model_validate(source_work(videoId=7123, collaborationId=None))

        assert collaboration.video_id == "7123"
        assert work.video_id == "7123"
        assert work.collaboration_id is None

    def test_work_effect_windows(self) -> None:
        """Test empty effect windows become None."""
        work = SourceWork.model_validate(source_work(t21={}, t30=None))

        assert work.effect_windows == {"t7": {"views": 7000}, "t21": None, "t30": None}

    def test_work_report_dates(self) -> None:
        """Test report dates skip entries without a date."""
        work = SourceWork.model_validate(
            source_work(dailyStats=[{"date": "2025-03-01"}, {"totalViews": 5}])
        )
        assert work.report_dates == ["2025-03-01"]

    def test_work_null_daily_stats(self) -> None:
        """Test null daily stats parse as an empty list."""
        assert SourceWork.model_validate(source_work(dailyStats=None)).daily_stats == []
