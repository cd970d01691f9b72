"""
Pydantic models for documents read from the source database.

Each model parses one raw source document and normalizes its loosely typed
fields at construction time. Phases work only with these models, so money is
already in minor units and months are already integers by the time any
transformation runs.

Example:
    >>> project = SourceProject.model_validate(
    ...     {"id": "p1", "name": "Spring Launch", "financialYear": 2025,
    ...      "financialMonth": "M3", "budget": "8万", "discount": "0.85"}
    ... )
    >>> project.financial_month
    3
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kolmigrate.normalization import (
    parse_budget,
    parse_discount,
    parse_financial_month,
    parse_financial_year,
    to_minor_units,
)


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


def _object_id_to_str(value: Any) -> Any:
    return None if value is None else str(value)


class SourceDocument(BaseModel):
    """Base for source documents: populated by alias, unknown keys ignored."""

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra="ignore",
        frozen=True,
    )


class SourceProject(SourceDocument):
    """
    A project in the source database.

    Attributes:
        id: Source project id.
        name: Project name.
        status: Source-language status label, mapped later.
        financial_year: Fiscal year, None if unreadable.
        financial_month: Fiscal month (``"M3"`` becomes 3), None if unreadable.
        budget_minor_units: Budget in minor units (``"8万"`` becomes 8000000).
        source_discount: The project's own discount, never operative.
        benchmark_cpm: CPM target used for the KPI config, if set.
    """

    id: str = Field(..., description="Source project id")
    name: str = Field(..., description="Project name (unique in practice)")
    status: str | None = Field(default=None, description="Source status label")
    financial_year: int | None = Field(default=None, alias="financialYear")
    financial_month: int | None = Field(default=None, alias="financialMonth")
    budget_minor_units: int = Field(
        default=0,
        alias="budget",
        description="Budget converted to minor units",
    )
    source_discount: float | None = Field(default=None, alias="discount")
    benchmark_cpm: float | None = Field(default=None, alias="benchmarkCPM")
    adjustments: list[Any] = Field(default_factory=list)
    audit_log: list[Any] = Field(default_factory=list, alias="auditLog")
    created_at: Any = Field(default=None, alias="createdAt")

    @field_validator("financial_year", mode="before")
    @classmethod
    def _parse_year(cls, value: Any) -> int | None:
        return parse_financial_year(value)

    @field_validator("financial_month", mode="before")
    @classmethod
    def _parse_month(cls, value: Any) -> int | None:
        return parse_financial_month(value)

    @field_validator("budget_minor_units", mode="before")
    @classmethod
    def _parse_budget(cls, value: Any) -> int:
        return parse_budget(value)

    @field_validator("source_discount", mode="before")
    @classmethod
    def _parse_discount(cls, value: Any) -> float | None:
        return parse_discount(value)

    @field_validator("benchmark_cpm", mode="before")
    @classmethod
    def _parse_benchmark(cls, value: Any) -> float | None:
        return parse_discount(value)

    @field_validator("adjustments", "audit_log", mode="before")
    @classmethod
    def _default_lists(cls, value: Any) -> Any:
        return _none_to_list(value)


class SourceCollaboration(SourceDocument):
    """
    A talent collaboration in the source database.

    Amounts are converted to minor units on parse; a zero or missing actual
    rebate is treated as absent.
    """

    id: str
    object_id: str | None = Field(default=None, alias="_id")
    project_id: str | None = Field(default=None, alias="projectId")
    talent_id: str | None = Field(default=None, alias="talentId")
    amount_minor_units: int = Field(default=0, alias="amount")
    rebate_rate: float = Field(default=0, alias="rebate")
    actual_rebate_minor_units: int | None = Field(default=None, alias="actualRebate")
    order_type: str | None = Field(default=None, alias="orderType")
    status: str | None = None
    talent_source: str | None = Field(default=None, alias="talentSource")
    video_id: str | None = Field(default=None, alias="videoId")
    video_url: str | None = Field(default=None, alias="videoUrl")
    task_id: str | None = Field(default=None, alias="taskId")
    planned_release_date: Any = Field(default=None, alias="plannedReleaseDate")
    publish_date: Any = Field(default=None, alias="publishDate")
    rebate_screenshots: list[Any] = Field(default_factory=list, alias="rebateScreenshots")
    created_at: Any = Field(default=None, alias="createdAt")

    @field_validator("object_id", "video_id", mode="before")
    @classmethod
    def _stringify_object_id(cls, value: Any) -> str | None:
        return _object_id_to_str(value)

    @field_validator("amount_minor_units", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> int:
        return to_minor_units(value)

    @field_validator("actual_rebate_minor_units", mode="before")
    @classmethod
    def _actual_rebate(cls, value: Any) -> int | None:
        if not value:
            return None
        return to_minor_units(value)

    @field_validator("rebate_rate", mode="before")
    @classmethod
    def _rebate_rate(cls, value: Any) -> Any:
        return value or 0

    @field_validator("rebate_screenshots", mode="before")
    @classmethod
    def _screenshots(cls, value: Any) -> Any:
        return _none_to_list(value)


class SourceWork(SourceDocument):
    """
    A published work (video) with its performance data.

    Attributes:
        effect_windows: ``{"t7", "t21", "t30"}`` snapshots, missing ones None.
        daily_stats: Raw daily entries, in source order.
    """

    id: str | None = None
    project_id: str | None = Field(default=None, alias="projectId")
    collaboration_id: str | None = Field(default=None, alias="collaborationId")
    video_id: str | None = Field(default=None, alias="videoId")
    t7: Any = None
    t21: Any = None
    t30: Any = None
    daily_stats: list[dict[str, Any]] = Field(default_factory=list, alias="dailyStats")

    @field_validator("video_id", "collaboration_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> str | None:
        return _object_id_to_str(value)

    @field_validator("daily_stats", mode="before")
    @classmethod
    def _stats(cls, value: Any) -> Any:
        return _none_to_list(value)

    @property
    def effect_windows(self) -> dict[str, Any]:
        return {"t7": self.t7 or None, "t21": self.t21 or None, "t30": self.t30 or None}

    @property
    def report_dates(self) -> list[str]:
        """Dates of the daily entries that carry one."""
        return [str(stat["date"]) for stat in self.daily_stats if stat.get("date")]


__all__ = [
    "SourceDocument",
    "SourceProject",
    "SourceCollaboration",
    "SourceWork",
]
