"""
Post-migration reconciliation between a source project and its target.

The validator is read-only. It compares collaboration counts, total amounts
and daily-stats entry counts, and reports effect coverage for information.

Amounts are compared like for like: the source total is summed in exact
decimal arithmetic in major units, converted to minor units with
``round(total * 100)``, and compared with the integer sum of target amounts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from kolmigrate.normalization import MINOR_UNITS_PER_MAJOR, sum_major_units
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_PHASE,
    ATTR_SOURCE_PROJECT_ID,
    ATTR_TARGET_PROJECT_ID,
    ATTR_VALIDATION_ALL_MATCH,
)
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)

_WITH_DAILY_STATS = {"$nin": [None, []]}


@dataclass(frozen=True)
class CountComparison:
    """Collaboration counts on both sides."""

    source: int
    target: int

    @property
    def match(self) -> bool:
        return self.source == self.target

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "match": self.match}


@dataclass(frozen=True)
class AmountComparison:
    """
    Total collaboration amounts on both sides.

    Attributes:
        source: Source total in major units.
        target: Target total in minor units.
    """

    source: Decimal
    target: int

    @property
    def source_minor_units(self) -> int:
        scaled = (self.source * MINOR_UNITS_PER_MAJOR).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return int(scaled)

    @property
    def match(self) -> bool:
        return self.source_minor_units == self.target

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": float(self.source),
            "sourceMinorUnits": self.source_minor_units,
            "target": self.target,
            "match": self.match,
        }


@dataclass(frozen=True)
class EffectComparison:
    """Source works versus target collaborations with effect data."""

    source_works: int
    target_with_effects: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceWorks": self.source_works,
            "targetWithEffects": self.target_with_effects,
        }


@dataclass(frozen=True)
class DailyStatsComparison:
    """Daily stats coverage; entries are compared, record counts reported."""

    source_works_with_stats: int
    target_with_stats: int
    source_entries: int
    target_entries: int

    @property
    def match(self) -> bool:
        return self.source_entries == self.target_entries

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceWorksWithStats": self.source_works_with_stats,
            "targetWithStats": self.target_with_stats,
            "sourceStatsEntries": self.source_entries,
            "targetStatsEntries": self.target_entries,
            "sourceEntries": self.source_entries,
            "targetEntries": self.target_entries,
            "match": self.match,
        }


@dataclass(frozen=True)
class ReconciliationReport:
    """
    Comparison of a source project with its migrated target project.

    ``all_match`` requires collaboration counts, amounts and daily-stats
    entries to agree. Effect coverage is informational.
    """

    source_project_id: str
    target_project_id: str
    collaborations: CountComparison
    total_amount: AmountComparison
    effects: EffectComparison
    daily_stats: DailyStatsComparison

    @property
    def all_match(self) -> bool:
        return self.collaborations.match and self.total_amount.match and self.daily_stats.match

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceProjectId": self.source_project_id,
            "targetProjectId": self.target_project_id,
            "comparison": {
                "collaborations": self.collaborations.to_dict(),
                "totalAmount": self.total_amount.to_dict(),
                "effects": self.effects.to_dict(),
                "dailyStats": self.daily_stats.to_dict(),
            },
            "allMatch": self.all_match,
        }


class ReconciliationValidator:
    """
    Compares a migrated project with its source.

    Example:
        >>> validator = ReconciliationValidator(session)
        >>> report = await validator.validate("p1", "proj_1735689600000_k3x9a1q")
        >>> report.all_match
        True
    """

    def __init__(
        self,
        session: MigrationSession,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._session = session

    async def validate(
        self, source_project_id: str, target_project_id: str
    ) -> ReconciliationReport:
        """
        Build the reconciliation report.

        Args:
            source_project_id: Source project id
            target_project_id: Target project id

        Returns:
            ReconciliationReport for the pair
        """
        with self._tracer.span(
            "kolmigrate.reconciliation.validate",
            {
                ATTR_PHASE: "validation",
                ATTR_SOURCE_PROJECT_ID: source_project_id,
                ATTR_TARGET_PROJECT_ID: target_project_id,
            },
        ) as span:
            source_collaborations = await self._session.source_collection(
                Collections.COLLABORATIONS
            ).find({"projectId": source_project_id})
            target_collaborations = await self._session.target_collection(
                Collections.COLLABORATIONS
            ).find({"projectId": target_project_id})

            source_works = self._session.source_collection(Collections.WORKS)
            source_works_count = await source_works.count_documents(
                {"projectId": source_project_id}
            )
            source_works_with_stats = await source_works.count_documents(
                {"projectId": source_project_id, "dailyStats": _WITH_DAILY_STATS}
            )
            entries = await source_works.aggregate(
                [
                    {
                        "$match": {
                            "projectId": source_project_id,
                            "dailyStats": _WITH_DAILY_STATS,
                        }
                    },
                    {"$unwind": "$dailyStats"},
                    {"$count": "total"},
                ]
            )
            source_entries = entries[0]["total"] if entries else 0

            report = ReconciliationReport(
                source_project_id=source_project_id,
                target_project_id=target_project_id,
                collaborations=CountComparison(
                    source=len(source_collaborations),
                    target=len(target_collaborations),
                ),
                total_amount=AmountComparison(
                    source=sum_major_units(c.get("amount") for c in source_collaborations),
                    target=sum(int(c.get("amount") or 0) for c in target_collaborations),
                ),
                effects=EffectComparison(
                    source_works=source_works_count,
                    target_with_effects=sum(
                        1 for c in target_collaborations if c.get("effectData")
                    ),
                ),
                daily_stats=DailyStatsComparison(
                    source_works_with_stats=source_works_with_stats,
                    target_with_stats=sum(1 for c in target_collaborations if c.get("dailyStats")),
                    source_entries=source_entries,
                    target_entries=sum(
                        len(c.get("dailyStats") or []) for c in target_collaborations
                    ),
                ),
            )

            if span:
                span.set_attribute(ATTR_VALIDATION_ALL_MATCH, report.all_match)

            if report.all_match:
                logger.info(
                    "Project %s reconciles with %s", source_project_id, target_project_id
                )
            else:
                logger.warning(
                    "Project %s does not reconcile with %s: collaborations=%s amount=%s "
                    "daily_stats=%s",
                    source_project_id,
                    target_project_id,
                    report.collaborations.match,
                    report.total_amount.match,
                    report.daily_stats.match,
                )
            return report


__all__ = [
    "CountComparison",
    "AmountComparison",
    "EffectComparison",
    "DailyStatsComparison",
    "ReconciliationReport",
    "ReconciliationValidator",
]
