"""
Source project catalog with per-project migration progress.

Operators pick projects to migrate from this listing. Each entry shows the
source fields as stored, record counts, and how far the project has come
through the migration steps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from kolmigrate._concurrency import gather_bounded
from kolmigrate.models import MigrationStep, SourceMigrationStatus
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import ATTR_PROJECTS_TOTAL
from kolmigrate.phases._lookup import find_existing_project
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)

_WITH_DAILY_STATS = {"$nin": [None, []]}


@dataclass(frozen=True)
class SourceProjectSummary:
    """
    One source project and its migration progress.

    Source fields (status, financial period, discount, budget) are reported
    as stored, without normalization.

    Attributes:
        collaboration_count: Source collaborations of the project.
        works_count: Source works of the project.
        works_with_stats_count: Source works carrying daily stats.
        target_project_id: Target project standing for this project, if any.
        has_collaborations: Target project has collaborations.
        has_effects: Some target collaboration has effect data.
        has_daily_stats: Some target collaboration has daily stats.
    """

    id: str
    name: str
    status: Any
    financial_year: Any
    financial_month: Any
    discount: Any
    budget: Any
    collaboration_count: int
    works_count: int
    works_with_stats_count: int = 0
    target_project_id: str | None = None
    has_collaborations: bool = False
    has_effects: bool = False
    has_daily_stats: bool = False

    @property
    def migration_status(self) -> SourceMigrationStatus:
        """
        Progress of the project.

        Returns:
            PENDING without a target project, COMPLETED once collaborations
            and effects (or no works at all) are in place, else PARTIAL.
        """
        if self.target_project_id is None:
            return SourceMigrationStatus.PENDING
        if self.has_collaborations and (self.has_effects or self.works_count == 0):
            return SourceMigrationStatus.COMPLETED
        return SourceMigrationStatus.PARTIAL

    @property
    def next_phase(self) -> MigrationStep:
        """First migration step that has not produced data yet."""
        if self.target_project_id is None:
            return MigrationStep.PROJECT
        if self.collaboration_count and not self.has_collaborations:
            return MigrationStep.COLLABORATIONS
        if self.works_count and not self.has_effects:
            return MigrationStep.EFFECTS
        if self.works_with_stats_count and not self.has_daily_stats:
            return MigrationStep.DAILY_STATS
        return MigrationStep.VALIDATION

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "financialYear": self.financial_year,
            "financialMonth": self.financial_month,
            "discount": self.discount,
            "budget": self.budget,
            "collaborationCount": self.collaboration_count,
            "worksCount": self.works_count,
            "migrationStatus": self.migration_status.value,
            "migratedProjectId": self.target_project_id,
            "targetProjectId": self.target_project_id,
            "hasCollaborations": self.has_collaborations,
            "hasEffects": self.has_effects,
            "hasDailyStats": self.has_daily_stats,
            "nextPhase": self.next_phase.value,
        }


class SourceCatalog:
    """
    Lists source projects with their migration progress.

    Example:
        >>> catalog = SourceCatalog(session)
        >>> [s.migration_status for s in await catalog.list_projects()]
        [<SourceMigrationStatus.PENDING: 'pending'>]
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

    async def list_projects(self) -> list[SourceProjectSummary]:
        """
        Summarize every source project.

        Returns:
            One summary per source project, in source order
        """
        with self._tracer.span("kolmigrate.catalog.list_projects") as span:
            projects = await self._session.source_collection(Collections.PROJECTS).find()
            summaries = await gather_bounded(
                projects, self._summarize, self._session.config.max_concurrent_lookups
            )
            if span:
                span.set_attribute(ATTR_PROJECTS_TOTAL, len(summaries))
            logger.debug("Listed %d source projects", len(summaries))
            return summaries

    async def _summarize(self, project: dict[str, Any]) -> SourceProjectSummary:
        project_id = str(project.get("id"))
        name = project.get("name") or ""

        collaboration_count = await self._session.source_collection(
            Collections.COLLABORATIONS
        ).count_documents({"projectId": project_id})
        works = self._session.source_collection(Collections.WORKS)
        works_count = await works.count_documents({"projectId": project_id})
        works_with_stats_count = await works.count_documents(
            {"projectId": project_id, "dailyStats": _WITH_DAILY_STATS}
        )

        summary = SourceProjectSummary(
            id=project_id,
            name=name,
            status=project.get("status"),
            financial_year=project.get("financialYear"),
            financial_month=project.get("financialMonth"),
            discount=project.get("discount"),
            budget=project.get("budget"),
            collaboration_count=collaboration_count,
            works_count=works_count,
            works_with_stats_count=works_with_stats_count,
        )

        existing = await find_existing_project(self._session, project_id, name)
        if existing is None:
            return summary

        target_project_id = existing.get("id")
        collaborations = self._session.target_collection(Collections.COLLABORATIONS)
        in_target = {"projectId": target_project_id}
        with_effects = await collaborations.count_documents(
            {**in_target, "effectData": {"$exists": True, "$ne": None}}
        )
        with_stats = await collaborations.count_documents(
            {**in_target, "dailyStats": _WITH_DAILY_STATS}
        )
        return replace(
            summary,
            target_project_id=target_project_id,
            has_collaborations=await collaborations.count_documents(in_target) > 0,
            has_effects=with_effects > 0,
            has_daily_stats=with_stats > 0,
        )


__all__ = ["SourceProjectSummary", "SourceCatalog"]
