"""
Daily stats phase: copies per-day performance entries onto migrated
collaborations and enables tracking on the target project.

A source work is placed on a target collaboration by the first rule that
finds one:

1. the collaboration mapping returned by CollaborationPhase
2. provenance (``migratedFrom.sourceCollabId``) inside the target project
3. the video id among migrated collaborations

Collaborations that already carry daily stats are never overwritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from kolmigrate._concurrency import gather_bounded
from kolmigrate.ingestion import SourceWork
from kolmigrate.models import DailyStatsMigrationResult, TrackingStatus
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_PHASE,
    ATTR_RECORDS_SKIPPED,
    ATTR_RECORDS_TOTAL,
    ATTR_RECORDS_WRITTEN,
    ATTR_SOURCE_PROJECT_ID,
    ATTR_TARGET_PROJECT_ID,
    ATTR_TRACKING_STATUS,
)
from kolmigrate.phases._lookup import MIGRATED, find_migrated_project
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)

MIGRATED_ENTRY_SOURCE = "migrated"
TRACKING_VERSION = "standard"

# Collaborations without daily stats yet
_NO_DAILY_STATS = {"$in": [None, []]}


class _Outcome(Enum):
    MIGRATED = "migrated"
    ALREADY_MIGRATED = "already_migrated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class _WorkOutcome:
    outcome: _Outcome
    report_dates: tuple[str, ...] = ()


def build_daily_entry(stat: dict[str, Any], migrated_at: str) -> dict[str, Any]:
    """
    Convert one source daily entry into the target shape.

    Derived metrics (``cpm``, ``cpmChange``) are not copied; the target
    recomputes them.

    Example:
        >>> entry = build_daily_entry({"date": "2025-03-01", "cpm": 9.5}, "2025-04-01T00:00:00")
        >>> entry["totalViews"], entry["source"], "cpm" in entry
        (0, 'migrated', False)
    """
    return {
        "date": stat.get("date"),
        "totalViews": stat.get("totalViews") or 0,
        "solution": stat.get("solution") or "",
        "source": MIGRATED_ENTRY_SOURCE,
        "migratedAt": migrated_at,
        "createdAt": stat.get("createdAt") or migrated_at,
        "updatedAt": migrated_at,
    }


class DailyStatsPhase:
    """
    Migrates the daily stats of a project's works.

    Example:
        >>> phase = DailyStatsPhase(session)
        >>> result = await phase.migrate("p1", TrackingStatus.ARCHIVED)
        >>> result.last_report_date
        '2025-03-31'
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

    async def migrate(
        self,
        source_project_id: str,
        tracking_status: TrackingStatus = TrackingStatus.ARCHIVED,
        collaboration_mapping: dict[str, str] | None = None,
    ) -> DailyStatsMigrationResult:
        """
        Copy daily stats onto matching migrated collaborations.

        Args:
            source_project_id: Source project id
            tracking_status: Status written to the target project's trackingConfig
            collaboration_mapping: Optional ``{source collaboration id:
                target collaboration id}`` tried before the other rules

        Returns:
            DailyStatsMigrationResult with counts and report date bounds
        """
        with self._tracer.span(
            "kolmigrate.daily_stats_phase.migrate",
            {
                ATTR_PHASE: "daily_stats",
                ATTR_SOURCE_PROJECT_ID: source_project_id,
                ATTR_TRACKING_STATUS: tracking_status.value,
            },
        ) as span:
            raw_works = await self._session.source_collection(Collections.WORKS).find(
                {"projectId": source_project_id, "dailyStats": {"$exists": True, "$ne": []}}
            )
            works = [SourceWork.model_validate(raw) for raw in raw_works]
            works = [work for work in works if work.daily_stats]

            target_project = await find_migrated_project(self._session, source_project_id)
            target_project_id = target_project.get("id") if target_project else None
            mapping = collaboration_mapping or {}
            migrated_at = datetime.now(UTC).isoformat()

            async def migrate_work(work: SourceWork) -> _WorkOutcome:
                return await self._migrate_work(work, target_project_id, mapping, migrated_at)

            outcomes = await gather_bounded(
                works, migrate_work, self._session.config.max_concurrent_lookups
            )

            report_dates = sorted(
                date
                for outcome in outcomes
                if outcome.outcome is not _Outcome.SKIPPED
                for date in outcome.report_dates
            )
            first_report_date = report_dates[0] if report_dates else None
            last_report_date = report_dates[-1] if report_dates else None

            if target_project_id:
                await self._enable_tracking(
                    target_project_id,
                    tracking_status,
                    migrated_at,
                    first_report_date,
                    last_report_date,
                )

            kinds = [outcome.outcome for outcome in outcomes]
            result = DailyStatsMigrationResult(
                total_source_records=len(works),
                tracking_status=tracking_status,
                migrated_count=kinds.count(_Outcome.MIGRATED),
                skipped_count=kinds.count(_Outcome.SKIPPED),
                already_migrated_count=kinds.count(_Outcome.ALREADY_MIGRATED),
                target_project_id=target_project_id,
                first_report_date=first_report_date,
                last_report_date=last_report_date,
            )

            if span:
                span.set_attribute(ATTR_RECORDS_TOTAL, result.total_source_records)
                span.set_attribute(ATTR_RECORDS_WRITTEN, result.migrated_count)
                span.set_attribute(ATTR_RECORDS_SKIPPED, result.skipped_count)
                if target_project_id:
                    span.set_attribute(ATTR_TARGET_PROJECT_ID, target_project_id)

            if result.skipped_count:
                logger.warning(
                    "%d of %d works with daily stats of project %s matched no collaboration",
                    result.skipped_count,
                    result.total_source_records,
                    source_project_id,
                )
            logger.info(
                "Daily stats migration for project %s: %d migrated, %d already migrated",
                source_project_id,
                result.migrated_count,
                result.already_migrated_count,
            )
            return result

    async def _find_collaboration(
        self,
        work: SourceWork,
        target_project_id: str | None,
        mapping: dict[str, str],
    ) -> dict[str, Any] | None:
        collaborations = self._session.target_collection(Collections.COLLABORATIONS)

        target_collab_id = mapping.get(work.collaboration_id or "")
        if target_collab_id:
            found = await collaborations.find_one(
                {"id": target_collab_id, "migratedFrom": MIGRATED}
            )
            if found is not None:
                return found

        if work.collaboration_id and target_project_id:
            found = await collaborations.find_one(
                {
                    "projectId": target_project_id,
                    "migratedFrom.sourceCollabId": work.collaboration_id,
                }
            )
            if found is not None:
                return found

        if work.video_id:
            locator: dict[str, Any] = {"videoId": work.video_id, "migratedFrom": MIGRATED}
            if target_project_id:
                locator["projectId"] = target_project_id
            return await collaborations.find_one(locator)

        return None

    async def _migrate_work(
        self,
        work: SourceWork,
        target_project_id: str | None,
        mapping: dict[str, str],
        migrated_at: str,
    ) -> _WorkOutcome:
        collaboration = await self._find_collaboration(work, target_project_id, mapping)
        if collaboration is None:
            logger.debug("No migrated collaboration for work %s", work.id)
            return _WorkOutcome(_Outcome.SKIPPED)

        dates = tuple(work.report_dates)
        if collaboration.get("dailyStats"):
            logger.debug("Collaboration %s already has daily stats", collaboration.get("id"))
            return _WorkOutcome(_Outcome.ALREADY_MIGRATED, dates)

        entries = [build_daily_entry(stat, migrated_at) for stat in work.daily_stats]
        result = await self._session.target_collection(Collections.COLLABORATIONS).update_one(
            {"id": collaboration["id"], "dailyStats": _NO_DAILY_STATS},
            {
                "$set": {
                    "dailyStats": entries,
                    "lastReportDate": max(dates) if dates else None,
                    "migratedFrom.dailyStatsMigratedAt": migrated_at,
                }
            },
        )
        if not result.modified_count:
            return _WorkOutcome(_Outcome.ALREADY_MIGRATED, dates)
        return _WorkOutcome(_Outcome.MIGRATED, dates)

    async def _enable_tracking(
        self,
        target_project_id: str,
        tracking_status: TrackingStatus,
        migrated_at: str,
        first_report_date: str | None,
        last_report_date: str | None,
    ) -> None:
        await self._session.target_collection(Collections.PROJECTS).update_one(
            {"id": target_project_id},
            {
                "$set": {
                    "trackingConfig": {
                        "status": tracking_status.value,
                        "version": TRACKING_VERSION,
                        "enableAutoFetch": False,
                        "benchmarkCPM": self._session.config.tracking_benchmark_cpm,
                        "migratedAt": migrated_at,
                        "firstReportDate": first_report_date,
                        "lastReportDate": last_report_date,
                    },
                }
            },
        )
        logger.debug(
            "Tracking %s enabled on project %s", tracking_status.value, target_project_id
        )


__all__ = ["DailyStatsPhase", "build_daily_entry"]
