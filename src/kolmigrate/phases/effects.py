"""
Effect phase: merges t7/t21/t30 effect windows into migrated collaborations.

Only target collaborations carrying ``migratedFrom`` are touched, and only
while their ``effectData`` is still null, so re-running the phase is a no-op.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from kolmigrate._concurrency import gather_bounded
from kolmigrate.ingestion import SourceWork
from kolmigrate.models import EffectMigrationResult
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_PHASE,
    ATTR_RECORDS_SKIPPED,
    ATTR_RECORDS_TOTAL,
    ATTR_RECORDS_WRITTEN,
    ATTR_SOURCE_PROJECT_ID,
    ATTR_TARGET_PROJECT_ID,
)
from kolmigrate.phases._lookup import MIGRATED, find_migrated_project
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)


class _Outcome(Enum):
    UPDATED = "updated"
    ALREADY_MIGRATED = "already_migrated"
    UNMATCHED = "unmatched"


class EffectPhase:
    """
    Migrates effect snapshots of a project's works.

    Each work is placed on a target collaboration by its collaboration id when
    a collaboration mapping is supplied, otherwise by video id.

    Example:
        >>> phase = EffectPhase(session)
        >>> result = await phase.migrate("p1")
        >>> result.updated_count
        2
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
        collaboration_mapping: dict[str, str] | None = None,
    ) -> EffectMigrationResult:
        """
        Write effect data onto the matching migrated collaborations.

        Args:
            source_project_id: Source project id
            collaboration_mapping: Optional ``{source collaboration id:
                target collaboration id}`` from CollaborationPhase

        Returns:
            EffectMigrationResult with updated, already migrated and
            unmatched counts
        """
        with self._tracer.span(
            "kolmigrate.effect_phase.migrate",
            {ATTR_PHASE: "effects", ATTR_SOURCE_PROJECT_ID: source_project_id},
        ) as span:
            raw_works = await self._session.source_collection(Collections.WORKS).find(
                {"projectId": source_project_id}
            )
            works = [SourceWork.model_validate(raw) for raw in raw_works]

            target_project = await find_migrated_project(self._session, source_project_id)
            target_project_id = target_project.get("id") if target_project else None
            mapping = collaboration_mapping or {}

            async def migrate_work(work: SourceWork) -> _Outcome:
                return await self._migrate_work(work, target_project_id, mapping)

            outcomes = await gather_bounded(
                works, migrate_work, self._session.config.max_concurrent_lookups
            )

            result = EffectMigrationResult(
                total_source_records=len(works),
                updated_count=outcomes.count(_Outcome.UPDATED),
                already_migrated_count=outcomes.count(_Outcome.ALREADY_MIGRATED),
                unmatched_count=outcomes.count(_Outcome.UNMATCHED),
                target_project_id=target_project_id,
            )

            if span:
                span.set_attribute(ATTR_RECORDS_TOTAL, result.total_source_records)
                span.set_attribute(ATTR_RECORDS_WRITTEN, result.updated_count)
                span.set_attribute(ATTR_RECORDS_SKIPPED, result.unmatched_count)
                if target_project_id:
                    span.set_attribute(ATTR_TARGET_PROJECT_ID, target_project_id)

            if result.unmatched_count:
                logger.warning(
                    "%d of %d works of project %s have no migrated collaboration",
                    result.unmatched_count,
                    result.total_source_records,
                    source_project_id,
                )
            logger.info(
                "Effect migration for project %s: %d updated, %d already migrated",
                source_project_id,
                result.updated_count,
                result.already_migrated_count,
            )
            return result

    def _locate(
        self,
        work: SourceWork,
        target_project_id: str | None,
        mapping: dict[str, str],
    ) -> dict[str, Any] | None:
        """Filter selecting the migrated collaboration a work belongs to."""
        target_collab_id = mapping.get(work.collaboration_id or "")
        if target_collab_id:
            locator: dict[str, Any] = {"id": target_collab_id}
        elif work.video_id:
            locator = {"videoId": work.video_id}
            if target_project_id:
                locator["projectId"] = target_project_id
        else:
            return None
        locator["migratedFrom"] = MIGRATED
        return locator

    async def _migrate_work(
        self,
        work: SourceWork,
        target_project_id: str | None,
        mapping: dict[str, str],
    ) -> _Outcome:
        locator = self._locate(work, target_project_id, mapping)
        if locator is None:
            logger.debug("Work %s has no video id, skipped", work.id)
            return _Outcome.UNMATCHED

        collaborations = self._session.target_collection(Collections.COLLABORATIONS)
        result = await collaborations.update_one(
            {**locator, "effectData": None},
            {
                "$set": {
                    "effectData": work.effect_windows,
                    "migratedFrom.effectMigratedAt": datetime.now(UTC).isoformat(),
                }
            },
        )
        if result.modified_count:
            return _Outcome.UPDATED

        if await collaborations.find_one(locator) is not None:
            logger.debug("Collaboration for work %s already has effect data", work.id)
            return _Outcome.ALREADY_MIGRATED

        logger.debug("No migrated collaboration for work %s", work.id)
        return _Outcome.UNMATCHED


__all__ = ["EffectPhase"]
