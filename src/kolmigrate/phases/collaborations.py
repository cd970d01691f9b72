"""
Collaboration phase: creates target collaborations for a migrated project.

Migration is all-or-nothing per project with respect to identity: if any
collaboration references a talent without a target identity, nothing is
written and UnmatchedTalentError lists the talents to fix.

Writes go in ordered batches of ``MigrationConfig.insert_batch_size``. A
failing batch raises CollaborationInsertError reporting exactly how many
documents were committed, so operators can roll back or re-run. A re-run
skips source collaborations already written to the target project (found by
``migratedFrom.sourceCollabId``) and returns their ids in the mapping.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from kolmigrate.exceptions import (
    CollaborationInsertError,
    DocumentWriteError,
    StoreError,
    UnmatchedTalentError,
)
from kolmigrate.identity import IdentityMatcher
from kolmigrate.ids import COLLABORATION_PREFIX, generate_id
from kolmigrate.ingestion import SourceCollaboration
from kolmigrate.models import CollaborationMigrationResult, UnmatchedTalent, UnmatchReason
from kolmigrate.normalization import map_order_mode
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_BATCH_SIZE,
    ATTR_PHASE,
    ATTR_RECORDS_TOTAL,
    ATTR_RECORDS_WRITTEN,
    ATTR_SOURCE_PROJECT_ID,
    ATTR_TARGET_PROJECT_ID,
)
from kolmigrate.phases._lookup import MIGRATED
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "待提报工作台"
"""Collaboration status used when the source has none."""

PRICING_MODE = "framework"


class CollaborationPhase:
    """
    Migrates the collaborations of one project.

    Example:
        >>> phase = CollaborationPhase(session)
        >>> result = await phase.migrate("p1", "proj_1735689600000_k3x9a1q")
        >>> result.collaboration_mapping
        {'c1': 'collab_1735689600123_a8b7c6d'}
    """

    def __init__(
        self,
        session: MigrationSession,
        identity_matcher: IdentityMatcher | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the phase.

        Args:
            session: Source and target databases
            identity_matcher: Matcher used when no identity mapping is supplied
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._session = session
        self._identity_matcher = identity_matcher or IdentityMatcher(session, tracer=self._tracer)

    async def migrate(
        self,
        source_project_id: str,
        target_project_id: str,
        identity_mapping: dict[str, str] | None = None,
    ) -> CollaborationMigrationResult:
        """
        Create target collaborations for every source collaboration.

        Args:
            source_project_id: Source project id
            target_project_id: Target project the collaborations belong to
            identity_mapping: ``{source talent id: target oneId}``; rebuilt
                with IdentityMatcher when empty or omitted

        Returns:
            CollaborationMigrationResult with the count and the
            ``{source collaboration id: target collaboration id}`` mapping

        Raises:
            UnmatchedTalentError: If any referenced talent has no target identity
            CollaborationInsertError: If a batch insert fails part way
        """
        with self._tracer.span(
            "kolmigrate.collaboration_phase.migrate",
            {
                ATTR_PHASE: "collaborations",
                ATTR_SOURCE_PROJECT_ID: source_project_id,
                ATTR_TARGET_PROJECT_ID: target_project_id,
            },
        ) as span:
            raw_collaborations = await self._session.source_collection(
                Collections.COLLABORATIONS
            ).find({"projectId": source_project_id})
            if not raw_collaborations:
                logger.info("Project %s has no collaborations to migrate", source_project_id)
                return CollaborationMigrationResult(count=0)

            collaborations = [SourceCollaboration.model_validate(raw) for raw in raw_collaborations]
            existing = await self._migrated_collaborations(target_project_id)
            pending = [c for c in collaborations if c.id not in existing]
            if not pending:
                logger.info(
                    "All %d collaborations of project %s are already migrated into %s",
                    len(collaborations),
                    source_project_id,
                    target_project_id,
                )
                return CollaborationMigrationResult(
                    count=0,
                    collaboration_mapping=self._ordered_mapping(collaborations, existing),
                    already_migrated_count=len(collaborations),
                )

            mapping = await self._resolve_mapping(source_project_id, identity_mapping)

            missing = self._missing_talents(pending, mapping)
            if missing:
                raise UnmatchedTalentError(source_project_id, missing)

            talent_names = await self._talent_names(set(mapping.values()))
            now = datetime.now(UTC)
            created: dict[str, str] = {}
            documents: list[dict[str, Any]] = []
            for collaboration in pending:
                target_id = generate_id(COLLABORATION_PREFIX)
                created[collaboration.id] = target_id
                target_one_id = mapping[collaboration.talent_id or ""]
                documents.append(
                    self.build_document(
                        collaboration,
                        target_id=target_id,
                        target_project_id=target_project_id,
                        target_one_id=target_one_id,
                        talent_name=talent_names.get(target_one_id, ""),
                        now=now,
                    )
                )

            await self._insert_batches(source_project_id, target_project_id, documents)

            if span:
                span.set_attribute(ATTR_RECORDS_TOTAL, len(collaborations))
                span.set_attribute(ATTR_RECORDS_WRITTEN, len(documents))

            logger.info(
                "Migrated %d collaborations of project %s into %s (%d already present)",
                len(documents),
                source_project_id,
                target_project_id,
                len(collaborations) - len(pending),
            )
            return CollaborationMigrationResult(
                count=len(documents),
                collaboration_mapping=self._ordered_mapping(
                    collaborations, {**existing, **created}
                ),
                already_migrated_count=len(collaborations) - len(pending),
            )

    async def _migrated_collaborations(self, target_project_id: str) -> dict[str, str]:
        """Map source collaboration ids to the target collaborations already written."""
        documents = await self._session.target_collection(Collections.COLLABORATIONS).find(
            {"projectId": target_project_id, "migratedFrom": MIGRATED}
        )
        existing: dict[str, str] = {}
        for document in documents:
            source_id = (document.get("migratedFrom") or {}).get("sourceCollabId")
            if source_id and source_id not in existing:
                existing[source_id] = document["id"]
        return existing

    @staticmethod
    def _ordered_mapping(
        collaborations: list[SourceCollaboration], targets: dict[str, str]
    ) -> dict[str, str]:
        return {c.id: targets[c.id] for c in collaborations if c.id in targets}

    async def _resolve_mapping(
        self,
        source_project_id: str,
        identity_mapping: dict[str, str] | None,
    ) -> dict[str, str]:
        if identity_mapping:
            return dict(identity_mapping)

        validation = await self._identity_matcher.match(source_project_id)
        if not validation.can_proceed:
            raise UnmatchedTalentError(source_project_id, list(validation.unmatched))
        return validation.to_mapping()

    @staticmethod
    def _missing_talents(
        collaborations: list[SourceCollaboration],
        mapping: dict[str, str],
    ) -> list[UnmatchedTalent]:
        missing: dict[str, UnmatchedTalent] = {}
        for collaboration in collaborations:
            talent_id = collaboration.talent_id or ""
            if talent_id in mapping or talent_id in missing:
                continue
            missing[talent_id] = UnmatchedTalent(
                source_talent_id=talent_id,
                display_name=None,
                secondary_id=None,
                reason=(
                    UnmatchReason.TARGET_TALENT_MISSING
                    if talent_id
                    else UnmatchReason.SOURCE_TALENT_MISSING
                ),
            )
        return list(missing.values())

    async def _talent_names(self, one_ids: set[str]) -> dict[str, str]:
        if not one_ids:
            return {}
        talents = await self._session.target_collection(Collections.TALENTS).find(
            {"oneId": {"$in": sorted(one_ids)}}
        )
        return {talent["oneId"]: talent.get("name") or "" for talent in talents}

    async def _insert_batches(
        self,
        source_project_id: str,
        target_project_id: str,
        documents: list[dict[str, Any]],
    ) -> None:
        batch_size = self._session.config.insert_batch_size
        collection = self._session.target_collection(Collections.COLLABORATIONS)
        committed = 0
        for start in range(0, len(documents), batch_size):
            batch = documents[start : start + batch_size]
            with self._tracer.span(
                "kolmigrate.collaboration_phase.insert_batch",
                {ATTR_BATCH_SIZE: len(batch), ATTR_TARGET_PROJECT_ID: target_project_id},
            ):
                try:
                    result = await collection.insert_many(batch)
                except StoreError as e:
                    partial = e.inserted_count if isinstance(e, DocumentWriteError) else 0
                    logger.error(
                        "Collaboration insert for project %s stopped after %d of %d documents: %s",
                        source_project_id,
                        committed + partial,
                        len(documents),
                        e,
                    )
                    raise CollaborationInsertError(
                        source_project_id=source_project_id,
                        target_project_id=target_project_id,
                        inserted_count=committed + partial,
                        requested_count=len(documents),
                        cause=e.message,
                    ) from e
                committed += result.inserted_count

    def build_document(
        self,
        collaboration: SourceCollaboration,
        *,
        target_id: str,
        target_project_id: str,
        target_one_id: str,
        talent_name: str,
        now: datetime,
    ) -> dict[str, Any]:
        """Build the target collaboration document."""
        return {
            "id": target_id,
            "projectId": target_project_id,
            "talentOneId": target_one_id,
            "talentPlatform": self._session.config.platform,
            "talentName": talent_name,
            "talentSource": collaboration.talent_source,
            "orderMode": map_order_mode(collaboration.order_type).value,
            "pricingMode": PRICING_MODE,
            "amount": collaboration.amount_minor_units,
            "rebateRate": collaboration.rebate_rate,
            "actualRebate": collaboration.actual_rebate_minor_units,
            "quotationPrice": None,
            "orderPrice": None,
            "status": collaboration.status or DEFAULT_STATUS,
            "videoId": collaboration.video_id or None,
            "videoUrl": collaboration.video_url or None,
            "taskId": collaboration.task_id or None,
            "plannedReleaseDate": collaboration.planned_release_date or None,
            "actualReleaseDate": collaboration.publish_date or None,
            "orderDate": None,
            "recoveryDate": None,
            "discrepancyReason": None,
            "rebateScreenshots": list(collaboration.rebate_screenshots),
            "effectData": None,
            "adjustments": [],
            "createdAt": collaboration.created_at or now,
            "updatedAt": now,
            "migratedFrom": {
                "sourceCollabId": collaboration.id,
                "sourceCollabObjectId": collaboration.object_id,
                "sourceTalentId": collaboration.talent_id,
                "migratedAt": now.isoformat(),
            },
        }


__all__ = ["CollaborationPhase", "DEFAULT_STATUS"]
