"""
Talent identity matching between the source and target databases.

Source talents and target talents share no primary key. They are joined on
the platform account id: ``xingtuId`` on the source side and
``platformAccountId`` (with ``platform == "douyin"``) on the target side.
The matcher is read-only and reports every unresolvable talent instead of
raising, so operators can fix the target data and retry.
"""

from __future__ import annotations

import logging
from typing import Any

from kolmigrate.models import (
    TalentMatch,
    TalentValidationResult,
    UnmatchedTalent,
    UnmatchReason,
)
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_RECORDS_TOTAL,
    ATTR_SOURCE_PROJECT_ID,
    ATTR_TALENTS_UNMATCHED,
)
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)


class IdentityMatcher:
    """
    Resolves the talents referenced by a source project to target identities.

    Example:
        >>> matcher = IdentityMatcher(session)
        >>> result = await matcher.match("p1")
        >>> if result.can_proceed:
        ...     mapping = result.to_mapping()
    """

    def __init__(
        self,
        session: MigrationSession,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the matcher.

        Args:
            session: Source and target databases
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._session = session

    async def match(self, source_project_id: str) -> TalentValidationResult:
        """
        Match every talent referenced by the project's collaborations.

        Talents are reported in order of first appearance among the
        collaborations.

        Args:
            source_project_id: Source project to inspect

        Returns:
            TalentValidationResult partitioning the talents into matched and
            unmatched
        """
        with self._tracer.span(
            "kolmigrate.identity_matcher.match",
            {ATTR_SOURCE_PROJECT_ID: source_project_id},
        ) as span:
            collaborations = await self._session.source_collection(
                Collections.COLLABORATIONS
            ).find({"projectId": source_project_id})
            talent_ids = list(
                dict.fromkeys(
                    collab["talentId"] for collab in collaborations if collab.get("talentId")
                )
            )

            if not talent_ids:
                return TalentValidationResult(project_id=source_project_id)

            source_talents = await self._session.source_collection(Collections.TALENTS).find(
                {"id": {"$in": talent_ids}}
            )
            source_by_id = {talent["id"]: talent for talent in source_talents}

            secondary_ids = [
                talent["xingtuId"] for talent in source_talents if talent.get("xingtuId")
            ]
            target_by_account = await self._find_target_talents(secondary_ids)

            matched: list[TalentMatch] = []
            unmatched: list[UnmatchedTalent] = []
            for talent_id in talent_ids:
                outcome = self._resolve(talent_id, source_by_id.get(talent_id), target_by_account)
                if isinstance(outcome, TalentMatch):
                    matched.append(outcome)
                else:
                    unmatched.append(outcome)

            if span:
                span.set_attribute(ATTR_RECORDS_TOTAL, len(talent_ids))
                span.set_attribute(ATTR_TALENTS_UNMATCHED, len(unmatched))

            if unmatched:
                logger.warning(
                    "Project %s: %d of %d talents have no target identity",
                    source_project_id,
                    len(unmatched),
                    len(talent_ids),
                )
            else:
                logger.info(
                    "Project %s: all %d talents matched", source_project_id, len(talent_ids)
                )

            return TalentValidationResult(
                project_id=source_project_id,
                matched=tuple(matched),
                unmatched=tuple(unmatched),
            )

    async def _find_target_talents(self, secondary_ids: list[str]) -> dict[str, dict[str, Any]]:
        if not secondary_ids:
            return {}
        target_talents = await self._session.target_collection(Collections.TALENTS).find(
            {
                "platform": self._session.config.platform,
                "platformAccountId": {"$in": secondary_ids},
            }
        )
        by_account: dict[str, dict[str, Any]] = {}
        for talent in target_talents:
            # first wins when the target holds duplicates
            by_account.setdefault(talent["platformAccountId"], talent)
        return by_account

    @staticmethod
    def _resolve(
        talent_id: str,
        source_talent: dict[str, Any] | None,
        target_by_account: dict[str, dict[str, Any]],
    ) -> TalentMatch | UnmatchedTalent:
        if source_talent is None:
            logger.debug("Talent %s missing from source talents", talent_id)
            return UnmatchedTalent(
                source_talent_id=talent_id,
                display_name=None,
                secondary_id=None,
                reason=UnmatchReason.SOURCE_TALENT_MISSING,
            )

        nickname = source_talent.get("nickname")
        secondary_id = source_talent.get("xingtuId")
        if not secondary_id:
            return UnmatchedTalent(
                source_talent_id=talent_id,
                display_name=nickname,
                secondary_id=None,
                reason=UnmatchReason.NO_SECONDARY_ID,
            )

        target_talent = target_by_account.get(secondary_id)
        if target_talent is None:
            return UnmatchedTalent(
                source_talent_id=talent_id,
                display_name=nickname,
                secondary_id=secondary_id,
                reason=UnmatchReason.TARGET_TALENT_MISSING,
            )

        return TalentMatch(
            source_talent_id=talent_id,
            target_one_id=target_talent["oneId"],
            display_name=nickname or target_talent.get("name"),
            secondary_id=secondary_id,
        )


__all__ = ["IdentityMatcher"]
