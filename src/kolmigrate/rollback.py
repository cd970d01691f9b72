"""Rollback of a migrated project from the target database."""

from __future__ import annotations

import logging

from kolmigrate.models import RollbackResult
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import ATTR_RECORDS_WRITTEN, ATTR_TARGET_PROJECT_ID
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)


class RollbackManager:
    """
    Removes a target project and its collaborations.

    Collaborations are deleted before the project so an interrupted rollback
    never leaves collaborations pointing at a missing project. Source data is
    never touched.

    Example:
        >>> manager = RollbackManager(session)
        >>> result = await manager.rollback("proj_1735689600000_k3x9a1q")
        >>> result.deleted_project
        1
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

    async def rollback(self, target_project_id: str) -> RollbackResult:
        """
        Delete the project's collaborations, then the project.

        Args:
            target_project_id: Target project id

        Returns:
            RollbackResult with the number of deleted documents
        """
        with self._tracer.span(
            "kolmigrate.rollback.rollback",
            {ATTR_TARGET_PROJECT_ID: target_project_id},
        ) as span:
            collaborations = await self._session.target_collection(
                Collections.COLLABORATIONS
            ).delete_many({"projectId": target_project_id})
            project = await self._session.target_collection(Collections.PROJECTS).delete_one(
                {"id": target_project_id}
            )

            result = RollbackResult(
                target_project_id=target_project_id,
                deleted_project=project.deleted_count,
                deleted_collaborations=collaborations.deleted_count,
            )
            if span:
                span.set_attribute(
                    ATTR_RECORDS_WRITTEN, result.deleted_project + result.deleted_collaborations
                )

            if not result.deleted_project:
                logger.warning("Rollback found no target project %s", target_project_id)
            logger.info(
                "Rolled back project %s: %d project, %d collaborations deleted",
                target_project_id,
                result.deleted_project,
                result.deleted_collaborations,
            )
            return result


__all__ = ["RollbackManager"]
