"""
MigrationService: the operator-facing facade over the migration components.

Every method returns a dictionary envelope and never raises:

- success: ``{"success": True, ...camelCase result}``
- known failure: ``MigrationError.to_dict()``, e.g.
  ``{"success": False, "message": ..., "errorCode": "UNMATCHED_TALENTS", "unmatched": [...]}``
- unexpected failure: ``{"success": False, "message": "internal error", "error": str(exc)}``

Example:
    >>> service = MigrationService(session)
    >>> await service.migrate_project("p1")
    {'success': True, 'created': True, 'targetProjectId': 'proj_...', ...}
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from kolmigrate.catalog import SourceCatalog
from kolmigrate.exceptions import InvalidParameterError, MigrationError, MissingParameterError
from kolmigrate.identity import IdentityMatcher
from kolmigrate.models import TrackingStatus
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.phases import CollaborationPhase, DailyStatsPhase, EffectPhase, ProjectPhase
from kolmigrate.pricing import (
    CustomerConfigReader,
    PricingConfigResolver,
    TargetCustomerConfigReader,
)
from kolmigrate.reconciliation import ReconciliationValidator
from kolmigrate.rollback import RollbackManager
from kolmigrate.session import MigrationSession

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "internal error"

Envelope = dict[str, Any]


def _require(parameter: str, value: str | None) -> str:
    if value is None or value == "":
        raise MissingParameterError(parameter)
    return value


def parse_tracking_status(value: str | TrackingStatus | None) -> TrackingStatus:
    """
    Parse a tracking status parameter, defaulting to archived.

    Raises:
        InvalidParameterError: If the value is not a known status
    """
    if value is None or value == "":
        return TrackingStatus.ARCHIVED
    if isinstance(value, TrackingStatus):
        return value
    try:
        return TrackingStatus(value)
    except ValueError:
        raise InvalidParameterError("trackingStatus", value, TrackingStatus.values()) from None


class MigrationService:
    """
    One entry point per migration operation.

    The service wires the components of a session together with a shared
    tracer and converts their results and exceptions into envelopes.
    """

    def __init__(
        self,
        session: MigrationSession,
        pricing_reader: CustomerConfigReader | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the service.

        Args:
            session: Source and target databases
            pricing_reader: Source of customer pricing configurations (defaults
                to the target ``customers`` collection)
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._session = session

        self.identity_matcher = IdentityMatcher(session, tracer=self._tracer)
        self.project_phase = ProjectPhase(
            session,
            PricingConfigResolver(
                pricing_reader or TargetCustomerConfigReader(session), tracer=self._tracer
            ),
            tracer=self._tracer,
        )
        self.collaboration_phase = CollaborationPhase(
            session, self.identity_matcher, tracer=self._tracer
        )
        self.effect_phase = EffectPhase(session, tracer=self._tracer)
        self.daily_stats_phase = DailyStatsPhase(session, tracer=self._tracer)
        self.validator = ReconciliationValidator(session, tracer=self._tracer)
        self.rollback_manager = RollbackManager(session, tracer=self._tracer)
        self.catalog = SourceCatalog(session, tracer=self._tracer)

    @property
    def session(self) -> MigrationSession:
        return self._session

    async def _run(self, operation: str, func: Callable[[], Awaitable[Envelope]]) -> Envelope:
        with self._tracer.span(f"kolmigrate.service.{operation}"):
            try:
                return await func()
            except MigrationError as e:
                logger.log(e.severity.log_level, "%s failed: %s", operation, e)
                return e.to_dict()
            except Exception as e:
                logger.exception("%s failed unexpectedly", operation)
                return {"success": False, "message": INTERNAL_ERROR_MESSAGE, "error": str(e)}

    async def list_source_projects(self) -> Envelope:
        """List source projects with their migration progress."""

        async def run() -> Envelope:
            summaries = await self.catalog.list_projects()
            return {
                "success": True,
                "count": len(summaries),
                "data": [summary.to_dict() for summary in summaries],
            }

        return await self._run("list_source_projects", run)

    async def validate_talents(self, project_id: str | None) -> Envelope:
        """Check that every talent of a source project has a target identity."""

        async def run() -> Envelope:
            validation = await self.identity_matcher.match(_require("projectId", project_id))
            return {"success": True, **validation.to_dict()}

        return await self._run("validate_talents", run)

    async def migrate_project(
        self,
        source_project_id: str | None,
        customer_id: str | None = None,
    ) -> Envelope:
        """Create the target project (or report the existing one)."""

        async def run() -> Envelope:
            result = await self.project_phase.migrate(
                _require("sourceProjectId", source_project_id), customer_id
            )
            return {
                "success": True,
                **result.to_dict(),
                "newProjectId": result.resolved_target_project_id,
            }

        return await self._run("migrate_project", run)

    async def migrate_collaborations(
        self,
        source_project_id: str | None,
        target_project_id: str | None,
        talent_mappings: dict[str, str] | None = None,
    ) -> Envelope:
        """Create target collaborations; all-or-nothing with respect to identity."""

        async def run() -> Envelope:
            result = await self.collaboration_phase.migrate(
                _require("sourceProjectId", source_project_id),
                _require("targetProjectId", target_project_id),
                talent_mappings,
            )
            return {"success": True, **result.to_dict()}

        return await self._run("migrate_collaborations", run)

    async def migrate_effects(
        self,
        source_project_id: str | None,
        collaboration_mappings: dict[str, str] | None = None,
    ) -> Envelope:
        """Merge t7/t21/t30 effect windows into migrated collaborations."""

        async def run() -> Envelope:
            result = await self.effect_phase.migrate(
                _require("sourceProjectId", source_project_id), collaboration_mappings
            )
            return {"success": True, **result.to_dict()}

        return await self._run("migrate_effects", run)

    async def migrate_daily_stats(
        self,
        source_project_id: str | None,
        collaboration_mappings: dict[str, str] | None = None,
        tracking_status: str | TrackingStatus | None = TrackingStatus.ARCHIVED.value,
    ) -> Envelope:
        """Copy daily stats onto migrated collaborations and enable tracking."""

        async def run() -> Envelope:
            project_id = _require("sourceProjectId", source_project_id)
            status = parse_tracking_status(tracking_status)
            result = await self.daily_stats_phase.migrate(
                project_id, status, collaboration_mappings
            )
            return {"success": True, **result.to_dict()}

        return await self._run("migrate_daily_stats", run)

    async def validate_migration(
        self,
        source_project_id: str | None,
        target_project_id: str | None,
    ) -> Envelope:
        """Reconcile a migrated project against its source."""

        async def run() -> Envelope:
            report = await self.validator.validate(
                _require("sourceProjectId", source_project_id),
                _require("targetProjectId", target_project_id),
            )
            return {"success": True, **report.to_dict(), "newProjectId": target_project_id}

        return await self._run("validate_migration", run)

    async def rollback_migration(self, target_project_id: str | None) -> Envelope:
        """Delete a migrated project and its collaborations."""

        async def run() -> Envelope:
            result = await self.rollback_manager.rollback(
                _require("targetProjectId", target_project_id)
            )
            return {"success": True, **result.to_dict()}

        return await self._run("rollback_migration", run)


__all__ = [
    "Envelope",
    "INTERNAL_ERROR_MESSAGE",
    "MigrationService",
    "parse_tracking_status",
]
