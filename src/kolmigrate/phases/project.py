"""
Project phase: creates the target project for a source project.

The phase is idempotent by lookup. Before writing it searches the target for
a project that already stands for the source project (see
``MigrationConfig.project_dedupe``) and, if one exists, returns its id
without writing. This is what makes "continue migration" on a partially
migrated project safe.

The check is read-then-write and not atomic: two concurrent invocations for
the same source project can both create a target project. Operators run one
migration per project at a time.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from kolmigrate.exceptions import SourceProjectNotFoundError
from kolmigrate.ids import PROJECT_PREFIX, generate_id
from kolmigrate.ingestion import SourceProject
from kolmigrate.models import DiscountComparison, ProjectMigrationResult
from kolmigrate.normalization import map_project_status
from kolmigrate.observability import Tracer, create_tracer
from kolmigrate.observability.attributes import (
    ATTR_CUSTOMER_ID,
    ATTR_PHASE,
    ATTR_PRICING_FALLBACK_TIER,
    ATTR_SOURCE_PROJECT_ID,
    ATTR_TARGET_PROJECT_ID,
)
from kolmigrate.phases._lookup import find_existing_project
from kolmigrate.pricing import (
    PricingConfigResolver,
    PricingResolution,
    TargetCustomerConfigReader,
)
from kolmigrate.session import Collections, MigrationSession

logger = logging.getLogger(__name__)

BUSINESS_TYPE = "talentProcurement"
DB_VERSION = "v2"


class ProjectPhase:
    """
    Migrates one project record.

    Transformations applied on the way:
        - source status label mapped to the target status enum
        - budget in minor units, fiscal month as an integer (done at ingestion)
        - discount and quotation coefficient taken from the customer's pricing
          configuration for the project's fiscal period; the source project's
          own discount is reported for comparison only
        - one provenance entry appended to the source audit log

    Example:
        >>> phase = ProjectPhase(session)
        >>> result = await phase.migrate("p1", "CUS20250001")
        >>> result.created
        True
    """

    def __init__(
        self,
        session: MigrationSession,
        pricing_resolver: PricingConfigResolver | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the phase.

        Args:
            session: Source and target databases
            pricing_resolver: Resolver for customer pricing (defaults to one
                reading the target ``customers`` collection)
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._session = session
        self._pricing = pricing_resolver or PricingConfigResolver(
            TargetCustomerConfigReader(session),
            tracer=self._tracer,
        )

    async def migrate(
        self,
        source_project_id: str,
        customer_id: str | None = None,
    ) -> ProjectMigrationResult:
        """
        Create the target project unless one already exists.

        Args:
            source_project_id: Source project id
            customer_id: Customer code whose pricing applies (defaults to
                ``MigrationConfig.default_customer_id``)

        Returns:
            ProjectMigrationResult with ``created=True`` and the new id, or
            ``created=False`` and the existing id

        Raises:
            SourceProjectNotFoundError: If the source project does not exist
        """
        config = self._session.config
        customer_id = customer_id or config.default_customer_id

        with self._tracer.span(
            "kolmigrate.project_phase.migrate",
            {
                ATTR_PHASE: "project",
                ATTR_SOURCE_PROJECT_ID: source_project_id,
                ATTR_CUSTOMER_ID: customer_id,
            },
        ) as span:
            raw = await self._session.source_collection(Collections.PROJECTS).find_one(
                {"id": source_project_id}
            )
            if raw is None:
                raise SourceProjectNotFoundError(source_project_id)
            project = SourceProject.model_validate(raw)

            existing = await find_existing_project(self._session, project.id, project.name)
            if existing is not None:
                logger.info(
                    "Project %s already migrated as %s, nothing written",
                    source_project_id,
                    existing.get("id"),
                )
                if span:
                    span.set_attribute(ATTR_TARGET_PROJECT_ID, str(existing.get("id")))
                return ProjectMigrationResult.already_exists(
                    source_project_id, project.name, existing.get("id")
                )

            pricing = await self._pricing.resolve(
                customer_id, project.financial_year, project.financial_month
            )
            used_discount = (
                pricing.discount_rate or project.source_discount or config.default_discount
            )

            target_project_id = generate_id(PROJECT_PREFIX)
            document = self.build_document(
                project,
                target_project_id=target_project_id,
                customer_id=customer_id,
                pricing=pricing,
                used_discount=used_discount,
            )
            await self._session.target_collection(Collections.PROJECTS).insert_one(document)

            if span:
                span.set_attribute(ATTR_TARGET_PROJECT_ID, target_project_id)
                span.set_attribute(ATTR_PRICING_FALLBACK_TIER, pricing.fallback_tier.value)

            logger.info(
                "Migrated project %s (%s) to %s with discount %s (pricing tier %s)",
                source_project_id,
                project.name,
                target_project_id,
                used_discount,
                pricing.fallback_tier.value,
            )

            return ProjectMigrationResult(
                created=True,
                source_project_id=source_project_id,
                project_name=project.name,
                target_project_id=target_project_id,
                discount_comparison=DiscountComparison(
                    source_discount=project.source_discount,
                    customer_discount=pricing.discount_rate,
                    used_discount=used_discount,
                ),
                pricing_fallback_tier=pricing.fallback_tier,
            )

    def build_document(
        self,
        project: SourceProject,
        *,
        target_project_id: str,
        customer_id: str,
        pricing: PricingResolution,
        used_discount: float,
    ) -> dict[str, Any]:
        """Build the target project document."""
        config = self._session.config
        platform = config.platform
        now = datetime.now(UTC)

        document: dict[str, Any] = {
            "id": target_project_id,
            "name": project.name,
            "status": map_project_status(project.status).value,
            "businessType": [BUSINESS_TYPE],
            "businessTag": None,
            "type": None,
            "dbVersion": DB_VERSION,
            "financialYear": project.financial_year,
            "financialMonth": project.financial_month,
            "year": project.financial_year,
            "month": project.financial_month,
            "budget": project.budget_minor_units,
            "platforms": [platform],
            "platformDiscounts": {platform: used_discount},
            "platformPricingModes": {platform: pricing.pricing_model},
            "platformKPIConfigs": {
                platform: {
                    "enabled": True,
                    "enabledKPIs": ["cpm"],
                    "targets": {"cpm": project.benchmark_cpm or config.default_kpi_cpm},
                    "actuals": {},
                },
            },
            # reserved by the target schema, empty for migrated projects
            "platformPricingSnapshots": None,
            "kpiConfig": None,
            "benchmarkCPM": None,
            "trackingStatus": None,
            "customerId": customer_id,
            "adjustments": list(project.adjustments),
            "auditLog": [
                *project.audit_log,
                {
                    "timestamp": now.isoformat(),
                    "user": config.audit_user,
                    "action": (
                        f"Migrated from {config.source_database}, "
                        f"source project id: {project.id}"
                    ),
                },
            ],
            "createdAt": project.created_at or now,
            "updatedAt": now,
            "migratedFrom": {
                "sourceProjectId": project.id,
                "sourceDatabase": config.source_database,
                "migratedAt": now.isoformat(),
                "pricingFallbackTier": pricing.fallback_tier.value,
            },
        }
        if pricing.quotation_coefficient:
            document["platformQuotationCoefficients"] = {platform: pricing.quotation_coefficient}
        return document


__all__ = ["ProjectPhase"]
