"""
Data models for the kolmigrate migration pipeline.

This module defines the configuration, the target-side enums, and the
immutable result types every component returns. Result types serialize to
the camelCase dictionaries used in service envelopes via ``to_dict()``.

Source documents are parsed by the pydantic models in
:mod:`kolmigrate.ingestion`; nothing here touches raw source values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TargetProjectStatus(Enum):
    """
    Project lifecycle status in the target database.

    Attributes:
        EXECUTING: Project is running.
        PENDING_SETTLEMENT: Project is paused awaiting settlement.
        SETTLED: Project is finished and settled.
        CLOSED: Project is archived.
    """

    EXECUTING = "executing"
    PENDING_SETTLEMENT = "pending_settlement"
    SETTLED = "settled"
    CLOSED = "closed"


class OrderMode(Enum):
    """How a collaboration was ordered: at list price or adjusted price."""

    ORIGINAL = "original"
    ADJUSTED = "adjusted"


class TrackingStatus(Enum):
    """
    Tracking state written to the target project's trackingConfig.

    Migrated projects are historical, so ARCHIVED is the default.
    """

    ACTIVE = "active"
    ARCHIVED = "archived"
    DISABLED = "disabled"

    @classmethod
    def values(cls) -> list[str]:
        """All accepted string values, in declaration order."""
        return [member.value for member in cls]


class PricingFallbackTier(Enum):
    """
    Which selection rule produced a customer's pricing configuration.

    Attributes:
        WINDOW: A configuration whose validity window contains the period.
        PERMANENT: No window matched; the first permanent configuration.
        FIRST_AVAILABLE: Neither matched; the first configuration listed.
        NONE: The customer has no configurations.
    """

    WINDOW = "window"
    PERMANENT = "permanent"
    FIRST_AVAILABLE = "first_available"
    NONE = "none"

    @property
    def is_degraded(self) -> bool:
        """
        Check whether the selection fell past the deliberate rules.

        Returns:
            True for FIRST_AVAILABLE and NONE.
        """
        return self in (PricingFallbackTier.FIRST_AVAILABLE, PricingFallbackTier.NONE)


class UnmatchReason(Enum):
    """Why a source talent has no target identity."""

    SOURCE_TALENT_MISSING = "source_talent_missing"
    """The collaboration references a talent absent from the source talents."""

    NO_SECONDARY_ID = "no_secondary_id"
    """The source talent has no platform account id to match on."""

    TARGET_TALENT_MISSING = "target_talent_missing"
    """No target talent carries the source talent's platform account id."""


class SourceMigrationStatus(Enum):
    """Progress of one source project through the migration."""

    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"


class MigrationStep(Enum):
    """Migration steps in the order an operator runs them."""

    PROJECT = "project"
    COLLABORATIONS = "collaborations"
    EFFECTS = "effects"
    DAILY_STATS = "daily_stats"
    VALIDATION = "validation"


class ProjectDedupeStrategy(Enum):
    """
    How ProjectPhase decides a source project was already migrated.

    Attributes:
        NAME: A target project with the same name exists.
        SOURCE_ID: A target project's provenance names the source project.
        SOURCE_ID_OR_NAME: Provenance first, then name.
    """

    NAME = "name"
    SOURCE_ID = "source_id"
    SOURCE_ID_OR_NAME = "source_id_or_name"

    @property
    def checks_provenance(self) -> bool:
        return self in (ProjectDedupeStrategy.SOURCE_ID, ProjectDedupeStrategy.SOURCE_ID_OR_NAME)

    @property
    def checks_name(self) -> bool:
        return self in (ProjectDedupeStrategy.NAME, ProjectDedupeStrategy.SOURCE_ID_OR_NAME)


@dataclass(frozen=True)
class MigrationConfig:
    """
    Configuration shared by every migration component.

    This class is immutable (frozen) so one instance can be handed to every
    component of a session.

    Attributes:
        source_database: Logical name of the legacy database.
        target_database: Logical name of the redesigned database.
        platform: Talent platform key used throughout the target schema.
        default_customer_id: Customer whose pricing applies when none is given.
        default_discount: Operative discount when neither the customer nor
            the source project supplies one.
        default_kpi_cpm: CPM target for projects without a benchmark.
        tracking_benchmark_cpm: benchmarkCPM written to trackingConfig.
        max_concurrent_lookups: Bound on concurrent per-record store lookups.
        insert_batch_size: Documents per collaboration insert batch.
        project_dedupe: How already-migrated projects are detected.
        audit_user: User recorded on the provenance audit entry.

    Example:
        >>> config = MigrationConfig(insert_batch_size=100)
        >>> config.default_discount
        0.8
    """

    source_database: str = "kol_data"
    target_database: str = "agentworks_db"
    platform: str = "douyin"
    default_customer_id: str = "CUS20250001"
    default_discount: float = 0.8
    default_kpi_cpm: float = 15
    tracking_benchmark_cpm: float = 30
    max_concurrent_lookups: int = 5
    insert_batch_size: int = 500
    project_dedupe: ProjectDedupeStrategy = ProjectDedupeStrategy.SOURCE_ID_OR_NAME
    audit_user: str = "system"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.source_database or not self.target_database:
            raise ValueError("source_database and target_database must be non-empty")

        if self.source_database == self.target_database:
            raise ValueError(
                f"source_database and target_database must differ, got {self.source_database!r}"
            )

        if not 0 < self.default_discount <= 1:
            raise ValueError(f"default_discount must be in (0, 1], got {self.default_discount}")

        if self.max_concurrent_lookups < 1:
            raise ValueError(
                f"max_concurrent_lookups must be >= 1, got {self.max_concurrent_lookups}"
            )

        if self.insert_batch_size < 1:
            raise ValueError(f"insert_batch_size must be >= 1, got {self.insert_batch_size}")

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for JSON storage.

        Returns:
            Dictionary representation suitable for JSON serialization.
        """
        return {
            "source_database": self.source_database,
            "target_database": self.target_database,
            "platform": self.platform,
            "default_customer_id": self.default_customer_id,
            "default_discount": self.default_discount,
            "default_kpi_cpm": self.default_kpi_cpm,
            "tracking_benchmark_cpm": self.tracking_benchmark_cpm,
            "max_concurrent_lookups": self.max_concurrent_lookups,
            "insert_batch_size": self.insert_batch_size,
            "project_dedupe": self.project_dedupe.value,
            "audit_user": self.audit_user,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationConfig:
        """
        Create from dictionary.

        Missing keys take their defaults.

        Args:
            data: Dictionary containing configuration values.

        Returns:
            MigrationConfig instance.
        """
        defaults = cls()
        return cls(
            source_database=data.get("source_database", defaults.source_database),
            target_database=data.get("target_database", defaults.target_database),
            platform=data.get("platform", defaults.platform),
            default_customer_id=data.get("default_customer_id", defaults.default_customer_id),
            default_discount=data.get("default_discount", defaults.default_discount),
            default_kpi_cpm=data.get("default_kpi_cpm", defaults.default_kpi_cpm),
            tracking_benchmark_cpm=data.get(
                "tracking_benchmark_cpm", defaults.tracking_benchmark_cpm
            ),
            max_concurrent_lookups=data.get(
                "max_concurrent_lookups", defaults.max_concurrent_lookups
            ),
            insert_batch_size=data.get("insert_batch_size", defaults.insert_batch_size),
            project_dedupe=ProjectDedupeStrategy(
                data.get("project_dedupe", defaults.project_dedupe.value)
            ),
            audit_user=data.get("audit_user", defaults.audit_user),
        )


# =============================================================================
# Identity matching
# =============================================================================


@dataclass(frozen=True)
class TalentMatch:
    """
    A source talent resolved to a target talent.

    Attributes:
        source_talent_id: Talent id in the source database.
        target_one_id: The target talent's ``oneId``.
        display_name: Source nickname, falling back to the target name.
        secondary_id: Platform account id the match was made on.
    """

    source_talent_id: str
    target_one_id: str
    display_name: str | None
    secondary_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceTalentId": self.source_talent_id,
            "targetOneId": self.target_one_id,
            "nickname": self.display_name,
            "xingtuId": self.secondary_id,
        }


@dataclass(frozen=True)
class UnmatchedTalent:
    """A source talent with no target identity, and why."""

    source_talent_id: str
    display_name: str | None
    secondary_id: str | None
    reason: UnmatchReason

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceTalentId": self.source_talent_id,
            "nickname": self.display_name,
            "xingtuId": self.secondary_id,
            "reason": self.reason.value,
        }


@dataclass(frozen=True)
class TalentValidationResult:
    """
    Outcome of matching a project's talents.

    Attributes:
        project_id: Source project the talents belong to.
        matched: Talents with a target identity.
        unmatched: Talents without one.
    """

    project_id: str
    matched: tuple[TalentMatch, ...] = ()
    unmatched: tuple[UnmatchedTalent, ...] = ()

    @property
    def total_talents(self) -> int:
        return len(self.matched) + len(self.unmatched)

    @property
    def can_proceed(self) -> bool:
        """True when every talent has a target identity."""
        return not self.unmatched

    def to_mapping(self) -> dict[str, str]:
        """
        Build the identity mapping consumed by CollaborationPhase.

        Returns:
            ``{source_talent_id: target_one_id}`` for every matched talent.
        """
        return {match.source_talent_id: match.target_one_id for match in self.matched}

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "totalTalents": self.total_talents,
            "matched": [match.to_dict() for match in self.matched],
            "unmatched": [talent.to_dict() for talent in self.unmatched],
            "canProceed": self.can_proceed,
        }


# =============================================================================
# Phase results
# =============================================================================

DISCOUNT_TOLERANCE = 0.001
"""Source and customer discounts closer than this are considered equal."""


@dataclass(frozen=True)
class DiscountComparison:
    """
    The source project's own discount next to the customer's configured one.

    The source discount is never operative; it is kept so operators can spot
    projects whose historical discount disagrees with the customer config.
    """

    source_discount: float | None
    customer_discount: float | None
    used_discount: float

    @property
    def has_discrepancy(self) -> bool:
        if self.source_discount is None or self.customer_discount is None:
            return False
        return abs(self.source_discount - self.customer_discount) > DISCOUNT_TOLERANCE

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceDiscount": self.source_discount,
            "customerDiscount": self.customer_discount,
            "usedDiscount": self.used_discount,
            "hasDiscrepancy": self.has_discrepancy,
        }


ALREADY_EXISTS = "already-exists"


@dataclass(frozen=True)
class ProjectMigrationResult:
    """
    Result of migrating a project record.

    Either a new target project was created (``created=True``) or one already
    existed and nothing was written (``created=False``, ``reason`` set to
    ``"already-exists"``). An existing project is a normal outcome, not an
    error: it is what makes re-running the migration safe.

    Attributes:
        created: Whether a target project was written.
        source_project_id: The source project.
        project_name: Name of the source project.
        target_project_id: Id of the created project, if created.
        existing_target_project_id: Id of the project found, if not created.
        reason: Why nothing was written, if not created.
        discount_comparison: Present when a project was created.
        pricing_fallback_tier: Which pricing selection rule applied.
    """

    created: bool
    source_project_id: str
    project_name: str
    target_project_id: str | None = None
    existing_target_project_id: str | None = None
    reason: str | None = None
    discount_comparison: DiscountComparison | None = None
    pricing_fallback_tier: PricingFallbackTier | None = None

    @classmethod
    def already_exists(
        cls, source_project_id: str, project_name: str, existing_target_project_id: str
    ) -> ProjectMigrationResult:
        return cls(
            created=False,
            source_project_id=source_project_id,
            project_name=project_name,
            existing_target_project_id=existing_target_project_id,
            reason=ALREADY_EXISTS,
        )

    @property
    def resolved_target_project_id(self) -> str | None:
        """The target project id, whether newly created or pre-existing."""
        return self.target_project_id or self.existing_target_project_id

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "created": self.created,
            "sourceProjectId": self.source_project_id,
            "projectName": self.project_name,
        }
        if self.created:
            result["targetProjectId"] = self.target_project_id
        else:
            result["reason"] = self.reason
            result["existingProjectId"] = self.existing_target_project_id
        if self.discount_comparison is not None:
            result["discountComparison"] = self.discount_comparison.to_dict()
        if self.pricing_fallback_tier is not None:
            result["pricingFallbackTier"] = self.pricing_fallback_tier.value
        return result


@dataclass(frozen=True)
class CollaborationMigrationResult:
    """
    Result of migrating a project's collaborations.

    Attributes:
        count: Collaborations written in this run.
        collaboration_mapping: ``{source collaboration id: target id}`` for
            every migrated collaboration, including earlier runs.
        already_migrated_count: Collaborations found from an earlier run.
    """

    count: int
    collaboration_mapping: dict[str, str] = field(default_factory=dict)
    already_migrated_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "mappings": dict(self.collaboration_mapping),
            "alreadyMigratedCount": self.already_migrated_count,
        }


@dataclass(frozen=True)
class EffectMigrationResult:
    """
    Result of merging effect windows into migrated collaborations.

    Attributes:
        total_source_records: Source works for the project.
        updated_count: Collaborations that received effect data in this run.
        already_migrated_count: Works whose collaboration already had effect data.
        unmatched_count: Works with no video id or no migrated collaboration.
        target_project_id: Target project found by provenance, if any.
    """

    total_source_records: int
    updated_count: int = 0
    already_migrated_count: int = 0
    unmatched_count: int = 0
    target_project_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalWorks": self.total_source_records,
            "updatedCount": self.updated_count,
            "alreadyMigratedCount": self.already_migrated_count,
            "unmatchedCount": self.unmatched_count,
            "targetProjectId": self.target_project_id,
        }


@dataclass(frozen=True)
class DailyStatsMigrationResult:
    """
    Result of merging daily stats into migrated collaborations.

    Attributes:
        total_source_records: Source works carrying daily stats.
        migrated_count: Collaborations that received daily stats in this run.
        skipped_count: Works that no matching rule could place.
        already_migrated_count: Works whose collaboration already had daily stats.
        tracking_status: Status written to trackingConfig.
        target_project_id: Target project found by provenance, if any.
        first_report_date: Earliest date over matched works' entries.
        last_report_date: Latest date over matched works' entries.
    """

    total_source_records: int
    tracking_status: TrackingStatus
    migrated_count: int = 0
    skipped_count: int = 0
    already_migrated_count: int = 0
    target_project_id: str | None = None
    first_report_date: str | None = None
    last_report_date: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalWorks": self.total_source_records,
            "migratedCount": self.migrated_count,
            "skippedCount": self.skipped_count,
            "alreadyMigratedCount": self.already_migrated_count,
            "trackingStatus": self.tracking_status.value,
            "targetProjectId": self.target_project_id,
            "firstReportDate": self.first_report_date,
            "lastReportDate": self.last_report_date,
        }


@dataclass(frozen=True)
class RollbackResult:
    """Documents removed by a rollback."""

    target_project_id: str
    deleted_project: int
    deleted_collaborations: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "targetProjectId": self.target_project_id,
            "deletedProject": self.deleted_project,
            "deletedCollaborations": self.deleted_collaborations,
        }


__all__ = [
    # Enums
    "TargetProjectStatus",
    "OrderMode",
    "TrackingStatus",
    "PricingFallbackTier",
    "UnmatchReason",
    "SourceMigrationStatus",
    "MigrationStep",
    "ProjectDedupeStrategy",
    # Configuration
    "MigrationConfig",
    # Identity
    "TalentMatch",
    "UnmatchedTalent",
    "TalentValidationResult",
    # Results
    "DISCOUNT_TOLERANCE",
    "ALREADY_EXISTS",
    "DiscountComparison",
    "ProjectMigrationResult",
    "CollaborationMigrationResult",
    "EffectMigrationResult",
    "DailyStatsMigrationResult",
    "RollbackResult",
]
