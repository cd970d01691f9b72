"""
Standard span attributes for kolmigrate.

Attribute constants shared by every migration component so spans carry
consistent keys. Database keys follow OpenTelemetry semantic conventions.

Example:
    >>> from kolmigrate.observability.attributes import ATTR_SOURCE_PROJECT_ID
    >>>
    >>> with tracer.span(
    ...     "kolmigrate.project_phase.migrate",
    ...     {ATTR_SOURCE_PROJECT_ID: source_project_id},
    ... ):
    ...     pass
"""

# =============================================================================
# Project Attributes
# =============================================================================

ATTR_SOURCE_PROJECT_ID = "kolmigrate.source_project.id"
"""Identifier of the project in the source database."""

ATTR_TARGET_PROJECT_ID = "kolmigrate.target_project.id"
"""Identifier of the project in the target database."""

ATTR_CUSTOMER_ID = "kolmigrate.customer.id"
"""Customer code whose pricing configuration is applied."""

# =============================================================================
# Phase Attributes
# =============================================================================

ATTR_PHASE = "kolmigrate.phase"
"""Migration phase name (project, collaborations, effects, ...)."""

ATTR_RECORDS_TOTAL = "kolmigrate.records.total"
"""Number of source records considered by a phase (integer)."""

ATTR_RECORDS_WRITTEN = "kolmigrate.records.written"
"""Number of target records created or updated (integer)."""

ATTR_RECORDS_SKIPPED = "kolmigrate.records.skipped"
"""Number of source records without a target counterpart (integer)."""

ATTR_BATCH_SIZE = "kolmigrate.batch.size"
"""Number of documents in a batch write (integer)."""

ATTR_TRACKING_STATUS = "kolmigrate.tracking.status"
"""Tracking status chosen for migrated daily stats."""

ATTR_PRICING_FALLBACK_TIER = "kolmigrate.pricing.fallback_tier"
"""Which selection tier produced the pricing configuration."""

ATTR_TALENTS_UNMATCHED = "kolmigrate.talents.unmatched"
"""Number of source talents without a target identity (integer)."""

ATTR_VALIDATION_ALL_MATCH = "kolmigrate.validation.all_match"
"""Whether a reconciliation report fully matched (boolean)."""

ATTR_PROJECTS_TOTAL = "kolmigrate.projects.total"
"""Number of source projects listed by the catalog (integer)."""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier (e.g., 'sqlite', 'memory')."""

ATTR_DB_NAME = "db.name"
"""Logical database name (e.g., 'kol_data', 'agentworks_db')."""

ATTR_DB_COLLECTION = "db.collection.name"
"""Collection the operation targets."""

ATTR_DB_OPERATION = "db.operation"
"""Store operation (find, insert_many, update_one, ...)."""

__all__ = [
    "ATTR_SOURCE_PROJECT_ID",
    "ATTR_TARGET_PROJECT_ID",
    "ATTR_CUSTOMER_ID",
    "ATTR_PHASE",
    "ATTR_RECORDS_TOTAL",
    "ATTR_RECORDS_WRITTEN",
    "ATTR_RECORDS_SKIPPED",
    "ATTR_BATCH_SIZE",
    "ATTR_TRACKING_STATUS",
    "ATTR_PRICING_FALLBACK_TIER",
    "ATTR_TALENTS_UNMATCHED",
    "ATTR_VALIDATION_ALL_MATCH",
    "ATTR_PROJECTS_TOTAL",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_NAME",
    "ATTR_DB_COLLECTION",
    "ATTR_DB_OPERATION",
]
