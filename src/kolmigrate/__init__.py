"""
kolmigrate - Migration of KOL marketing projects between document databases.

This library provides:
- Talent identity matching between the legacy and redesigned databases
- Customer pricing resolution and quotation coefficients
- Idempotent migration phases for projects, collaborations, effects and daily stats
- Reconciliation, rollback and a catalog of source projects
- MigrationService with dictionary envelopes and an operation dispatcher
- In-memory and SQLite document stores
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("kolmigrate")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from kolmigrate.catalog import SourceCatalog, SourceProjectSummary
from kolmigrate.exceptions import (
    CollaborationInsertError,
    DocumentWriteError,
    DuplicateKeyError,
    ErrorClassification,
    ErrorRecoverability,
    ErrorSeverity,
    InvalidParameterError,
    MigrationError,
    MissingParameterError,
    ParameterValidationError,
    SourceProjectNotFoundError,
    StoreError,
    UnmatchedTalentError,
)
from kolmigrate.handler import OPERATIONS, handle_http_event, handle_request
from kolmigrate.identity import IdentityMatcher
from kolmigrate.models import (
    CollaborationMigrationResult,
    DailyStatsMigrationResult,
    DiscountComparison,
    EffectMigrationResult,
    MigrationConfig,
    MigrationStep,
    OrderMode,
    PricingFallbackTier,
    ProjectDedupeStrategy,
    ProjectMigrationResult,
    RollbackResult,
    SourceMigrationStatus,
    TalentMatch,
    TalentValidationResult,
    TargetProjectStatus,
    TrackingStatus,
    UnmatchedTalent,
    UnmatchReason,
)
from kolmigrate.phases import CollaborationPhase, DailyStatsPhase, EffectPhase, ProjectPhase
from kolmigrate.pricing import (
    CustomerConfigReader,
    CustomerPricing,
    PricingConfig,
    PricingConfigResolver,
    PricingResolution,
    TargetCustomerConfigReader,
    calculate_quotation_coefficient,
    select_pricing_config,
)
from kolmigrate.reconciliation import ReconciliationReport, ReconciliationValidator
from kolmigrate.rollback import RollbackManager
from kolmigrate.service import MigrationService
from kolmigrate.session import Collections, MigrationSession, open_sqlite_session
from kolmigrate.stores import (
    DocumentCollection,
    DocumentStore,
    InMemoryDocumentStore,
    SQLiteDocumentStore,
)

__all__ = [
    "__version__",
    # Service
    "MigrationService",
    "OPERATIONS",
    "handle_request",
    "handle_http_event",
    # Session and configuration
    "MigrationSession",
    "MigrationConfig",
    "Collections",
    "open_sqlite_session",
    # Components
    "IdentityMatcher",
    "PricingConfigResolver",
    "ProjectPhase",
    "CollaborationPhase",
    "EffectPhase",
    "DailyStatsPhase",
    "ReconciliationValidator",
    "RollbackManager",
    "SourceCatalog",
    # Pricing
    "CustomerConfigReader",
    "TargetCustomerConfigReader",
    "CustomerPricing",
    "PricingConfig",
    "PricingResolution",
    "calculate_quotation_coefficient",
    "select_pricing_config",
    # Enums
    "TargetProjectStatus",
    "OrderMode",
    "TrackingStatus",
    "PricingFallbackTier",
    "UnmatchReason",
    "SourceMigrationStatus",
    "MigrationStep",
    "ProjectDedupeStrategy",
    # Results
    "TalentMatch",
    "UnmatchedTalent",
    "TalentValidationResult",
    "DiscountComparison",
    "ProjectMigrationResult",
    "CollaborationMigrationResult",
    "EffectMigrationResult",
    "DailyStatsMigrationResult",
    "ReconciliationReport",
    "RollbackResult",
    "SourceProjectSummary",
    # Stores
    "DocumentStore",
    "DocumentCollection",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    # Exceptions
    "MigrationError",
    "ErrorSeverity",
    "ErrorRecoverability",
    "ErrorClassification",
    "ParameterValidationError",
    "MissingParameterError",
    "InvalidParameterError",
    "SourceProjectNotFoundError",
    "UnmatchedTalentError",
    "CollaborationInsertError",
    "StoreError",
    "DocumentWriteError",
    "DuplicateKeyError",
]
