"""
Exceptions for the kolmigrate migration pipeline.

Exception Hierarchy:
    MigrationError (base)
    +-- ParameterValidationError
    |   +-- MissingParameterError
    |   +-- InvalidParameterError
    +-- SourceProjectNotFoundError
    +-- UnmatchedTalentError
    +-- CollaborationInsertError
    +-- StoreError
        +-- DocumentWriteError
            +-- DuplicateKeyError

Every MigrationError carries an ErrorClassification (severity,
recoverability, error code, suggested action). MigrationService turns any
MigrationError into a ``{"success": False, ...}`` envelope using ``to_dict()``.

Outcomes that are not errors are deliberately absent from this module: an
already-migrated project is a normal ProjectMigrationResult, and source
records without a target counterpart are counted by the phases.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kolmigrate.models import UnmatchedTalent


class ErrorSeverity(Enum):
    """
    Severity level of migration errors.

    Attributes:
        CRITICAL: Data may be inconsistent; operator must inspect the target.
        ERROR: The operation failed and did nothing useful.
        WARNING: The operation was refused; fix input and retry.
    """

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"

    @property
    def log_level(self) -> int:
        """
        Get the corresponding Python logging level.

        Returns:
            Python logging level constant.
        """
        level_map = {
            ErrorSeverity.CRITICAL: logging.CRITICAL,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.WARNING: logging.WARNING,
        }
        return level_map[self]


class ErrorRecoverability(Enum):
    """
    Recoverability classification for migration errors.

    Attributes:
        RECOVERABLE: The caller can fix the input (parameters, missing
            talents) and invoke the operation again.
        TRANSIENT: The store failed; re-running the phase is safe because
            every phase is idempotent.
        ROLLBACK: Partial writes happened; roll the project back or re-run.
    """

    RECOVERABLE = "recoverable"
    TRANSIENT = "transient"
    ROLLBACK = "rollback"


@dataclass(frozen=True)
class ErrorClassification:
    """
    Rich metadata for error classification.

    Attributes:
        severity: The severity level of the error.
        recoverability: How the error can be recovered from.
        error_code: Unique error code for programmatic handling.
        category: Error category for grouping related errors.
        suggested_action: Human-readable guidance for operators.
    """

    severity: ErrorSeverity
    recoverability: ErrorRecoverability
    error_code: str
    category: str
    suggested_action: str

    def to_dict(self) -> dict[str, Any]:
        """Convert classification to dictionary for serialization."""
        return {
            "severity": self.severity.value,
            "recoverability": self.recoverability.value,
            "errorCode": self.error_code,
            "category": self.category,
            "suggestedAction": self.suggested_action,
        }


class MigrationError(Exception):
    """
    Base exception for all migration errors.

    Attributes:
        message: Human-readable error description.
        source_project_id: Source project involved, if applicable.
        target_project_id: Target project involved, if applicable.
        suggested_action: Overrides the classification's suggested action.
    """

    _default_classification: ErrorClassification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MIGRATION_ERROR",
        category="general",
        suggested_action="Review migration logs and retry the operation",
    )

    def __init__(
        self,
        message: str,
        *,
        source_project_id: str | None = None,
        target_project_id: str | None = None,
        suggested_action: str | None = None,
    ) -> None:
        self.message = message
        self.source_project_id = source_project_id
        self.target_project_id = target_project_id
        self.suggested_action = suggested_action
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error string with context."""
        parts = [self.message]
        if self.source_project_id:
            parts.append(f"source_project_id={self.source_project_id}")
        if self.target_project_id:
            parts.append(f"target_project_id={self.target_project_id}")
        return " ".join(parts)

    @property
    def classification(self) -> ErrorClassification:
        """Error classification for this exception type."""
        return self._default_classification

    @property
    def severity(self) -> ErrorSeverity:
        return self.classification.severity

    @property
    def error_code(self) -> str:
        return self.classification.error_code

    def context(self) -> dict[str, Any]:
        """
        Extra envelope fields describing the failure.

        Subclasses extend this with their own structured data.
        """
        result: dict[str, Any] = {}
        if self.source_project_id:
            result["sourceProjectId"] = self.source_project_id
        if self.target_project_id:
            result["targetProjectId"] = self.target_project_id
        return result

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a failure envelope.

        Returns:
            Dictionary with ``success=False``, message, error code and context.
        """
        classification = self.classification.to_dict()
        if self.suggested_action:
            classification["suggestedAction"] = self.suggested_action
        return {
            "success": False,
            "message": self.message,
            "errorCode": self.error_code,
            "classification": classification,
            **self.context(),
        }


class ParameterValidationError(MigrationError):
    """Raised before any work when an operation's parameters are unusable."""

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.WARNING,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="INVALID_PARAMETERS",
        category="validation",
        suggested_action="Re-submit the operation with the correct parameters",
    )

    def __init__(self, message: str, *, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        return {"parameter": self.parameter}


class MissingParameterError(ParameterValidationError):
    """Raised when a required parameter is absent or empty."""

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.WARNING,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="MISSING_PARAMETER",
        category="validation",
        suggested_action="Supply the missing parameter and retry",
    )

    def __init__(self, parameter: str) -> None:
        super().__init__(f"Missing required parameter: {parameter}", parameter=parameter)


class InvalidParameterError(ParameterValidationError):
    """Raised when a parameter is present but holds an unsupported value."""

    def __init__(self, parameter: str, value: Any, allowed: list[str] | None = None) -> None:
        self.value = value
        self.allowed = allowed
        message = f"Invalid value for {parameter}: {value!r}"
        if allowed:
            message += f" (expected one of {', '.join(allowed)})"
        super().__init__(message, parameter=parameter)

    def context(self) -> dict[str, Any]:
        result = super().context()
        if self.allowed:
            result["allowed"] = list(self.allowed)
        return result


class SourceProjectNotFoundError(MigrationError):
    """Raised when the source database has no project with the given id."""

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="SOURCE_PROJECT_NOT_FOUND",
        category="lookup",
        suggested_action="Verify the source project id against listSourceProjects",
    )

    def __init__(self, source_project_id: str) -> None:
        super().__init__(
            f"Source project not found: {source_project_id}",
            source_project_id=source_project_id,
        )


class UnmatchedTalentError(MigrationError):
    """
    Raised when collaborations reference talents with no target identity.

    Collaboration migration is all-or-nothing per project, so no
    collaboration is written while this condition holds.

    Attributes:
        unmatched: The talents that could not be resolved.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.WARNING,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="UNMATCHED_TALENTS",
        category="identity",
        suggested_action="Create the missing talents in the target database and retry",
    )

    def __init__(self, source_project_id: str, unmatched: list[UnmatchedTalent]) -> None:
        self.unmatched = list(unmatched)
        super().__init__(
            f"{len(self.unmatched)} talent(s) have no match in the target database",
            source_project_id=source_project_id,
        )

    def context(self) -> dict[str, Any]:
        result = super().context()
        result["unmatched"] = [talent.to_dict() for talent in self.unmatched]
        return result


class CollaborationInsertError(MigrationError):
    """
    Raised when a collaboration batch insert commits only part of its documents.

    Attributes:
        inserted_count: Documents committed before the failure, across all batches.
        requested_count: Documents the phase tried to insert.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.CRITICAL,
        recoverability=ErrorRecoverability.ROLLBACK,
        error_code="COLLABORATION_INSERT_INCOMPLETE",
        category="write",
        suggested_action="Roll back the target project and migrate collaborations again",
    )

    def __init__(
        self,
        *,
        source_project_id: str,
        target_project_id: str,
        inserted_count: int,
        requested_count: int,
        cause: str,
    ) -> None:
        self.inserted_count = inserted_count
        self.requested_count = requested_count
        self.cause = cause
        super().__init__(
            f"Inserted {inserted_count} of {requested_count} collaborations: {cause}",
            source_project_id=source_project_id,
            target_project_id=target_project_id,
        )

    def context(self) -> dict[str, Any]:
        result = super().context()
        result["insertedCount"] = self.inserted_count
        result["requestedCount"] = self.requested_count
        return result


class StoreError(MigrationError):
    """
    Raised when the document store fails (connectivity or write errors).

    The core never retries; every phase is safe to re-run.

    Attributes:
        database: Logical database name.
        collection: Collection name, if known.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.TRANSIENT,
        error_code="STORE_FAILURE",
        category="store",
        suggested_action="Check store connectivity and re-run the phase",
    )

    def __init__(
        self,
        message: str,
        *,
        database: str | None = None,
        collection: str | None = None,
    ) -> None:
        self.database = database
        self.collection = collection
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.database:
            result["database"] = self.database
        if self.collection:
            result["collection"] = self.collection
        return result


class DocumentWriteError(StoreError):
    """
    Raised when a write commits fewer documents than requested.

    Attributes:
        inserted_count: Documents committed before the failure.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.ROLLBACK,
        error_code="DOCUMENT_WRITE_FAILED",
        category="store",
        suggested_action="Inspect the target collection before re-running",
    )

    def __init__(
        self,
        message: str,
        *,
        inserted_count: int = 0,
        database: str | None = None,
        collection: str | None = None,
    ) -> None:
        self.inserted_count = inserted_count
        super().__init__(message, database=database, collection=collection)

    def context(self) -> dict[str, Any]:
        result = super().context()
        result["insertedCount"] = self.inserted_count
        return result


class DuplicateKeyError(DocumentWriteError):
    """Raised when a document's ``id`` already exists in the collection."""

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.ROLLBACK,
        error_code="DUPLICATE_KEY",
        category="store",
        suggested_action="Check for a previous partial run of this phase",
    )

    def __init__(
        self,
        document_id: Any,
        *,
        inserted_count: int = 0,
        database: str | None = None,
        collection: str | None = None,
    ) -> None:
        self.document_id = document_id
        super().__init__(
            f"Duplicate id {document_id!r} in {database}.{collection}",
            inserted_count=inserted_count,
            database=database,
            collection=collection,
        )


__all__ = [
    "ErrorSeverity",
    "ErrorRecoverability",
    "ErrorClassification",
    "MigrationError",
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
