"""
Observability utilities for kolmigrate.

Provides the composition-based Tracer API and the standard span attribute
names used by every migration component.

Example:
    >>> from kolmigrate.observability import create_tracer
    >>>
    >>> class MyPhase:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
    ...         self._enable_tracing = self._tracer.enabled
"""

from kolmigrate.observability.attributes import (
    ATTR_BATCH_SIZE,
    ATTR_CUSTOMER_ID,
    ATTR_DB_COLLECTION,
    ATTR_DB_NAME,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_PHASE,
    ATTR_PRICING_FALLBACK_TIER,
    ATTR_PROJECTS_TOTAL,
    ATTR_RECORDS_SKIPPED,
    ATTR_RECORDS_TOTAL,
    ATTR_RECORDS_WRITTEN,
    ATTR_SOURCE_PROJECT_ID,
    ATTR_TALENTS_UNMATCHED,
    ATTR_TARGET_PROJECT_ID,
    ATTR_TRACKING_STATUS,
    ATTR_VALIDATION_ALL_MATCH,
)
from kolmigrate.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)

__all__ = [
    # Tracer (composition-based API)
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes - Project
    "ATTR_SOURCE_PROJECT_ID",
    "ATTR_TARGET_PROJECT_ID",
    "ATTR_CUSTOMER_ID",
    # Attributes - Phase
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
    # Attributes - Database
    "ATTR_DB_SYSTEM",
    "ATTR_DB_NAME",
    "ATTR_DB_COLLECTION",
    "ATTR_DB_OPERATION",
]
