"""
Tracer protocol and implementations for composition-based tracing.

Components receive a tracer as a constructor dependency instead of reaching
for a global one, which keeps them easy to test and lets callers switch
tracing off per component.

Example:
    >>> from kolmigrate.observability import create_tracer, NullTracer
    >>>
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>>
    >>> class MyPhase:
    ...     def __init__(self, tracer: Tracer | None = None):
    ...         self._tracer = tracer or NullTracer()
    ...
    ...     async def migrate(self, project_id: str) -> None:
    ...         with self._tracer.span("my_phase.migrate", {"project.id": project_id}):
    ...             await self._do_migrate(project_id)
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from opentelemetry import trace

if TYPE_CHECKING:
    from opentelemetry.trace import Span


@runtime_checkable
class Tracer(Protocol):
    """
    Protocol for tracers that can create tracing spans.

    Implementations:
    - NullTracer: No-op tracer for when tracing is disabled
    - OpenTelemetryTracer: Wrapper around the OpenTelemetry tracer
    - MockTracer: Records span names and attributes for tests
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Create a tracing span context manager.

        Args:
            name: Span name (e.g., "kolmigrate.project_phase.migrate")
            attributes: Span attributes (optional)

        Returns:
            Context manager that yields Span or None
        """
        ...

    @property
    def enabled(self) -> bool:
        """
        Check if tracing is enabled.

        Returns:
            True if tracing is active and will create real spans
        """
        ...


class NullTracer:
    """
    No-op tracer implementation for when tracing is disabled.

    Example:
        >>> tracer = NullTracer()
        >>> with tracer.span("operation"):  # Does nothing
        ...     do_work()
        >>> tracer.enabled
        False
    """

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        """Create a no-op span context (yields None)."""
        yield None

    @property
    def enabled(self) -> bool:
        """Always returns False for NullTracer."""
        return False


class OpenTelemetryTracer:
    """
    OpenTelemetry tracer implementation.

    Wraps the OpenTelemetry tracer API to conform to the Tracer protocol.
    Spans are exported by whatever TracerProvider the host application
    configured; with none configured they are non-recording.

    Args:
        tracer_name: Name for the tracer (typically __name__)
    """

    def __init__(self, tracer_name: str) -> None:
        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Create an OpenTelemetry span context.

        Args:
            name: Span name
            attributes: Span attributes (optional)

        Returns:
            Context manager yielding the OpenTelemetry Span
        """
        return self._tracer.start_as_current_span(
            name,
            attributes=attributes or {},
        )

    @property
    def enabled(self) -> bool:
        """Always returns True for OpenTelemetryTracer."""
        return True


class MockTracer:
    """
    Mock tracer for testing that records span information.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("operation", {"key": "value"}):
        ...     pass
        >>> assert tracer.spans == [("operation", {"key": "value"})]
        >>> assert tracer.span_names == ["operation"]
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        """Record span and yield None."""
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        """Returns True to enable attribute computation in tests."""
        return True

    @property
    def span_names(self) -> list[str]:
        """Get just the span names for easy assertions."""
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        """Clear recorded spans."""
        self.spans.clear()


def create_tracer(
    name: str,
    enable_tracing: bool = True,
) -> Tracer:
    """
    Factory function to create the appropriate tracer.

    Args:
        name: Tracer name (typically __name__)
        enable_tracing: Whether tracing should be enabled (default True)

    Returns:
        OpenTelemetryTracer if enabled, NullTracer otherwise

    Example:
        >>> def __init__(self, tracer: Tracer | None = None, enable_tracing: bool = True):
        ...     self._tracer = tracer or create_tracer(__name__, enable_tracing)
    """
    if enable_tracing:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
]
