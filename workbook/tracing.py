"""
Telemetry hook for the service request engine.

Telemetry lives outside this package; the transport only reports into it.
Reporting is strictly passive:
- Never influences the outcome of a call
- Never mutates client state
- Failures are logged and dropped
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceMetadata:
    """Identity attached to every event a client emits."""

    trace_id: str
    conversation_id: Optional[str] = None
    user_id: Optional[str] = None


class Tracer(ABC):
    """
    Abstract event sink.

    Implementations MUST NOT raise from record_event; emit_event guards
    against it anyway.
    """

    @abstractmethod
    def record_event(
        self, name: str, metadata: Dict[str, Any], trace_metadata: TraceMetadata
    ) -> None:
        """
        Record a point-in-time event.

        Args:
            name: Event name (e.g. "workbook_request_sent")
            metadata: Event data (endpoint, method, error_type, ...)
            trace_metadata: Trace identity
        """

    @abstractmethod
    def is_enabled(self) -> bool:
        """True if events are actually recorded."""


class NoOpTracer(Tracer):
    """Tracer used when telemetry is disabled."""

    def record_event(
        self, name: str, metadata: Dict[str, Any], trace_metadata: TraceMetadata
    ) -> None:
        pass

    def is_enabled(self) -> bool:
        return False


def emit_event(
    tracer: Optional[Tracer],
    event_name: str,
    metadata: Dict[str, Any],
    trace_metadata: Optional[TraceMetadata],
) -> None:
    """Safely emit a trace event. Never raises."""
    if tracer is None or trace_metadata is None:
        return
    try:
        tracer.record_event(event_name, metadata, trace_metadata)
    except Exception as e:
        logger.debug("Dropped trace event %s: %s", event_name, e)
