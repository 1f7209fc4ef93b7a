"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Telemetry records emitted by an orchestration run, the sink protocol that
backends implement, and the guarded recorder the runtime talks to.

One run produces a ``capflow.orchestration.run`` span, one child
``capflow.orchestration.group`` span per executed wave, per-call counters
and latency histograms, and point events for halts, cancellations, faults
and dependency anomalies. Names live in ``capflow.observability.contracts``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias

from ..types import JSONValue

logger = logging.getLogger("capflow.telemetry")

Attributes: TypeAlias = dict[str, JSONValue]


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """Something that happened to a run at one instant (halt, cancel, anomaly)."""

    name: str
    timestamp_ms: int
    attributes: Attributes = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TelemetrySpan:
    """Open span for a run or one of its groups."""

    name: str
    started_at_ms: int
    attributes: Attributes = field(default_factory=dict)
    # Group spans point at their run span.
    parent: TelemetrySpan | None = None
    # Backend-owned handle, e.g. an OpenTelemetry span.
    native_span: Any = None


class TelemetrySink(Protocol):
    """
    Destination for orchestration telemetry.

    Sinks are called from the event loop thread while a run is in flight and
    must not block. Exceptions raised here are swallowed by
    ``TelemetryRecorder``.
    """

    def record_event(self, event: TelemetryEvent) -> None: ...

    def start_span(
        self,
        name: str,
        *,
        attributes: Attributes | None = None,
        parent: TelemetrySpan | None = None,
    ) -> TelemetrySpan | None:
        """Open a run or group span; ``None`` when the sink does not trace."""
        ...

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: Attributes | None = None,
    ) -> None:
        """Close a span with its terminal status (``ok``, ``halted``, ``cancelled``...)."""
        ...

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: Attributes | None = None,
    ) -> None: ...

    def record_histogram(
        self,
        name: str,
        value: float,
        *,
        attributes: Attributes | None = None,
    ) -> None: ...


class TelemetryRecorder:
    """
    Thin wrapper used by the runtime to talk to a sink.

    A misbehaving sink must never change an orchestration outcome, so every
    call is guarded and sink failures are logged at debug level.
    """

    def __init__(self, sink: TelemetrySink) -> None:
        self.sink = sink

    def event(self, name: str, **attributes: JSONValue) -> None:
        try:
            self.sink.record_event(
                TelemetryEvent(name=name, timestamp_ms=now_ms(), attributes=attributes)
            )
        except Exception:
            logger.debug("Telemetry sink failed to record event %s", name, exc_info=True)

    def start_span(
        self,
        name: str,
        *,
        parent: TelemetrySpan | None = None,
        **attributes: JSONValue,
    ) -> TelemetrySpan | None:
        try:
            return self.sink.start_span(name, attributes=attributes, parent=parent)
        except Exception:
            logger.debug("Telemetry sink failed to start span %s", name, exc_info=True)
            return None

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        **attributes: JSONValue,
    ) -> None:
        try:
            self.sink.end_span(span, status=status, error=error, attributes=attributes)
        except Exception:
            logger.debug("Telemetry sink failed to end span", exc_info=True)

    def count(self, name: str, value: int = 1, **attributes: JSONValue) -> None:
        try:
            self.sink.increment_counter(name, value, attributes=attributes)
        except Exception:
            logger.debug("Telemetry sink failed to increment %s", name, exc_info=True)

    def observe(self, name: str, value: float, **attributes: JSONValue) -> None:
        try:
            self.sink.record_histogram(name, value, attributes=attributes)
        except Exception:
            logger.debug("Telemetry sink failed to record %s", name, exc_info=True)


def now_ms() -> int:
    return int(time.time() * 1000)
