"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Built-in telemetry backends: a no-op default and an in-memory recorder.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ...core.telemetry import (
    Attributes,
    TelemetryEvent,
    TelemetrySink,
    TelemetrySpan,
    now_ms,
)
from ...types import JSONValue


class NullTelemetrySink:
    """Sink that discards everything; the runtime default."""

    def record_event(self, event: TelemetryEvent) -> None:
        return None

    def start_span(
        self,
        name: str,
        *,
        attributes: Attributes | None = None,
        parent: TelemetrySpan | None = None,
    ) -> TelemetrySpan | None:
        return None

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: Attributes | None = None,
    ) -> None:
        return None

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: Attributes | None = None,
    ) -> None:
        return None

    def record_histogram(
        self,
        name: str,
        value: float,
        *,
        attributes: Attributes | None = None,
    ) -> None:
        return None


@dataclass(slots=True)
class InMemoryTelemetrySink:
    """Sink that keeps every record in process memory, for tests and debugging."""

    _events: list[TelemetryEvent] = field(default_factory=list)
    _spans: list[dict[str, Any]] = field(default_factory=list)
    _counters: list[dict[str, Any]] = field(default_factory=list)
    _histograms: list[dict[str, Any]] = field(default_factory=list)

    def record_event(self, event: TelemetryEvent) -> None:
        self._events.append(event)

    def start_span(
        self,
        name: str,
        *,
        attributes: Attributes | None = None,
        parent: TelemetrySpan | None = None,
    ) -> TelemetrySpan:
        return TelemetrySpan(
            name=name,
            started_at_ms=now_ms(),
            attributes=dict(attributes or {}),
            parent=parent,
        )

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: Attributes | None = None,
    ) -> None:
        if span is None:
            return
        ended_at = now_ms()
        self._spans.append(
            {
                "name": span.name,
                "parent": span.parent.name if span.parent is not None else None,
                "status": status,
                "error": error,
                "duration_ms": ended_at - span.started_at_ms,
                "attributes": {**span.attributes, **dict(attributes or {})},
            }
        )

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: Attributes | None = None,
    ) -> None:
        self._counters.append(
            {"name": name, "value": int(value), "attributes": dict(attributes or {})}
        )

    def record_histogram(
        self,
        name: str,
        value: float,
        *,
        attributes: Attributes | None = None,
    ) -> None:
        self._histograms.append(
            {"name": name, "value": float(value), "attributes": dict(attributes or {})}
        )

    def events(self, name: str | None = None) -> list[TelemetryEvent]:
        return [row for row in self._events if name is None or row.name == name]

    def spans(self, name: str | None = None) -> list[dict[str, Any]]:
        return [row for row in self._spans if name is None or row["name"] == name]

    def counters(self, name: str | None = None) -> list[dict[str, Any]]:
        return [row for row in self._counters if name is None or row["name"] == name]

    def histograms(self, name: str | None = None) -> list[dict[str, Any]]:
        return [row for row in self._histograms if name is None or row["name"] == name]

    def counter_total(self, name: str) -> int:
        return sum(row["value"] for row in self.counters(name))


class NullTelemetryBackend:
    backend_id = "null"

    def create_sink(
        self,
        *,
        config: Mapping[str, JSONValue] | None = None,
    ) -> TelemetrySink:
        return NullTelemetrySink()


class InMemoryTelemetryBackend:
    backend_id = "inmemory"

    def create_sink(
        self,
        *,
        config: Mapping[str, JSONValue] | None = None,
    ) -> TelemetrySink:
        return InMemoryTelemetrySink()
