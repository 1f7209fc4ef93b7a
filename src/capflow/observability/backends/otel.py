"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

OpenTelemetry backend: spans via the tracer API, counters and histograms via
the meter API. ``opentelemetry-api`` is imported lazily on first use.
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

EVENTS_COUNTER = "capflow.events"


@dataclass(slots=True)
class OpenTelemetrySink:
    """Sink forwarding capflow telemetry to the global OpenTelemetry providers."""

    instrumentation_name: str = "capflow.orchestrator"

    _tracer: Any = field(default=None, init=False, repr=False)
    _meter: Any = field(default=None, init=False, repr=False)
    _instruments: dict[tuple[str, str], Any] = field(
        default_factory=dict, init=False, repr=False
    )

    def _clients(self) -> tuple[Any, Any]:
        if self._tracer is None or self._meter is None:
            try:
                from opentelemetry import metrics, trace
            except ImportError as exc:
                raise RuntimeError(
                    "OpenTelemetrySink requires the 'opentelemetry-api' package"
                ) from exc
            self._tracer = trace.get_tracer(self.instrumentation_name)
            self._meter = metrics.get_meter(self.instrumentation_name)
        return self._tracer, self._meter

    def _instrument(self, kind: str, name: str) -> Any:
        key = (kind, name)
        instrument = self._instruments.get(key)
        if instrument is None:
            _, meter = self._clients()
            if kind == "counter":
                instrument = meter.create_counter(name)
            else:
                instrument = meter.create_histogram(name)
            self._instruments[key] = instrument
        return instrument

    def record_event(self, event: TelemetryEvent) -> None:
        self.increment_counter(
            EVENTS_COUNTER,
            attributes={"event_name": event.name, **event.attributes},
        )

    def start_span(
        self,
        name: str,
        *,
        attributes: Attributes | None = None,
        parent: TelemetrySpan | None = None,
    ) -> TelemetrySpan | None:
        tracer, _ = self._clients()
        context = None
        if parent is not None and parent.native_span is not None:
            from opentelemetry import trace

            context = trace.set_span_in_context(parent.native_span)
        native = tracer.start_span(
            name=name, context=context, attributes=_attributes(attributes)
        )
        return TelemetrySpan(
            name=name,
            started_at_ms=now_ms(),
            attributes=dict(attributes or {}),
            parent=parent,
            native_span=native,
        )

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: Attributes | None = None,
    ) -> None:
        if span is None or span.native_span is None:
            return
        from opentelemetry.trace import Status, StatusCode

        native = span.native_span
        extra = _attributes(attributes)
        if extra:
            native.set_attributes(extra)
        native.set_attribute("capflow.status", status)
        if error:
            native.set_status(Status(StatusCode.ERROR, error))
        else:
            native.set_status(Status(StatusCode.OK))
        native.end()

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: Attributes | None = None,
    ) -> None:
        self._instrument("counter", name).add(int(value), attributes=_attributes(attributes))

    def record_histogram(
        self,
        name: str,
        value: float,
        *,
        attributes: Attributes | None = None,
    ) -> None:
        self._instrument("histogram", name).record(
            float(value), attributes=_attributes(attributes)
        )


class OpenTelemetryBackend:
    backend_id = "otel"

    def create_sink(
        self,
        *,
        config: Mapping[str, JSONValue] | None = None,
    ) -> TelemetrySink:
        conf = dict(config or {})
        return OpenTelemetrySink(
            instrumentation_name=str(conf.get("instrumentation_name", "capflow.orchestrator"))
        )


def _attributes(values: Mapping[str, JSONValue] | None) -> dict[str, Any]:
    # OTel attribute values must be primitives or homogeneous sequences.
    out: dict[str, Any] = {}
    for key, value in (values or {}).items():
        if value is None:
            continue
        if isinstance(value, (str, bool, int, float)):
            out[str(key)] = value
        elif isinstance(value, list) and all(isinstance(item, str) for item in value):
            out[str(key)] = tuple(value)
        else:
            out[str(key)] = str(value)
    return out
