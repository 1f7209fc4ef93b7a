from __future__ import annotations

from collections.abc import Mapping
from uuid import uuid4

import pytest

from capflow.core.telemetry import TelemetryEvent, TelemetryRecorder, TelemetrySink, TelemetrySpan
from capflow.observability.backends import (
    InMemoryTelemetrySink,
    NullTelemetrySink,
    OpenTelemetrySink,
    TelemetryBackendError,
    create_telemetry_sink,
    list_telemetry_backends,
    register_telemetry_backend,
)
from capflow.types import JSONValue


class _CustomSink:
    def record_event(self, event: TelemetryEvent) -> None:
        _ = event

    def start_span(
        self,
        name: str,
        *,
        attributes: dict[str, JSONValue] | None = None,
        parent: TelemetrySpan | None = None,
    ) -> TelemetrySpan | None:
        _ = name
        _ = attributes
        _ = parent
        return None

    def end_span(
        self,
        span: TelemetrySpan | None,
        *,
        status: str,
        error: str | None = None,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        _ = span
        _ = status
        _ = error
        _ = attributes

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        _ = name
        _ = value
        _ = attributes

    def record_histogram(
        self,
        name: str,
        value: float,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        _ = name
        _ = value
        _ = attributes


class _CustomBackend:
    def __init__(self, backend_id: str) -> None:
        self.backend_id = backend_id

    def create_sink(
        self,
        *,
        config: Mapping[str, JSONValue] | None = None,
    ) -> TelemetrySink:
        _ = config
        return _CustomSink()


def test_register_and_resolve_custom_backend():
    backend_id = f"custom-{uuid4().hex}"
    register_telemetry_backend(_CustomBackend(backend_id))
    sink = create_telemetry_sink(backend_id)
    assert isinstance(sink, _CustomSink)
    assert backend_id in list_telemetry_backends()


def test_unknown_backend_raises_error():
    with pytest.raises(TelemetryBackendError):
        create_telemetry_sink("unknown-backend")


def test_builtin_backends_are_registered():
    assert {"null", "inmemory", "otel"} <= set(list_telemetry_backends())
    assert isinstance(create_telemetry_sink(None), NullTelemetrySink)
    assert isinstance(create_telemetry_sink("InMemory"), InMemoryTelemetrySink)
    otel = create_telemetry_sink("otel", config={"instrumentation_name": "billing"})
    assert isinstance(otel, OpenTelemetrySink)
    assert otel.instrumentation_name == "billing"


def test_sink_instance_passes_through():
    sink = InMemoryTelemetrySink()
    assert create_telemetry_sink(sink) is sink


def test_recorder_writes_to_inmemory_sink():
    sink = InMemoryTelemetrySink()
    recorder = TelemetryRecorder(sink)

    span = recorder.start_span("capflow.test", tenant_id=4)
    recorder.event("capflow.test.event", reason="demo")
    recorder.count("capflow.test.calls", 2, outcome="ok")
    recorder.observe("capflow.test.latency_ms", 12.5)
    recorder.end_span(span, status="ok", results=3)

    assert [event.name for event in sink.events()] == ["capflow.test.event"]
    assert sink.counter_total("capflow.test.calls") == 2
    assert sink.histograms("capflow.test.latency_ms")[0]["value"] == 12.5
    recorded = sink.spans("capflow.test")[0]
    assert recorded["status"] == "ok"
    assert recorded["attributes"] == {"tenant_id": 4, "results": 3}


def test_recorder_swallows_sink_failures():
    class _Exploding(_CustomSink):
        def record_event(self, event: TelemetryEvent) -> None:
            raise RuntimeError("sink offline")

        def start_span(self, name, *, attributes=None, parent=None):
            raise RuntimeError("sink offline")

    recorder = TelemetryRecorder(_Exploding())

    recorder.event("capflow.test.event")
    assert recorder.start_span("capflow.test") is None


def test_duplicate_backend_id_requires_overwrite():
    backend_id = f"dup-{uuid4().hex}"
    register_telemetry_backend(_CustomBackend(backend_id))

    with pytest.raises(TelemetryBackendError):
        register_telemetry_backend(_CustomBackend(backend_id.upper()))

    register_telemetry_backend(_CustomBackend(backend_id), overwrite=True)
    assert isinstance(create_telemetry_sink(backend_id), _CustomSink)


def test_blank_backend_id_is_rejected():
    with pytest.raises(TelemetryBackendError):
        register_telemetry_backend(_CustomBackend("  "))


def test_child_span_records_its_parent():
    sink = InMemoryTelemetrySink()
    recorder = TelemetryRecorder(sink)

    run = recorder.start_span("capflow.orchestration.run")
    group = recorder.start_span("capflow.orchestration.group", parent=run, group_index=0)
    recorder.end_span(group, status="ok")
    recorder.end_span(run, status="ok")

    assert sink.spans("capflow.orchestration.group")[0]["parent"] == "capflow.orchestration.run"
    assert sink.spans("capflow.orchestration.run")[0]["parent"] is None
