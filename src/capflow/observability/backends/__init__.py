"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Telemetry sinks for orchestration runs and the backend registry that names them.
"""

from .builtin import (
    InMemoryTelemetryBackend,
    InMemoryTelemetrySink,
    NullTelemetryBackend,
    NullTelemetrySink,
)
from .otel import OpenTelemetryBackend, OpenTelemetrySink
from .registry import (
    TelemetryBackend,
    TelemetryBackendError,
    create_telemetry_sink,
    list_telemetry_backends,
    register_telemetry_backend,
)

register_telemetry_backend(NullTelemetryBackend(), overwrite=True)
register_telemetry_backend(InMemoryTelemetryBackend(), overwrite=True)
register_telemetry_backend(OpenTelemetryBackend(), overwrite=True)

__all__ = [
    "TelemetryBackend",
    "TelemetryBackendError",
    "register_telemetry_backend",
    "list_telemetry_backends",
    "create_telemetry_sink",
    "NullTelemetryBackend",
    "InMemoryTelemetryBackend",
    "OpenTelemetryBackend",
    "NullTelemetrySink",
    "InMemoryTelemetrySink",
    "OpenTelemetrySink",
]
