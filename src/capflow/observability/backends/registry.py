"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Telemetry backend registry.

A backend is a named factory for sinks. ``OrchestratorSettings.telemetry_backend``
(``CAPFLOW_TELEMETRY_BACKEND``) names the backend a ``QueryOrchestrator``
uses when no sink instance is passed in.
"""

from __future__ import annotations

from collections.abc import Mapping
from threading import Lock
from typing import Protocol

from ...core.telemetry import TelemetrySink
from ...errors import CapflowError
from ...types import JSONValue


class TelemetryBackend(Protocol):
    backend_id: str

    def create_sink(
        self,
        *,
        config: Mapping[str, JSONValue] | None = None,
    ) -> TelemetrySink: ...


class TelemetryBackendError(CapflowError):
    """Raised for duplicate, blank or unknown telemetry backend ids."""


_BACKENDS: dict[str, TelemetryBackend] = {}
_LOCK = Lock()


def register_telemetry_backend(
    backend: TelemetryBackend, *, overwrite: bool = False
) -> None:
    """Register ``backend`` under its case-insensitive ``backend_id``."""
    backend_id = str(backend.backend_id).strip().lower()
    if not backend_id:
        raise TelemetryBackendError("Telemetry backend id must be non-empty")
    with _LOCK:
        if backend_id in _BACKENDS and not overwrite:
            raise TelemetryBackendError(
                f"Telemetry backend already registered: {backend_id}"
            )
        _BACKENDS[backend_id] = backend


def list_telemetry_backends() -> list[str]:
    with _LOCK:
        return sorted(_BACKENDS)


def create_telemetry_sink(
    backend: str | TelemetrySink | None = None,
    *,
    config: Mapping[str, JSONValue] | None = None,
) -> TelemetrySink:
    """
    Build the sink an orchestrator reports to.

    ``backend`` is a registered backend id, a ready sink (returned as is), or
    ``None`` for the discarding ``null`` backend.
    """
    if backend is not None and not isinstance(backend, str):
        return backend
    backend_id = (backend or "null").strip().lower()
    with _LOCK:
        factory = _BACKENDS.get(backend_id)
    if factory is None:
        raise TelemetryBackendError(
            f"Unknown telemetry backend '{backend}'. "
            f"Registered: {', '.join(list_telemetry_backends())}"
        )
    return factory.create_sink(config=config)
