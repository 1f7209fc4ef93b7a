"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Observability for capflow: metric/span name contracts and sink backends.

Quick start::

    from capflow.observability.backends import create_telemetry_sink

    sink = create_telemetry_sink("inmemory")
    orchestrator = QueryOrchestrator(registry, telemetry=sink)
    await orchestrator.execute(plan, tenant_id=7)
    sink.counters("capflow.capability.calls.total")
"""

from . import contracts
from .backends import create_telemetry_sink

__all__ = ["contracts", "create_telemetry_sink"]
