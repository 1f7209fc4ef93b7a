"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Core runtime package: telemetry primitives and orchestration runtime.
"""

from .telemetry import TelemetryEvent, TelemetryRecorder, TelemetrySink, TelemetrySpan
from .runtime import (
    ExecutionGrouper,
    QueryOrchestrator,
    QueryPlanValidator,
    build_execution_groups,
)

__all__ = [
    "TelemetryEvent",
    "TelemetryRecorder",
    "TelemetrySink",
    "TelemetrySpan",
    "ExecutionGrouper",
    "QueryOrchestrator",
    "QueryPlanValidator",
    "build_execution_groups",
]
