"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Telemetry contract constants for capflow orchestration.
"""

from __future__ import annotations

SPAN_ORCHESTRATION_RUN = "capflow.orchestration.run"
SPAN_ORCHESTRATION_GROUP = "capflow.orchestration.group"

EVENT_DEPENDENCY_ANOMALY = "capflow.grouping.dependency_anomaly"
EVENT_ORCHESTRATION_HALTED = "capflow.orchestration.halted"
EVENT_ORCHESTRATION_CANCELLED = "capflow.orchestration.cancelled"
EVENT_ORCHESTRATION_FAULTED = "capflow.orchestration.faulted"

METRIC_ORCHESTRATIONS_TOTAL = "capflow.orchestrations.total"
METRIC_ORCHESTRATION_DURATION_MS = "capflow.orchestration.duration_ms"

METRIC_GROUPS_TOTAL = "capflow.groups.total"
METRIC_GROUP_LATENCY_MS = "capflow.group.latency_ms"

METRIC_CAPABILITY_CALLS_TOTAL = "capflow.capability.calls.total"
METRIC_CAPABILITY_CALL_LATENCY_MS = "capflow.capability.call.latency_ms"
