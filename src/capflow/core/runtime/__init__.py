"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Runtime orchestration primitives.
"""

from .grouping import (
    DependencyAnomaly,
    ExecutionGroup,
    ExecutionGrouper,
    GroupingReport,
    build_execution_groups,
)
from .orchestrator import CapabilityInvoker, QueryOrchestrator
from .validation import PlanValidationResult, QueryPlanValidator

__all__ = [
    "DependencyAnomaly",
    "ExecutionGroup",
    "ExecutionGrouper",
    "GroupingReport",
    "build_execution_groups",
    "CapabilityInvoker",
    "QueryOrchestrator",
    "PlanValidationResult",
    "QueryPlanValidator",
]
