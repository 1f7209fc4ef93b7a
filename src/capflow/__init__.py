"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

capflow: dependency-aware orchestration of versioned capability calls.

Quick start::

    from capflow import CapabilityCall, CapabilityRegistry, QueryOrchestrator, QueryPlan

    registry = CapabilityRegistry([GetSales(), GetTopProducts()])
    plan = QueryPlan.of(
        [
            CapabilityCall("GetSales"),
            CapabilityCall("GetTopProducts", depends_on={"GetSales"}),
        ]
    )
    result = await QueryOrchestrator(registry).execute(plan, tenant_id=42)
"""

from .capabilities import (
    BaseCapability,
    CancellationToken,
    Capability,
    CapabilityInfo,
    CapabilityParameter,
    CapabilityRegistry,
    ParameterValidation,
    SubscriptionTier,
)
from .core import (
    ExecutionGrouper,
    QueryOrchestrator,
    QueryPlanValidator,
    build_execution_groups,
)
from .errors import (
    CapabilityAlreadyRegisteredError,
    CapabilityRegistryError,
    CapflowError,
    DependencyCycleError,
    OperationCancelledError,
    PlanFormatError,
    SettingsError,
)
from .plan import CapabilityCall, QueryIntent, QueryPlan
from .results import (
    CANCELLED_MESSAGE,
    CAPABILITY_EXECUTION_ERROR,
    CAPABILITY_NOT_FOUND,
    CapabilityResult,
    OrchestrationResult,
)
from .settings import OrchestratorSettings

__all__ = [
    "BaseCapability",
    "CancellationToken",
    "Capability",
    "CapabilityInfo",
    "CapabilityParameter",
    "CapabilityRegistry",
    "ParameterValidation",
    "SubscriptionTier",
    "ExecutionGrouper",
    "QueryOrchestrator",
    "QueryPlanValidator",
    "build_execution_groups",
    "CapflowError",
    "CapabilityRegistryError",
    "CapabilityAlreadyRegisteredError",
    "DependencyCycleError",
    "OperationCancelledError",
    "PlanFormatError",
    "SettingsError",
    "CapabilityCall",
    "QueryIntent",
    "QueryPlan",
    "CapabilityResult",
    "OrchestrationResult",
    "CAPABILITY_NOT_FOUND",
    "CAPABILITY_EXECUTION_ERROR",
    "CANCELLED_MESSAGE",
    "OrchestratorSettings",
]
