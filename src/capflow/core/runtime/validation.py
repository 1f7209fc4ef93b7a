"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Pre-flight plan validation against the registry and a tenant's tier.

The orchestrator never calls this itself; callers that want to reject plans up
front (unknown capabilities, tier restrictions, bad parameters) run it before
``QueryOrchestrator.execute``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ...capabilities.base import BaseCapability, SubscriptionTier, describe
from ...capabilities.registry import CapabilityRegistry
from ...plan import QueryIntent, QueryPlan
from ...settings import OrchestratorSettings

logger = logging.getLogger("capflow.validation")


@dataclass(frozen=True, slots=True)
class PlanValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    restricted_capabilities: tuple[str, ...] = ()


class QueryPlanValidator:
    """Validate a plan before execution."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        *,
        settings: OrchestratorSettings | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or OrchestratorSettings()
        self.low_confidence_threshold = self.settings.low_confidence_threshold

    def validate(
        self,
        plan: QueryPlan,
        tier: SubscriptionTier | str | int = SubscriptionTier.FREE,
    ) -> PlanValidationResult:
        allowed = SubscriptionTier.parse(tier)

        if plan.intent is QueryIntent.OUT_OF_SCOPE:
            return PlanValidationResult(
                is_valid=False, errors=("Query is outside the supported business scope",)
            )
        if not plan.calls:
            return PlanValidationResult(
                is_valid=False, errors=("No capability matched the query",)
            )

        errors: list[str] = []
        warnings: list[str] = []
        restricted: list[str] = []

        for call in plan.calls:
            capability = self.registry.resolve(call.name, call.requested_version)
            if capability is None:
                errors.append(f"Capability not found: {call.label}")
                continue

            required = describe(capability).required_tier
            if allowed < required:
                restricted.append(call.name)
                errors.append(
                    f"'{call.name}' requires the {required.name.lower()} plan or higher"
                )
                continue

            if isinstance(capability, BaseCapability):
                outcome = capability.validate_parameters(call.parameters)
                errors.extend(f"{call.name}: {row}" for row in outcome.errors)
                warnings.extend(f"{call.name}: {row}" for row in outcome.warnings)

        names = {call.name for call in plan.calls}
        for call in plan.calls:
            for dep in sorted(call.depends_on - names):
                errors.append(
                    f"'{call.name}' depends on '{dep}' but '{dep}' is not in the plan"
                )

        if plan.confidence < self.low_confidence_threshold:
            warnings.append(f"Low plan confidence: {plan.confidence:.0%}")

        result = PlanValidationResult(
            is_valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            restricted_capabilities=tuple(restricted),
        )
        logger.info(
            "Query plan validated. Valid: %s, Errors: %d, Warnings: %d",
            result.is_valid,
            len(errors),
            len(warnings),
        )
        return result
