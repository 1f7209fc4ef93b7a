from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from capflow.capabilities import BaseCapability, CapabilityRegistry, SubscriptionTier
from capflow.core.runtime import QueryPlanValidator
from capflow.plan import CapabilityCall, QueryIntent, QueryPlan
from capflow.results import CapabilityResult
from capflow.settings import OrchestratorSettings


class _PeriodArgs(BaseModel):
    period: str = Field(pattern="^(day|week|month)$")


class _GetSales(BaseCapability):
    name = "GetSales"
    parameters_model = _PeriodArgs

    async def execute(self, tenant_id, parameters, cancellation):
        return CapabilityResult.ok(self.name)


class _GetForecast(BaseCapability):
    name = "GetForecast"
    required_tier = SubscriptionTier.ENTERPRISE

    async def execute(self, tenant_id, parameters, cancellation):
        return CapabilityResult.ok(self.name)


def _validator() -> QueryPlanValidator:
    return QueryPlanValidator(CapabilityRegistry([_GetSales(), _GetForecast()]))


def test_valid_plan_passes():
    plan = QueryPlan.of([CapabilityCall("GetSales", parameters={"period": "week"})])

    outcome = _validator().validate(plan)

    assert outcome.is_valid is True
    assert outcome.errors == ()
    assert outcome.warnings == ()


def test_out_of_scope_intent_is_rejected_first():
    plan = QueryPlan.of([CapabilityCall("Missing")], intent=QueryIntent.OUT_OF_SCOPE)

    outcome = _validator().validate(plan)

    assert outcome.is_valid is False
    assert outcome.errors == ("Query is outside the supported business scope",)


def test_empty_plan_is_rejected():
    outcome = _validator().validate(QueryPlan())

    assert outcome.errors == ("No capability matched the query",)


def test_unknown_capability_and_bad_parameters_are_reported():
    plan = QueryPlan.of(
        [
            CapabilityCall("GetStock"),
            CapabilityCall("GetSales", parameters={"period": "decade"}),
        ]
    )

    outcome = _validator().validate(plan)

    assert outcome.is_valid is False
    assert outcome.errors[0] == "Capability not found: GetStock@v1"
    assert outcome.errors[1].startswith("GetSales: period: ")


def test_tier_restriction_is_reported():
    plan = QueryPlan.of([CapabilityCall("GetForecast")])

    free = _validator().validate(plan, "free")
    enterprise = _validator().validate(plan, SubscriptionTier.ENTERPRISE)

    assert free.is_valid is False
    assert free.restricted_capabilities == ("GetForecast",)
    assert free.errors == ("'GetForecast' requires the enterprise plan or higher",)
    assert enterprise.is_valid is True


def test_dependency_outside_plan_is_an_error():
    plan = QueryPlan.of(
        [
            CapabilityCall("GetSales", parameters={"period": "day"}),
            CapabilityCall("GetForecast", depends_on={"GetSales", "GetStock"}),
        ]
    )

    outcome = _validator().validate(plan, SubscriptionTier.ENTERPRISE)

    assert outcome.errors == (
        "'GetForecast' depends on 'GetStock' but 'GetStock' is not in the plan",
    )


def test_low_confidence_is_a_warning(caplog):
    plan = QueryPlan.of(
        [CapabilityCall("GetSales", parameters={"period": "day"})], confidence=0.5
    )

    with caplog.at_level(logging.INFO, logger="capflow.validation"):
        outcome = _validator().validate(plan)

    assert outcome.is_valid is True
    assert outcome.warnings == ("Low plan confidence: 50%",)
    assert "Query plan validated" in caplog.text


def test_confidence_threshold_comes_from_settings():
    plan = QueryPlan.of(
        [CapabilityCall("GetSales", parameters={"period": "day"})], confidence=0.6
    )
    strict = QueryPlanValidator(
        CapabilityRegistry([_GetSales()]),
        settings=OrchestratorSettings.from_env({"CAPFLOW_LOW_CONFIDENCE_THRESHOLD": "0.9"}),
    )
    lenient = QueryPlanValidator(
        CapabilityRegistry([_GetSales()]),
        settings=OrchestratorSettings(low_confidence_threshold=0.5),
    )

    assert strict.validate(plan).warnings == ("Low plan confidence: 60%",)
    assert lenient.validate(plan).warnings == ()
