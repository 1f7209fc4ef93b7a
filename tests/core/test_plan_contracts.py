from __future__ import annotations

import pytest

from capflow.errors import PlanFormatError
from capflow.plan import CapabilityCall, QueryIntent, QueryPlan
from capflow.results import CapabilityResult, OrchestrationResult


def test_capability_call_normalizes_dependencies():
    single = CapabilityCall("GetTopProducts", depends_on="GetSales")
    many = CapabilityCall("Report", depends_on=["GetSales", "GetStock", "GetSales"])
    none = CapabilityCall("GetSales", depends_on=None)

    assert single.depends_on == frozenset({"GetSales"})
    assert many.depends_on == frozenset({"GetSales", "GetStock"})
    assert none.depends_on == frozenset()


def test_capability_call_requires_a_name():
    with pytest.raises(ValueError):
        CapabilityCall("  ")


def test_requested_version_and_label():
    assert CapabilityCall("GetSales").label == "GetSales@v1"
    assert CapabilityCall("GetSales", version="").requested_version is None
    assert CapabilityCall("GetSales", version=None).label == "GetSales@latest"
    assert CapabilityCall("GetSales", version=" v2 ").requested_version == "v2"


def test_from_payload_reads_planner_json():
    plan = QueryPlan.from_payload(
        {
            "originalQuery": "Sales and top products this week",
            "intent": 2,
            "confidence": 0.85,
            "aggregationHint": "compare",
            "capabilities": [
                {"name": "GetSales", "parameters": {"period": "week"}, "callId": "c1"},
                {
                    "name": "GetTopProducts",
                    "version": "v2",
                    "order": 1,
                    "dependsOn": ["GetSales"],
                },
            ],
        }
    )

    assert plan.intent is QueryIntent.COMPARATIVE
    assert plan.confidence == 0.85
    assert plan.aggregation_hint == "compare"
    assert plan.names == ["GetSales", "GetTopProducts"]
    first, second = plan.calls
    assert first.version == "v1"
    assert first.parameters == {"period": "week"}
    assert first.call_id == "c1"
    assert second.order == 1
    assert second.depends_on == frozenset({"GetSales"})


def test_from_payload_accepts_snake_case_and_intent_names():
    plan = QueryPlan.from_payload(
        {
            "calls": [{"name": "GetStock", "depends_on": [], "call_id": 7}],
            "intent": "OutOfScope",
            "requires_upgrade": True,
        }
    )

    assert plan.intent is QueryIntent.OUT_OF_SCOPE
    assert plan.requires_upgrade is True
    assert plan.calls[0].call_id == "7"
    assert QueryPlan.from_payload({"intent": 99}).intent is QueryIntent.OUT_OF_SCOPE
    assert len(QueryPlan.from_payload({})) == 0


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"capabilities": "GetSales"},
        {"capabilities": [{"version": "v1"}]},
        {"capabilities": [{"name": "A", "dependsOn": "B"}]},
        {"capabilities": [{"name": "A", "order": "first"}]},
        {"capabilities": [{"name": "A", "version": 2}]},
        {"intent": "speculative"},
        {"intent": 5},
        {"confidence": "high"},
    ],
)
def test_from_payload_rejects_malformed_payloads(payload):
    with pytest.raises(PlanFormatError):
        QueryPlan.from_payload(payload)


def test_with_call_metadata_stamps_identity_and_clears_stray_fields():
    call = CapabilityCall("GetSales", version="v2", call_id="x")
    ok = CapabilityResult(
        capability_name="ignored",
        is_success=True,
        data=[1],
        error_message="left over",
    ).with_call_metadata(call, version="v2", elapsed_ms=-4)
    failed = CapabilityResult(
        capability_name="ignored", is_success=False, data=[1], error_message="bad"
    ).with_call_metadata(call, version="v2", elapsed_ms=12)

    assert (ok.capability_name, ok.capability_version, ok.call_id) == ("GetSales", "v2", "x")
    assert ok.execution_time_ms == 0
    assert ok.error_message is None
    assert failed.data is None
    assert failed.error_message == "bad"
    assert failed.execution_time_ms == 12


def test_orchestration_result_derived_fields():
    result = OrchestrationResult(
        success=False,
        results=[
            CapabilityResult.ok("A", record_count=3),
            CapabilityResult.ok("B"),
            CapabilityResult.failure("C", "boom", error_code="X"),
        ],
        status="halted",
    )

    assert isinstance(result.results, tuple)
    assert result.all_succeeded is False
    assert result.total_records == 3
    assert [row.capability_name for row in result.failed_results] == ["C"]


def test_empty_orchestration_result_is_vacuously_successful():
    result = OrchestrationResult(success=True)

    assert result.all_succeeded is True
    assert result.total_records == 0


def test_to_dict_uses_wire_keys():
    payload = OrchestrationResult(
        success=True,
        results=(CapabilityResult.ok("A", {"n": 1}, record_count=1, call_id="a"),),
        total_execution_time_ms=15,
        group_count=1,
        metadata={"tenant_id": 3},
    ).to_dict()

    assert payload["allSucceeded"] is True
    assert payload["totalRecords"] == 1
    assert payload["groupCount"] == 1
    assert payload["results"][0]["callId"] == "a"
    assert payload["results"][0]["capabilityName"] == "A"
    assert payload["metadata"] == {"tenant_id": 3}


def test_orchestration_metadata_is_read_only():
    source = {"tenant_id": 3}
    result = OrchestrationResult(success=True, metadata=source)
    source["tenant_id"] = 4

    assert result.metadata["tenant_id"] == 3
    with pytest.raises(TypeError):
        result.metadata["tenant_id"] = 5
