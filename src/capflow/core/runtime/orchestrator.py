"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Query orchestrator: executes a plan wave by wave against the capability
registry and aggregates per-call results.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import AsyncExitStack

from ...capabilities.cancellation import CancellationToken
from ...capabilities.registry import CapabilityRegistry
from ...errors import DependencyCycleError, OperationCancelledError
from ...observability.backends import create_telemetry_sink
from ...observability.contracts import (
    EVENT_DEPENDENCY_ANOMALY,
    EVENT_ORCHESTRATION_CANCELLED,
    EVENT_ORCHESTRATION_FAULTED,
    EVENT_ORCHESTRATION_HALTED,
    METRIC_CAPABILITY_CALL_LATENCY_MS,
    METRIC_CAPABILITY_CALLS_TOTAL,
    METRIC_GROUP_LATENCY_MS,
    METRIC_GROUPS_TOTAL,
    METRIC_ORCHESTRATION_DURATION_MS,
    METRIC_ORCHESTRATIONS_TOTAL,
    SPAN_ORCHESTRATION_GROUP,
    SPAN_ORCHESTRATION_RUN,
)
from ...plan import CapabilityCall, QueryPlan
from ...results import (
    CANCELLED_MESSAGE,
    CAPABILITY_EXECUTION_ERROR,
    CAPABILITY_NOT_FOUND,
    CapabilityResult,
    OrchestrationResult,
    OrchestrationStatus,
)
from ...settings import OrchestratorSettings
from ...types import JSONValue
from ..telemetry import TelemetryRecorder, TelemetrySink, TelemetrySpan
from .grouping import ExecutionGroup, ExecutionGrouper

logger = logging.getLogger("capflow.orchestrator")

_CANCELLATION = (OperationCancelledError, asyncio.CancelledError)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _task_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class CapabilityInvoker:
    """Resolve and run one capability call, converting every fault into a result."""

    def __init__(self, registry: CapabilityRegistry, telemetry: TelemetryRecorder) -> None:
        self.registry = registry
        self.telemetry = telemetry

    async def invoke(
        self,
        call: CapabilityCall,
        *,
        tenant_id: int,
        cancellation: CancellationToken,
    ) -> CapabilityResult:
        """
        Run one call and return its terminal result.

        Cancellation is re-raised only when it comes from the run itself: the
        shared ``cancellation`` token was triggered or the invoking task is
        being cancelled. A capability that cancels its own inner work (for
        example through a child token deadline) gets a
        ``CAPABILITY_EXECUTION_ERROR`` result like any other exception.
        """
        capability = self.registry.resolve(call.name, call.requested_version)
        if capability is None:
            logger.error("Capability not found: %s", call.label)
            self._record(call, "not_found", 0)
            return CapabilityResult.failure(
                call.name,
                f"Capability not found: {call.label}",
                error_code=CAPABILITY_NOT_FOUND,
                capability_version=call.requested_version or "",
                call_id=call.call_id,
            )

        version = str(capability.version)
        logger.debug(
            "Executing capability %s@%s for tenant %s", call.name, version, tenant_id
        )
        started = time.perf_counter()
        try:
            outcome = await capability.execute(tenant_id, call.parameters, cancellation)
        except _CANCELLATION as exc:
            if cancellation.cancelled or _task_cancelling():
                raise
            logger.warning(
                "Capability %s cancelled its own work for tenant %s", call.name, tenant_id
            )
            return self._fault(call, version, exc, _elapsed_ms(started))
        except Exception as exc:
            logger.exception(
                "Capability %s execution failed for tenant %s", call.name, tenant_id
            )
            return self._fault(call, version, exc, _elapsed_ms(started))

        elapsed = _elapsed_ms(started)
        if not isinstance(outcome, CapabilityResult):
            logger.error(
                "Capability %s returned %s instead of a CapabilityResult",
                call.name,
                type(outcome).__name__,
            )
            unsupported = TypeError(
                f"Capability returned unsupported result type {type(outcome).__name__}"
            )
            return self._fault(call, version, unsupported, elapsed)

        result = outcome.with_call_metadata(call, version=version, elapsed_ms=elapsed)
        self._record(call, "ok" if result.is_success else "failed", elapsed)
        return result

    def _fault(
        self,
        call: CapabilityCall,
        version: str,
        exc: BaseException,
        elapsed_ms: int,
    ) -> CapabilityResult:
        self._record(call, "error", elapsed_ms)
        return CapabilityResult.failure(
            call.name,
            str(exc) or type(exc).__name__,
            error_code=CAPABILITY_EXECUTION_ERROR,
            capability_version=version,
            call_id=call.call_id,
            execution_time_ms=elapsed_ms,
        )

    def _record(self, call: CapabilityCall, outcome: str, elapsed_ms: int) -> None:
        self.telemetry.count(
            METRIC_CAPABILITY_CALLS_TOTAL, capability=call.name, outcome=outcome
        )
        self.telemetry.observe(
            METRIC_CAPABILITY_CALL_LATENCY_MS,
            float(elapsed_ms),
            capability=call.name,
            outcome=outcome,
        )


class QueryOrchestrator:
    """
    Execute a ``QueryPlan`` end to end.

    Pipeline: grouper -> (per wave) concurrent invocation -> barrier ->
    aggregate -> continue or halt. ``execute`` never raises; cancellation and
    orchestration-level faults are reported through ``OrchestrationResult.error``.

    The orchestrator holds no per-run state, so one instance can serve
    concurrent orchestrations over a shared registry.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        *,
        grouper: ExecutionGrouper | None = None,
        telemetry: str | TelemetrySink | None = None,
        settings: OrchestratorSettings | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or OrchestratorSettings()
        self.grouper = grouper or ExecutionGrouper(policy=self.settings.dependency_policy)
        self.telemetry = TelemetryRecorder(
            create_telemetry_sink(
                telemetry if telemetry is not None else self.settings.telemetry_backend
            )
        )
        self.invoker = CapabilityInvoker(registry, self.telemetry)

    async def execute(
        self,
        plan: QueryPlan,
        tenant_id: int,
        cancellation: CancellationToken | None = None,
    ) -> OrchestrationResult:
        """Run ``plan`` for ``tenant_id`` and return the aggregated result."""
        token = cancellation if cancellation is not None else CancellationToken()
        started = time.perf_counter()
        results: list[CapabilityResult] = []
        completed: set[str] = set()
        groups_run = 0
        status: OrchestrationStatus = "completed"
        error: str | None = None
        metadata: dict[str, JSONValue] = {
            "tenant_id": tenant_id,
            "planned_calls": len(plan.calls),
        }
        span = self.telemetry.start_span(
            SPAN_ORCHESTRATION_RUN, tenant_id=tenant_id, planned_calls=len(plan.calls)
        )

        try:
            token.raise_if_cancelled()
            report = self.grouper.build(plan.calls)
            metadata["planned_groups"] = len(report)
            if report.anomaly is not None:
                metadata["dependency_anomaly"] = list(report.anomaly.pending)
                self.telemetry.event(
                    EVENT_DEPENDENCY_ANOMALY,
                    tenant_id=tenant_id,
                    pending=list(report.anomaly.pending),
                )

            for group in report.groups:
                token.raise_if_cancelled()
                group_results = await self._run_group(
                    group, tenant_id=tenant_id, token=token, run_span=span
                )
                # A cancellation raised during the wave discards the wave.
                token.raise_if_cancelled()

                results.extend(group_results)
                completed.update(group.names)
                groups_run += 1

                if any(not result.is_success for result in group_results):
                    status = "halted"
                    logger.warning(
                        "Orchestration stopped due to capability failure. Completed: %d/%d",
                        len(completed),
                        len(plan.calls),
                    )
                    self.telemetry.event(
                        EVENT_ORCHESTRATION_HALTED,
                        tenant_id=tenant_id,
                        group_index=group.index,
                        failed=[r.capability_name for r in group_results if not r.is_success],
                    )
                    break
        except _CANCELLATION:
            status = "cancelled"
            error = CANCELLED_MESSAGE
            logger.warning("Orchestration cancelled for tenant %s", tenant_id)
            self.telemetry.event(
                EVENT_ORCHESTRATION_CANCELLED, tenant_id=tenant_id, reason=token.reason
            )
        except Exception as exc:
            status = "faulted"
            error = str(exc) or type(exc).__name__
            if isinstance(exc, DependencyCycleError):
                metadata["error_code"] = exc.code
            logger.exception("Orchestration failed for tenant %s", tenant_id)
            self.telemetry.event(EVENT_ORCHESTRATION_FAULTED, tenant_id=tenant_id, error=error)

        elapsed = _elapsed_ms(started)
        success = error is None and all(result.is_success for result in results)
        metadata["completed_calls"] = len(completed)

        logger.info(
            "Orchestration finished for tenant %s. Capabilities: %d, Success: %s, Status: %s, Time: %dms",
            tenant_id,
            len(results),
            success,
            status,
            elapsed,
        )
        self.telemetry.count(METRIC_ORCHESTRATIONS_TOTAL, status=status)
        self.telemetry.observe(METRIC_ORCHESTRATION_DURATION_MS, float(elapsed), status=status)
        self.telemetry.end_span(
            span,
            status="ok" if success else status,
            error=error,
            groups=groups_run,
            results=len(results),
        )

        return OrchestrationResult(
            success=success,
            results=tuple(results),
            total_execution_time_ms=elapsed,
            error=error,
            status=status,
            group_count=groups_run,
            metadata=metadata,
        )

    async def _run_group(
        self,
        group: ExecutionGroup,
        *,
        tenant_id: int,
        token: CancellationToken,
        run_span: TelemetrySpan | None = None,
    ) -> list[CapabilityResult]:
        """Run every call of one wave concurrently and wait for all of them."""
        span = self.telemetry.start_span(
            SPAN_ORCHESTRATION_GROUP,
            parent=run_span,
            group_index=group.index,
            size=len(group),
            unresolved=group.unresolved,
        )
        started = time.perf_counter()
        limit = self.settings.max_parallelism
        semaphore = asyncio.Semaphore(limit) if limit is not None else None

        async def _one(call: CapabilityCall) -> CapabilityResult:
            async with AsyncExitStack() as stack:
                if semaphore is not None:
                    await stack.enter_async_context(semaphore)
                token.raise_if_cancelled()
                return await self.invoker.invoke(
                    call, tenant_id=tenant_id, cancellation=token
                )

        # return_exceptions keeps the barrier: siblings finish even if one
        # call surfaces cancellation.
        outcomes = await asyncio.gather(
            *(_one(call) for call in group.calls), return_exceptions=True
        )

        elapsed = _elapsed_ms(started)
        self.telemetry.count(METRIC_GROUPS_TOTAL)
        self.telemetry.observe(METRIC_GROUP_LATENCY_MS, float(elapsed), group_index=group.index)

        group_results: list[CapabilityResult] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                self.telemetry.end_span(
                    span,
                    status="cancelled" if isinstance(outcome, _CANCELLATION) else "faulted",
                    error=str(outcome) or type(outcome).__name__,
                )
                raise outcome
            group_results.append(outcome)

        failed = sum(1 for result in group_results if not result.is_success)
        self.telemetry.end_span(
            span,
            status="ok" if failed == 0 else "failed",
            failed=failed,
        )
        return group_results
