"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-call and aggregated orchestration result contracts.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal

from .types import JSONValue

if TYPE_CHECKING:
    from .plan import CapabilityCall

CAPABILITY_NOT_FOUND = "CAPABILITY_NOT_FOUND"
CAPABILITY_EXECUTION_ERROR = "CAPABILITY_EXECUTION_ERROR"

CANCELLED_MESSAGE = "Operation was cancelled"

OrchestrationStatus = Literal[
    "completed",
    "halted",
    "cancelled",
    "faulted",
]


@dataclass(frozen=True, slots=True)
class CapabilityResult:
    """Immutable outcome of one capability call attempt."""

    capability_name: str
    capability_version: str = ""
    call_id: str | None = None
    is_success: bool = False
    data: JSONValue | None = None
    execution_time_ms: int = 0
    error_message: str | None = None
    error_code: str | None = None
    record_count: int | None = None
    data_source: str = "real"

    def __post_init__(self) -> None:
        if self.execution_time_ms < 0:
            object.__setattr__(self, "execution_time_ms", 0)

    @classmethod
    def ok(
        cls,
        capability_name: str,
        data: JSONValue | None = None,
        *,
        capability_version: str = "",
        call_id: str | None = None,
        execution_time_ms: int = 0,
        record_count: int | None = None,
        data_source: str = "real",
    ) -> "CapabilityResult":
        return cls(
            capability_name=capability_name,
            capability_version=capability_version,
            call_id=call_id,
            is_success=True,
            data=data,
            execution_time_ms=execution_time_ms,
            record_count=record_count,
            data_source=data_source,
        )

    @classmethod
    def failure(
        cls,
        capability_name: str,
        error_message: str,
        *,
        error_code: str | None = None,
        capability_version: str = "",
        call_id: str | None = None,
        execution_time_ms: int = 0,
    ) -> "CapabilityResult":
        return cls(
            capability_name=capability_name,
            capability_version=capability_version,
            call_id=call_id,
            is_success=False,
            execution_time_ms=execution_time_ms,
            error_message=error_message,
            error_code=error_code,
        )

    def with_call_metadata(
        self,
        call: "CapabilityCall",
        *,
        version: str,
        elapsed_ms: int,
    ) -> "CapabilityResult":
        """Return a copy stamped with the originating call's identity and timing.

        Data and error fields are kept as the capability produced them; a failed
        result never carries ``data`` and a successful one never carries error
        fields.
        """
        if self.is_success:
            return replace(
                self,
                capability_name=call.name,
                capability_version=version,
                call_id=call.call_id,
                execution_time_ms=max(0, elapsed_ms),
                error_message=None,
                error_code=None,
            )
        return replace(
            self,
            capability_name=call.name,
            capability_version=version,
            call_id=call.call_id,
            execution_time_ms=max(0, elapsed_ms),
            data=None,
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "capabilityName": self.capability_name,
            "capabilityVersion": self.capability_version,
            "callId": self.call_id,
            "isSuccess": self.is_success,
            "data": self.data,
            "executionTimeMs": self.execution_time_ms,
            "errorMessage": self.error_message,
            "errorCode": self.error_code,
            "recordCount": self.record_count,
            "dataSource": self.data_source,
        }


@dataclass(frozen=True, slots=True)
class OrchestrationResult:
    """Terminal aggregate for one orchestration run."""

    success: bool
    results: tuple[CapabilityResult, ...] = ()
    total_execution_time_ms: int = 0
    error: str | None = None
    status: OrchestrationStatus = "completed"
    group_count: int = 0
    metadata: Mapping[str, JSONValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.results, tuple):
            object.__setattr__(self, "results", tuple(self.results))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def all_succeeded(self) -> bool:
        return all(result.is_success for result in self.results)

    @property
    def total_records(self) -> int:
        return sum(
            result.record_count
            for result in self.results
            if result.record_count is not None
        )

    @property
    def failed_results(self) -> list[CapabilityResult]:
        return [result for result in self.results if not result.is_success]

    def to_dict(self) -> dict[str, JSONValue]:
        """Return a JSON-friendly snapshot including the derived fields."""
        return {
            "success": self.success,
            "status": self.status,
            "error": self.error,
            "totalExecutionTimeMs": self.total_execution_time_ms,
            "groupCount": self.group_count,
            "allSucceeded": self.all_succeeded,
            "totalRecords": self.total_records,
            "results": [result.to_dict() for result in self.results],
            "metadata": dict(self.metadata),
        }
