"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Level-order grouping of capability calls into execution waves.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ...errors import DependencyCycleError
from ...plan import CapabilityCall
from ...settings import DependencyPolicy

logger = logging.getLogger("capflow.grouping")


@dataclass(frozen=True, slots=True)
class ExecutionGroup:
    """One wave of calls that may run concurrently."""

    index: int
    calls: tuple[CapabilityCall, ...]
    # True for the best-effort wave emitted when dependencies cannot be met.
    unresolved: bool = False

    @property
    def names(self) -> list[str]:
        return [call.name for call in self.calls]

    def __len__(self) -> int:
        return len(self.calls)

    def __iter__(self):
        return iter(self.calls)


@dataclass(frozen=True, slots=True)
class DependencyAnomaly:
    """Calls whose dependencies could not be satisfied by earlier waves."""

    pending: tuple[str, ...]
    unmet: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def describe(self) -> str:
        parts = [f"{name} -> {', '.join(deps)}" for name, deps in self.unmet.items()]
        return "; ".join(parts)


@dataclass(frozen=True, slots=True)
class GroupingReport:
    groups: tuple[ExecutionGroup, ...]
    anomaly: DependencyAnomaly | None = None

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self):
        return iter(self.groups)


class ExecutionGrouper:
    """
    Partition calls into waves so every dependency lands in an earlier wave.

    Calls are first stable-sorted by ``order``. Each pass collects every
    remaining call whose ``depends_on`` names are all completed; that set is
    the next wave. If a pass finds nothing ready while calls remain, the plan
    has a cycle or names a dependency that is not in the plan. The
    ``best_effort`` policy emits all remaining calls as one final wave; the
    ``strict`` policy raises ``DependencyCycleError``.
    """

    def __init__(self, *, policy: DependencyPolicy = "best_effort") -> None:
        if policy not in ("best_effort", "strict"):
            raise ValueError(f"Unknown dependency policy: {policy!r}")
        self.policy = policy

    def build(self, calls: Sequence[CapabilityCall]) -> GroupingReport:
        remaining = sorted(calls, key=lambda call: call.order)
        completed: set[str] = set()
        groups: list[ExecutionGroup] = []

        while remaining:
            ready = [call for call in remaining if call.depends_on <= completed]
            if not ready:
                anomaly = _anomaly(remaining, completed)
                logger.warning(
                    "Circular or missing dependency detected. Remaining: %s (%s)",
                    ", ".join(anomaly.pending),
                    anomaly.describe(),
                )
                if self.policy == "strict":
                    raise DependencyCycleError(
                        "Unsatisfiable dependencies in plan: " + anomaly.describe(),
                        pending=list(anomaly.pending),
                    )
                groups.append(
                    ExecutionGroup(index=len(groups), calls=tuple(remaining), unresolved=True)
                )
                return GroupingReport(groups=tuple(groups), anomaly=anomaly)

            groups.append(ExecutionGroup(index=len(groups), calls=tuple(ready)))
            completed.update(call.name for call in ready)
            ready_ids = {id(call) for call in ready}
            remaining = [call for call in remaining if id(call) not in ready_ids]

        return GroupingReport(groups=tuple(groups))


def build_execution_groups(
    calls: Sequence[CapabilityCall],
    *,
    policy: DependencyPolicy = "best_effort",
) -> list[list[CapabilityCall]]:
    """Return waves as plain lists of calls."""
    report = ExecutionGrouper(policy=policy).build(calls)
    return [list(group.calls) for group in report.groups]


def _anomaly(remaining: list[CapabilityCall], completed: set[str]) -> DependencyAnomaly:
    return DependencyAnomaly(
        pending=tuple(call.name for call in remaining),
        unmet={
            call.name: tuple(sorted(call.depends_on - completed)) for call in remaining
        },
    )
