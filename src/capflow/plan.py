"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Query plan contracts: capability calls and the ordered plan that holds them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import PlanFormatError
from .types import JSONValue

DEFAULT_VERSION = "v1"


class QueryIntent(str, Enum):
    """Intent assigned to a plan by the planner."""

    DESCRIPTIVE = "descriptive"
    DIAGNOSTIC = "diagnostic"
    COMPARATIVE = "comparative"
    PREDICTIVE = "predictive"
    OUT_OF_SCOPE = "out_of_scope"


@dataclass(frozen=True, slots=True)
class CapabilityCall:
    """One requested capability invocation inside a plan."""

    name: str
    version: str | None = DEFAULT_VERSION
    parameters: JSONValue | None = None
    order: int = 0
    depends_on: frozenset[str] = field(default_factory=frozenset)
    call_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("CapabilityCall.name must be a non-empty string")
        deps = self.depends_on
        if deps is None:
            deps = frozenset()
        elif isinstance(deps, str):
            deps = frozenset({deps})
        elif not isinstance(deps, frozenset):
            deps = frozenset(deps)
        object.__setattr__(self, "depends_on", deps)

    @property
    def requested_version(self) -> str | None:
        """Return the exact version requested, or ``None`` for "latest"."""
        if self.version is None:
            return None
        version = self.version.strip()
        return version or None

    @property
    def label(self) -> str:
        return f"{self.name}@{self.requested_version or 'latest'}"


@dataclass(frozen=True, slots=True)
class QueryPlan:
    """Ordered, immutable collection of capability calls.

    Planner metadata (intent, confidence, hints) travels with the plan for the
    benefit of validators and renderers; the orchestrator reads ``calls`` only.
    """

    calls: tuple[CapabilityCall, ...] = ()
    original_query: str = ""
    intent: QueryIntent = QueryIntent.DESCRIPTIVE
    confidence: float = 1.0
    aggregation_hint: str | None = None
    planner_notes: str | None = None
    requires_upgrade: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.calls, tuple):
            object.__setattr__(self, "calls", tuple(self.calls))
        if not isinstance(self.intent, QueryIntent):
            object.__setattr__(self, "intent", QueryIntent(self.intent))

    def __len__(self) -> int:
        return len(self.calls)

    @property
    def names(self) -> list[str]:
        return [call.name for call in self.calls]

    @classmethod
    def of(cls, calls: Iterable[CapabilityCall], **metadata: Any) -> "QueryPlan":
        """Build a plan from any iterable of calls."""
        return cls(calls=tuple(calls), **metadata)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "QueryPlan":
        """
        Build a plan from the planner's JSON payload.

        Accepts the camelCase keys emitted by the planner (``capabilities``,
        ``dependsOn``, ``callId``, ...) as well as snake_case equivalents.

        Raises:
            PlanFormatError: If the payload shape is invalid.
        """
        if not isinstance(payload, Mapping):
            raise PlanFormatError("Plan payload must be a JSON object")

        raw_calls = _pick(payload, "capabilities", "calls", default=[])
        if raw_calls is None:
            raw_calls = []
        if not isinstance(raw_calls, Sequence) or isinstance(raw_calls, (str, bytes)):
            raise PlanFormatError("Plan 'capabilities' must be a list")

        calls = [_call_from_payload(row, index) for index, row in enumerate(raw_calls)]

        intent_raw = _pick(payload, "intent", default=QueryIntent.DESCRIPTIVE.value)
        try:
            intent = _parse_intent(intent_raw)
        except ValueError as exc:
            raise PlanFormatError(f"Unknown plan intent: {intent_raw!r}") from exc

        confidence_raw = _pick(payload, "confidence", default=1.0)
        try:
            confidence = float(confidence_raw)
        except (TypeError, ValueError) as exc:
            raise PlanFormatError(
                f"Plan confidence must be numeric, got {confidence_raw!r}"
            ) from exc

        return cls(
            calls=tuple(calls),
            original_query=str(_pick(payload, "originalQuery", "original_query", default="")),
            intent=intent,
            confidence=confidence,
            aggregation_hint=_pick(payload, "aggregationHint", "aggregation_hint"),
            planner_notes=_pick(payload, "plannerNotes", "planner_notes"),
            requires_upgrade=bool(
                _pick(payload, "requiresUpgrade", "requires_upgrade", default=False)
            ),
        )


def _pick(payload: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return default


_INTENT_ALIASES = {
    "outofscope": QueryIntent.OUT_OF_SCOPE,
    "out_of_scope": QueryIntent.OUT_OF_SCOPE,
}


def _parse_intent(value: Any) -> QueryIntent:
    if isinstance(value, QueryIntent):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        # Planner enum ordinals.
        ordinals = {
            0: QueryIntent.DESCRIPTIVE,
            1: QueryIntent.DIAGNOSTIC,
            2: QueryIntent.COMPARATIVE,
            3: QueryIntent.PREDICTIVE,
            99: QueryIntent.OUT_OF_SCOPE,
        }
        if value in ordinals:
            return ordinals[value]
        raise ValueError(value)
    normalized = str(value).strip().lower()
    if normalized in _INTENT_ALIASES:
        return _INTENT_ALIASES[normalized]
    return QueryIntent(normalized)


def _call_from_payload(row: Any, index: int) -> CapabilityCall:
    if not isinstance(row, Mapping):
        raise PlanFormatError(f"Capability call #{index} must be a JSON object")

    name = row.get("name")
    if not isinstance(name, str) or not name.strip():
        raise PlanFormatError(f"Capability call #{index} is missing 'name'")

    depends_on = _pick(row, "dependsOn", "depends_on", default=None)
    if depends_on is None:
        depends_on = []
    if isinstance(depends_on, str) or not isinstance(depends_on, Sequence):
        raise PlanFormatError(
            f"Capability call '{name}' has invalid 'dependsOn'; expected a list of names"
        )

    order = row.get("order", 0)
    if isinstance(order, bool) or not isinstance(order, int):
        raise PlanFormatError(f"Capability call '{name}' has non-integer 'order'")

    version = row.get("version", DEFAULT_VERSION)
    if version is not None and not isinstance(version, str):
        raise PlanFormatError(f"Capability call '{name}' has non-string 'version'")

    call_id = _pick(row, "callId", "call_id")
    return CapabilityCall(
        name=name,
        version=version,
        parameters=row.get("parameters"),
        order=order,
        depends_on=frozenset(str(dep) for dep in depends_on),
        call_id=None if call_id is None else str(call_id),
    )
