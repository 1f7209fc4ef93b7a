"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Capability contract and base class for concrete capabilities.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from ..results import CapabilityResult
from ..types import JSONValue
from .cancellation import CancellationToken

ModelT = TypeVar("ModelT", bound=BaseModel)


class SubscriptionTier(IntEnum):
    """Ordered subscription tiers gating capability access."""

    FREE = 0
    PROFESSIONAL = 1
    ENTERPRISE = 2

    @classmethod
    def parse(cls, value: "SubscriptionTier | str | int") -> "SubscriptionTier":
        if isinstance(value, SubscriptionTier):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[str(value).strip().upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown subscription tier: {value!r}") from exc


@runtime_checkable
class Capability(Protocol):
    """Contract implemented by every executable capability."""

    @property
    def name(self) -> str: ...

    @property
    def version(self) -> str: ...

    async def execute(
        self,
        tenant_id: int,
        parameters: JSONValue | None,
        cancellation: CancellationToken,
    ) -> CapabilityResult:
        """Run the capability and return its outcome.

        Expected domain failures should be returned as unsuccessful results;
        unexpected exceptions are tolerated and converted by the orchestrator.
        """
        ...


@dataclass(frozen=True, slots=True)
class CapabilityParameter:
    """Planner-facing description of one capability parameter."""

    name: str
    type: str
    description: str = ""
    required: bool = False
    default: JSONValue | None = None


@dataclass(frozen=True, slots=True)
class CapabilityInfo:
    """Catalogue entry describing a capability and its versions."""

    name: str
    active_version: str
    versions: tuple[str, ...]
    description: str = ""
    category: str = ""
    required_tier: SubscriptionTier = SubscriptionTier.FREE
    parameters: tuple[CapabilityParameter, ...] = ()
    example_queries: tuple[str, ...] = ()
    deprecated: bool = False
    deprecation_note: str | None = None


@dataclass(frozen=True, slots=True)
class ParameterValidation:
    """Outcome of validating a call's parameters against a capability."""

    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def success(cls, *warnings: str) -> "ParameterValidation":
        return cls(is_valid=True, warnings=tuple(warnings))

    @classmethod
    def failure(cls, *errors: str) -> "ParameterValidation":
        return cls(is_valid=False, errors=tuple(errors))


class BaseCapability(ABC):
    """
    Convenience base class for capabilities.

    Subclasses declare identity and catalogue metadata as class attributes and
    implement ``execute``. When ``parameters_model`` is set, parameters are
    validated and parsed with that pydantic model and the planner-facing
    parameter list is derived from its JSON schema.
    """

    name: ClassVar[str]
    version: ClassVar[str] = "v1"
    description: ClassVar[str] = ""
    category: ClassVar[str] = "general"
    required_tier: ClassVar[SubscriptionTier] = SubscriptionTier.FREE
    parameters_model: ClassVar[type[BaseModel] | None] = None
    example_queries: ClassVar[tuple[str, ...]] = ()
    deprecated: ClassVar[bool] = False
    deprecation_note: ClassVar[str | None] = None

    @abstractmethod
    async def execute(
        self,
        tenant_id: int,
        parameters: JSONValue | None,
        cancellation: CancellationToken,
    ) -> CapabilityResult:
        raise NotImplementedError

    # ''''''''''''''''''''''''
    # Parameters
    # ''''''''''''''''''''''''

    def validate_parameters(self, parameters: JSONValue | None) -> ParameterValidation:
        model = self.parameters_model
        if model is None:
            return ParameterValidation.success()
        try:
            model.model_validate(_as_object(parameters))
        except TypeError as exc:
            return ParameterValidation.failure(f"parameters: {exc}")
        except ValidationError as exc:
            return ParameterValidation.failure(*_format_validation_errors(exc))
        return ParameterValidation.success()

    def parse_parameters(self, parameters: JSONValue | None) -> BaseModel:
        """Parse parameters with ``parameters_model``; raises pydantic ``ValidationError``."""
        model = self.parameters_model
        if model is None:
            raise TypeError(f"Capability '{self.name}' declares no parameters_model")
        return model.model_validate(_as_object(parameters))

    def get_parameter(
        self,
        parameters: JSONValue | None,
        key: str,
        default: Any = None,
    ) -> Any:
        if not isinstance(parameters, dict):
            return default
        value = parameters.get(key)
        return default if value is None else value

    def parameter_specs(self) -> tuple[CapabilityParameter, ...]:
        model = self.parameters_model
        if model is None:
            return ()
        schema = model.model_json_schema()
        required = set(schema.get("required", []))
        specs: list[CapabilityParameter] = []
        for key, prop in schema.get("properties", {}).items():
            specs.append(
                CapabilityParameter(
                    name=key,
                    type=_schema_type(prop),
                    description=str(prop.get("description", "")),
                    required=key in required,
                    default=prop.get("default"),
                )
            )
        return tuple(specs)

    # ''''''''''''''''''''''''
    # Results
    # ''''''''''''''''''''''''

    def success_result(
        self,
        data: JSONValue | None,
        *,
        record_count: int | None = None,
        data_source: str = "real",
        started_at: float | None = None,
    ) -> CapabilityResult:
        return CapabilityResult.ok(
            self.name,
            data,
            capability_version=self.version,
            execution_time_ms=_elapsed_ms(started_at),
            record_count=record_count,
            data_source=data_source,
        )

    def error_result(
        self,
        message: str,
        code: str | None = None,
        *,
        started_at: float | None = None,
    ) -> CapabilityResult:
        return CapabilityResult.failure(
            self.name,
            message,
            error_code=code,
            capability_version=self.version,
            execution_time_ms=_elapsed_ms(started_at),
        )

    def info(self) -> CapabilityInfo:
        return CapabilityInfo(
            name=self.name,
            active_version=self.version,
            versions=(self.version,),
            description=self.description,
            category=self.category,
            required_tier=self.required_tier,
            parameters=self.parameter_specs(),
            example_queries=tuple(self.example_queries),
            deprecated=self.deprecated,
            deprecation_note=self.deprecation_note,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, version={self.version!r})"


def describe(capability: Capability) -> CapabilityInfo:
    """Return catalogue info for any capability, including bare protocol ones."""
    if isinstance(capability, BaseCapability):
        return capability.info()
    return CapabilityInfo(
        name=capability.name,
        active_version=capability.version,
        versions=(capability.version,),
        description=str(getattr(capability, "description", "")),
        category=str(getattr(capability, "category", "general")),
        required_tier=SubscriptionTier.parse(
            getattr(capability, "required_tier", SubscriptionTier.FREE)
        ),
    )


def _as_object(parameters: JSONValue | None) -> dict[str, Any]:
    if parameters is None:
        return {}
    if isinstance(parameters, dict):
        return parameters
    raise TypeError("Capability parameters must be a JSON object")


def _format_validation_errors(exc: ValidationError) -> list[str]:
    rows: list[str] = []
    for item in exc.errors():
        loc = ".".join(str(part) for part in item.get("loc", ())) or "parameters"
        rows.append(f"{loc}: {item.get('msg', 'invalid value')}")
    return rows


def _schema_type(prop: dict[str, Any]) -> str:
    if "type" in prop:
        return str(prop["type"])
    options = prop.get("anyOf") or prop.get("oneOf") or []
    kinds = [str(row["type"]) for row in options if "type" in row and row["type"] != "null"]
    return "|".join(kinds) if kinds else "object"


def _elapsed_ms(started_at: float | None) -> int:
    if started_at is None:
        return 0
    return int((time.perf_counter() - started_at) * 1000)
