"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Orchestrator settings and explicit environment loading.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

from .errors import SettingsError

DependencyPolicy = Literal["best_effort", "strict"]

_POLICIES: tuple[DependencyPolicy, ...] = ("best_effort", "strict")


@dataclass(frozen=True, slots=True)
class OrchestratorSettings:
    """Explicit settings used by the orchestration runtime."""

    # None runs every call of a group at once.
    max_parallelism: int | None = None
    dependency_policy: DependencyPolicy = "best_effort"
    telemetry_backend: str = "null"
    low_confidence_threshold: float = 0.7

    def __post_init__(self) -> None:
        if self.max_parallelism is not None and self.max_parallelism < 1:
            raise SettingsError("max_parallelism must be >= 1 or None")
        if self.dependency_policy not in _POLICIES:
            raise SettingsError(
                f"dependency_policy must be one of {', '.join(_POLICIES)}; "
                f"got {self.dependency_policy!r}"
            )
        if not 0.0 <= self.low_confidence_threshold <= 1.0:
            raise SettingsError("low_confidence_threshold must be within [0, 1]")

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "OrchestratorSettings":
        """Load settings from environment variables."""
        env = os.environ if environ is None else environ
        try:
            parallelism = int(env.get("CAPFLOW_MAX_PARALLELISM", "0"))
            threshold = float(env.get("CAPFLOW_LOW_CONFIDENCE_THRESHOLD", "0.7"))
        except ValueError as exc:
            raise SettingsError(f"Invalid numeric capflow setting: {exc}") from exc
        policy = env.get("CAPFLOW_DEPENDENCY_POLICY", "best_effort").strip().lower()
        return OrchestratorSettings(
            max_parallelism=parallelism if parallelism > 0 else None,
            dependency_policy=policy,  # type: ignore[arg-type]
            telemetry_backend=env.get("CAPFLOW_TELEMETRY_BACKEND", "null").strip() or "null",
            low_confidence_threshold=threshold,
        )
