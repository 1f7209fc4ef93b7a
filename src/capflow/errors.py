"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Exception hierarchy for capflow.

Failures that belong to a single capability call are never raised; they are
returned as failed ``CapabilityResult`` rows. The exceptions below cover
programming errors, configuration errors, and orchestration-level control
flow.
"""

from __future__ import annotations


class CapflowError(Exception):
    """Base class for all capflow errors."""


class PlanFormatError(CapflowError, ValueError):
    """Raised when a planner payload cannot be converted into a ``QueryPlan``."""


class CapabilityRegistryError(CapflowError):
    """Raised when capability registration fails."""


class CapabilityAlreadyRegisteredError(CapabilityRegistryError):
    """Raised when a (name, version) pair is registered twice."""


class DependencyCycleError(CapflowError):
    """Raised by the strict grouping policy on cycles or dangling dependencies."""

    code = "DEPENDENCY_CYCLE"

    def __init__(self, message: str, *, pending: list[str]) -> None:
        super().__init__(message)
        self.pending = pending


class OperationCancelledError(CapflowError):
    """Raised when a cancellation token has been triggered."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or "Operation was cancelled")
        self.reason = reason


class SettingsError(CapflowError, ValueError):
    """Raised when orchestrator settings cannot be loaded."""
