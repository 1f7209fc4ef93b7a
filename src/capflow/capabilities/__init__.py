"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Capability contract, cancellation signal, and the versioned registry.
"""

from .base import (
    BaseCapability,
    Capability,
    CapabilityInfo,
    CapabilityParameter,
    ParameterValidation,
    SubscriptionTier,
    describe,
)
from .cancellation import CancellationToken
from .registry import CapabilityRegistry, version_sort_key

__all__ = [
    "Capability",
    "BaseCapability",
    "CapabilityInfo",
    "CapabilityParameter",
    "ParameterValidation",
    "SubscriptionTier",
    "describe",
    "CancellationToken",
    "CapabilityRegistry",
    "version_sort_key",
]
