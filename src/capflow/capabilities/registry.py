"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module implements the CapabilityRegistry for capflow.
It stores capabilities by (name, version), resolves "latest" when no version
is requested, supports optional entry-point plugin discovery, and renders the
capability catalogue for planners.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from importlib import metadata as importlib_metadata
from threading import RLock

from ..errors import CapabilityAlreadyRegisteredError, CapabilityRegistryError
from .base import Capability, CapabilityInfo, SubscriptionTier, describe

logger = logging.getLogger("capflow.registry")

_VERSION_PART = re.compile(r"(\d+)")


def version_sort_key(version: str) -> tuple[tuple[int, int | str], ...]:
    """Natural ordering for version labels (``v2`` < ``v10`` < ``v10.1``)."""
    parts: list[tuple[int, int | str]] = []
    for chunk in _VERSION_PART.split(version.strip().lower()):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((1, int(chunk)))
        else:
            parts.append((0, chunk))
    return tuple(parts)


class CapabilityRegistry:
    """
    Stores capabilities keyed by name, then version.

    Lookups are safe for concurrent readers; registration takes the same lock
    so a registry may be shared by concurrent orchestrations.
    """

    def __init__(self, capabilities: Iterable[Capability] | None = None) -> None:
        self._capabilities: dict[str, dict[str, Capability]] = {}
        self._lock = RLock()
        if capabilities is not None:
            self.register_many(capabilities)

    # ''''''''''''''''''''''''
    # Registration / discovery
    # ''''''''''''''''''''''''

    def register(self, capability: Capability, *, overwrite: bool = False) -> None:
        name = str(capability.name).strip()
        version = str(capability.version).strip()
        if not name:
            raise CapabilityRegistryError("Capability name must be non-empty")
        if not version:
            raise CapabilityRegistryError(f"Capability '{name}' must declare a version")

        with self._lock:
            versions = self._capabilities.setdefault(name, {})
            if version in versions and not overwrite:
                raise CapabilityAlreadyRegisteredError(
                    f"Capability already registered: {name}@{version}"
                )
            versions[version] = capability
        logger.info("Registered capability: %s %s", name, version)

    def register_many(
        self, capabilities: Iterable[Capability], *, overwrite: bool = False
    ) -> None:
        for capability in capabilities:
            self.register(capability, overwrite=overwrite)

    def unregister(self, name: str, version: str | None = None) -> None:
        with self._lock:
            if version is None:
                self._capabilities.pop(name, None)
                return
            versions = self._capabilities.get(name)
            if versions is None:
                return
            versions.pop(version, None)
            if not versions:
                self._capabilities.pop(name, None)

    def load_plugins(
        self,
        *,
        entry_point_group: str = "capflow.capabilities",
        overwrite: bool = False,
    ) -> int:
        """
        Load capabilities (or factories returning one) from Python entry points.

        Plugin pyproject.toml example:
          [project.entry-points."capflow.capabilities"]
          get_sales = "my_pkg.capabilities:GetSalesCapability"

        Returns number of capabilities loaded.
        """
        loaded = 0
        for ep in importlib_metadata.entry_points(group=entry_point_group):
            obj = ep.load()
            candidate = obj
            # Classes satisfy the protocol structurally; register an instance.
            if isinstance(obj, type) or (
                not isinstance(obj, Capability) and callable(obj)
            ):
                candidate = obj()
            if not isinstance(candidate, Capability):
                logger.warning(
                    "Entry point %s did not provide a capability; skipped", ep.name
                )
                continue
            self.register(candidate, overwrite=overwrite)
            loaded += 1
        return loaded

    # ''''''
    # Lookup
    # ''''''

    def resolve(self, name: str, version: str | None = None) -> Capability | None:
        """
        Resolve a capability by name and version.

        An empty or missing ``version`` resolves to the latest registered
        version. A miss returns ``None``; callers treat it as a normal outcome.
        """
        requested = (version or "").strip()
        with self._lock:
            versions = self._capabilities.get(name)
            if not versions:
                logger.warning("Capability not found: %s", name)
                return None
            if not requested:
                return versions[max(versions, key=version_sort_key)]
            capability = versions.get(requested)
        if capability is None:
            logger.warning("Capability version not found: %s %s", name, requested)
        return capability

    def latest_version(self, name: str) -> str | None:
        with self._lock:
            versions = self._capabilities.get(name)
            if not versions:
                return None
            return max(versions, key=version_sort_key)

    def versions(self, name: str) -> list[str]:
        with self._lock:
            return sorted(self._capabilities.get(name, {}), key=version_sort_key)

    def has(self, name: str, version: str | None = None) -> bool:
        with self._lock:
            versions = self._capabilities.get(name)
            if not versions:
                return False
            return not version or version in versions

    def names(self) -> list[str]:
        with self._lock:
            return list(self._capabilities.keys())

    def list_latest(self) -> list[Capability]:
        """Return the latest version of every registered capability."""
        with self._lock:
            return [
                versions[max(versions, key=version_sort_key)]
                for versions in self._capabilities.values()
                if versions
            ]

    def for_tier(self, tier: SubscriptionTier | str | int) -> list[Capability]:
        allowed = SubscriptionTier.parse(tier)
        return [
            capability
            for capability in self.list_latest()
            if describe(capability).required_tier <= allowed
        ]

    def by_category(self, category: str) -> list[Capability]:
        wanted = category.strip().lower()
        return [
            capability
            for capability in self.list_latest()
            if describe(capability).category.lower() == wanted
        ]

    def infos(self) -> list[CapabilityInfo]:
        rows: list[CapabilityInfo] = []
        for capability in self.list_latest():
            info = describe(capability)
            versions = tuple(self.versions(info.name))
            rows.append(
                CapabilityInfo(
                    name=info.name,
                    active_version=info.active_version,
                    versions=versions,
                    description=info.description,
                    category=info.category,
                    required_tier=info.required_tier,
                    parameters=info.parameters,
                    example_queries=info.example_queries,
                    deprecated=info.deprecated,
                    deprecation_note=info.deprecation_note,
                )
            )
        rows.sort(key=lambda row: (row.category, row.name))
        return rows

    def describe_for_prompt(self) -> str:
        """Render the capability catalogue as planner prompt text."""
        lines = ["Available Capabilities:", ""]
        current_category: str | None = None
        for info in self.infos():
            if info.category != current_category:
                current_category = info.category
                lines.append(f"## {info.category}")
                lines.append("")
            lines.append(f"### {info.name} ({info.active_version})")
            lines.append(f"Description: {info.description}")
            if info.deprecated:
                note = f": {info.deprecation_note}" if info.deprecation_note else ""
                lines.append(f"Deprecated{note}")
            lines.append("Parameters:")
            for param in info.parameters:
                required = "(required)" if param.required else "(optional)"
                default = f", default: {param.default}" if param.default is not None else ""
                lines.append(
                    f"  - {param.name}: {param.type} {required}{default} - {param.description}"
                )
            if info.example_queries:
                lines.append("Example queries:")
                for example in info.example_queries:
                    lines.append(f'  - "{example}"')
            lines.append("")
        return "\n".join(lines)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(versions) for versions in self._capabilities.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)
