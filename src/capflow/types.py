"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Opaque structured-value aliases passed through the orchestrator untouched.
"""

from __future__ import annotations

from typing import TypeAlias

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]
