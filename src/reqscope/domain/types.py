"""Shared type aliases and enums used across the domain."""
from __future__ import annotations

from enum import Enum
from typing import TypeAlias

IPText: TypeAlias = str          # IP literal as seen on the wire, may be empty
Percent: TypeAlias = float       # 0.0 - 100.0
HeaderMap: TypeAlias = dict[str, str]
QueryParams: TypeAlias = dict[str, list[str]]


class ResourceKind(Enum):
    CPU = "cpu"
    MEMORY = "memory"

    @classmethod
    def parse(cls, name: str) -> ResourceKind:
        """Look up a kind by its JSON name ("cpu", "memory"), case-insensitive."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ValueError(f"Unknown resource kind {name!r}, expected one of: {valid}") from None


class DirectiveKind(Enum):
    ACTION = "action"
    CONDITION = "condition"
