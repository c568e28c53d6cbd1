"""DirectiveSet: the structured form of a request's query-string directives.

Two kinds of field:
  - Actions (cpu, memory, sleep, size, status) describe what the request
    asks the server to do.
  - Conditions (ifclientip, ifproxy1ip, ifproxy2ip, iftargetip, ifhostip,
    ifhost, ifaz) restrict which requests the actions apply to.

Values are stored exactly as they passed validation (e.g. "50",
"100-200"); typed accessors parse them on demand. A DirectiveSet never
holds a value that failed its validator, because the validator is the
only writer besides the evaluator, which copies already-valid values.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Iterator

from reqscope.domain.types import DirectiveKind

CONDITION_PREFIX = "if"

ACTION_KEYS: tuple[str, ...] = ("cpu", "memory", "sleep", "size", "status")
CONDITION_KEYS: tuple[str, ...] = (
    "ifclientip",
    "ifproxy1ip",
    "ifproxy2ip",
    "iftargetip",
    "ifhostip",
    "ifhost",
    "ifaz",
)
DIRECTIVE_KEYS: tuple[str, ...] = ACTION_KEYS + CONDITION_KEYS

_MAX_DIGITS = len(str(sys.maxsize))


def digits_key(digits: str) -> tuple[int, str]:
    """Sort key for a non-negative decimal string of any length.

    Orders like int(digits) without converting, so arbitrarily long
    digit runs never hit the interpreter's int conversion limit.
    """
    stripped = digits.lstrip("0") or "0"
    return len(stripped), stripped


def saturating_int(digits: str) -> int:
    """int(digits), capped at sys.maxsize."""
    length, stripped = digits_key(digits)
    if length > _MAX_DIGITS:
        return sys.maxsize
    return min(int(stripped), sys.maxsize)


def directive_kind(key: str) -> DirectiveKind:
    """Keys starting with the condition prefix are conditions; the rest are actions."""
    if key.startswith(CONDITION_PREFIX):
        return DirectiveKind.CONDITION
    return DirectiveKind.ACTION


@dataclass(frozen=True, slots=True)
class NumericRange:
    """Inclusive integer range parsed from "n" or "low-high".

    Bounds saturate at sys.maxsize; the validator accepts digit runs of
    any length.
    """
    low: int
    high: int

    @classmethod
    def parse(cls, text: str) -> NumericRange:
        low, sep, high = text.partition("-")
        if not sep:
            n = saturating_int(low)
            return cls(n, n)
        return cls(saturating_int(low), saturating_int(high))

    @property
    def is_fixed(self) -> bool:
        return self.low == self.high


@dataclass(slots=True)
class DirectiveSet:
    # actions
    cpu: str | None = None
    memory: str | None = None
    sleep: str | None = None
    size: str | None = None
    status: str | None = None
    # conditions
    ifclientip: str | None = None
    ifproxy1ip: str | None = None
    ifproxy2ip: str | None = None
    iftargetip: str | None = None
    ifhostip: str | None = None
    ifhost: str | None = None
    ifaz: str | None = None

    has_action: bool = False

    def set(self, key: str, value: str) -> None:
        """Store a validated value under its query key.

        Raises:
            KeyError: if key is not a directive key.
        """
        if key not in DIRECTIVE_KEYS:
            raise KeyError(f"Unknown directive key: {key}")
        setattr(self, key, value)
        if directive_kind(key) is DirectiveKind.ACTION:
            self.has_action = True

    def get(self, key: str) -> str | None:
        if key not in DIRECTIVE_KEYS:
            raise KeyError(f"Unknown directive key: {key}")
        return getattr(self, key)

    def items(self) -> Iterator[tuple[str, str]]:
        """(key, value) pairs of the fields that are set, in schema order."""
        for key in DIRECTIVE_KEYS:
            value = getattr(self, key)
            if value:
                yield key, value

    def actions(self) -> dict[str, str]:
        return {k: v for k, v in self.items() if directive_kind(k) is DirectiveKind.ACTION}

    def conditions(self) -> dict[str, str]:
        return {k: v for k, v in self.items() if directive_kind(k) is DirectiveKind.CONDITION}

    def is_empty(self) -> bool:
        return next(self.items(), None) is None

    @classmethod
    def from_actions(cls, source: DirectiveSet) -> DirectiveSet:
        """A new set carrying only source's action fields."""
        out = cls()
        for key, value in source.actions().items():
            out.set(key, value)
        return out

    # --- typed views ---

    @property
    def cpu_percent(self) -> int | None:
        return int(self.cpu) if self.cpu else None

    @property
    def memory_percent(self) -> int | None:
        return int(self.memory) if self.memory else None

    @property
    def sleep_range(self) -> NumericRange | None:
        return NumericRange.parse(self.sleep) if self.sleep else None

    @property
    def size_range(self) -> NumericRange | None:
        return NumericRange.parse(self.size) if self.size else None

    @property
    def status_code(self) -> int | None:
        return int(self.status) if self.status else None

    def to_dict(self) -> dict[str, Any]:
        """JSON form: set fields only, keyed by query name."""
        return dict(self.items())
