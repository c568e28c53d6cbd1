"""Directive validator: query-string parameters -> DirectiveSet.

Every recognised key has one entry in VALIDATOR_TABLE: its kind (action
or condition) and a predicate its value must satisfy. For each query
key the validator:
  1. joins repeated values with ", " (the same way headers are joined)
  2. ignores the key if it is not in the table
  3. stores the joined value if the predicate accepts it, otherwise
     drops it with a debug log line

Fields are independent, so the result does not depend on the order in
which keys are visited.

| key        | accepts                                   |
|------------|-------------------------------------------|
| cpu        | integer 0-100                             |
| memory     | integer 0-100                             |
| sleep      | "n" or "low-high", non-negative, low<=high|
| size       | "n" or "low-high", non-negative, low<=high|
| status     | 200 400 403 404 500 502 503 504           |
| ifhost     | letters, digits, "." and "-"              |
| ifaz       | e.g. "ap-northeast-1a"                    |
| if*ip      | IPv4 or IPv6 literal                      |
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Sequence
from urllib.parse import parse_qs

from reqscope.domain.directives import DirectiveSet, digits_key, directive_kind
from reqscope.domain.types import DirectiveKind
from reqscope.inspector.resolver import is_ip_literal

log = logging.getLogger(__name__)

_PERCENT = re.compile(r"100|[0-9]{1,2}")
_NUM_RANGE = re.compile(r"([0-9]+)(?:-([0-9]+))?")
_HOSTNAME = re.compile(r"[a-zA-Z0-9.-]+")
_AZONE = re.compile(r"[a-z]{2}-[a-z]+-[1-9][a-d]")

ALLOWED_STATUS: frozenset[str] = frozenset(
    {"200", "400", "403", "404", "500", "502", "503", "504"}
)


def is_percent(value: str) -> bool:
    return _PERCENT.fullmatch(value) is not None


def is_num_range(value: str) -> bool:
    m = _NUM_RANGE.fullmatch(value)
    if m is None:
        return False
    low, high = m.group(1), m.group(2)
    return high is None or digits_key(low) <= digits_key(high)


def is_status(value: str) -> bool:
    return value in ALLOWED_STATUS


def is_hostname(value: str) -> bool:
    return _HOSTNAME.fullmatch(value) is not None


def is_availability_zone(value: str) -> bool:
    return _AZONE.fullmatch(value) is not None


@dataclass(frozen=True, slots=True)
class DirectiveField:
    key: str
    kind: DirectiveKind
    check: Callable[[str], bool]

    def accepts(self, value: str) -> bool:
        return self.check(value)


def _field(key: str, check: Callable[[str], bool]) -> tuple[str, DirectiveField]:
    return key, DirectiveField(key=key, kind=directive_kind(key), check=check)


VALIDATOR_TABLE: Mapping[str, DirectiveField] = MappingProxyType(dict([
    _field("cpu", is_percent),
    _field("memory", is_percent),
    _field("sleep", is_num_range),
    _field("size", is_num_range),
    _field("status", is_status),
    _field("ifclientip", is_ip_literal),
    _field("ifproxy1ip", is_ip_literal),
    _field("ifproxy2ip", is_ip_literal),
    _field("iftargetip", is_ip_literal),
    _field("ifhostip", is_ip_literal),
    _field("ifhost", is_hostname),
    _field("ifaz", is_availability_zone),
]))


def parse_query(query: str) -> dict[str, list[str]]:
    """Raw query string -> {key: [values...]}, blank values kept."""
    return parse_qs(query, keep_blank_values=True)


class DirectiveValidator:
    """Builds validated DirectiveSets. Stateless, safe to share.

    Args:
        table: key -> DirectiveField mapping (default VALIDATOR_TABLE).
    """

    def __init__(self, table: Mapping[str, DirectiveField] = VALIDATOR_TABLE) -> None:
        self._table = table

    @property
    def table(self) -> Mapping[str, DirectiveField]:
        return self._table

    def validate(self, params: Mapping[str, Sequence[str]]) -> DirectiveSet:
        directives = DirectiveSet()
        for key, values in params.items():
            field = self._table.get(key)
            if field is None:
                continue
            value = ", ".join(values)
            if field.accepts(value):
                directives.set(key, value)
                log.debug("  valid %s = %s", key, value)
            else:
                log.debug("invalid %s = %s", key, value)
        return directives

    def validate_query(self, query: str) -> DirectiveSet:
        return self.validate(parse_query(query))
