"""Directive evaluator: input DirectiveSet + request facts -> action plan.

  1. No action field in the input -> empty plan. Conditions alone mean
     nothing and are suppressed.
  2. Check every condition that is present against its fact. Absent
     conditions always hold.
  3. All hold -> the plan is the input's action fields. Any miss ->
     empty plan.

Comparisons ignore case. IP conditions compare as addresses when both
sides parse, so "2001:DB8::1" matches "2001:db8:0::1"; forwarded
entries that are not valid IPs fall back to text comparison.

Executing the plan (load, sleep, sized body, status) is not done here;
see reqscope.inspector.executor.

Thread safety: the evaluator only reads its HostIdentity, which is
immutable. One instance serves all worker threads.
"""
from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Callable

from reqscope.domain.directives import DirectiveSet
from reqscope.domain.host import HostIdentity
from reqscope.domain.request import RequestFacts


@dataclass(slots=True)
class EvaluationResult:
    """Outcome of evaluating one request's directives."""
    plan: DirectiveSet
    reason: str
    failed_conditions: list[str] = field(default_factory=list)

    @property
    def applies(self) -> bool:
        return self.plan.has_action


def _same_text(expected: str, actual: str) -> bool:
    return expected.casefold() == actual.casefold()


def _same_ip(expected: str, actual: str) -> bool:
    try:
        return ipaddress.ip_address(expected) == ipaddress.ip_address(actual)
    except ValueError:
        return _same_text(expected, actual)


class DirectiveEvaluator:
    """Decides whether a request's actions apply to it.

    Args:
        host: identity of this server, for the ifhostip/ifhost/ifaz conditions.
    """

    def __init__(self, host: HostIdentity) -> None:
        self._host = host
        # condition key -> predicate(expected, facts)
        self._checks: dict[str, Callable[[str, RequestFacts], bool]] = {
            "ifclientip": lambda v, f: _same_ip(v, f.client_ip),
            "ifproxy1ip": lambda v, f: _same_ip(v, f.proxy1_ip),
            "ifproxy2ip": lambda v, f: _same_ip(v, f.proxy2_ip),
            "iftargetip": lambda v, f: _same_ip(v, f.target_ip),
            "ifhostip": lambda v, f: any(_same_ip(v, a) for a in self._host.addresses()),
            "ifhost": lambda v, f: _same_text(v, self._host.name),
            "ifaz": lambda v, f: _same_text(v, self._host.az or ""),
        }

    @property
    def host(self) -> HostIdentity:
        return self._host

    def evaluate(self, directives: DirectiveSet, facts: RequestFacts) -> DirectiveSet:
        return self.explain(directives, facts).plan

    def explain(self, directives: DirectiveSet, facts: RequestFacts) -> EvaluationResult:
        """Same decision as evaluate(), with the reason behind it."""
        if not directives.has_action:
            return EvaluationResult(plan=DirectiveSet(), reason="no action requested")

        failed = [
            key
            for key, expected in directives.conditions().items()
            if not self._checks[key](expected, facts)
        ]
        if failed:
            return EvaluationResult(
                plan=DirectiveSet(),
                reason=f"conditions not met: {', '.join(failed)}",
                failed_conditions=failed,
            )
        return EvaluationResult(
            plan=DirectiveSet.from_actions(directives),
            reason="all conditions met",
        )
