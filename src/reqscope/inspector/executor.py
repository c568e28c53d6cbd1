"""Directive executor: the hook that would carry out an action plan.

The inspection service decides *whether* a request's actions apply; it
does not generate CPU or memory load, sleep, pad the response body or
override the status. Those effects belong to an executor plugged into
the responder. The shipped NoopExecutor only records the plan.
"""
from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from reqscope.domain.directives import DirectiveSet
from reqscope.domain.request import RequestFacts

log = logging.getLogger(__name__)


@runtime_checkable
class DirectiveExecutor(Protocol):
    def execute(self, plan: DirectiveSet, facts: RequestFacts) -> None:
        """Apply a non-empty plan for the request described by facts.

        Called synchronously on the handler thread, after evaluation and
        before the response is rendered.
        """
        ...


class NoopExecutor:
    """Executor that performs nothing and logs the plan at DEBUG."""

    def execute(self, plan: DirectiveSet, facts: RequestFacts) -> None:
        log.debug("Plan for %s %s: %s", facts.client_ip, facts.path, plan.to_dict())
