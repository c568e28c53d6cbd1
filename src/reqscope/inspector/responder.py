"""Inspection responder: runs the per-request pipeline and renders the report.

Per request:
  1. resolve the IP chain                     (ClientChainResolver)
  2. validate the query string                (DirectiveValidator)
  3. evaluate directives into an action plan  (DirectiveEvaluator)
  4. hand a non-empty plan to the executor    (DirectiveExecutor)
  5. snapshot resource state                  (ResourceRegistry, read-only)

The rendered document is pretty-printed JSON wrapped in newlines:

    {
      "host":      {"name", "ip", ...},
      "resource":  {"cpu": {"target", "current"}, "memory": {...}},
      "request":   {"path", "querystring", "header", "clientip", ...},
      "direction": {"input": {...}, "process": {...}}
    }
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from reqscope.domain.directives import DirectiveSet
from reqscope.domain.host import HostIdentity
from reqscope.domain.request import InboundRequest, RequestFacts, join_headers
from reqscope.inspector.evaluator import DirectiveEvaluator
from reqscope.inspector.executor import DirectiveExecutor, NoopExecutor
from reqscope.inspector.resolver import FORWARDED_FOR, ClientChainResolver
from reqscope.inspector.validator import DirectiveValidator
from reqscope.resources.registry import ResourceRegistry, ResourceSnapshot

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InspectionReport:
    host: HostIdentity
    resources: ResourceSnapshot
    facts: RequestFacts
    input: DirectiveSet
    process: DirectiveSet

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host.to_dict(),
            "resource": self.resources.to_dict(),
            "request": self.facts.to_dict(),
            "direction": {
                "input": self.input.to_dict(),
                "process": self.process.to_dict(),
            },
        }


def render(report: InspectionReport) -> str:
    return "\n" + json.dumps(report.to_dict(), indent=2) + "\n"


class InspectionResponder:
    """Turns an InboundRequest into an InspectionReport.

    Holds only shared, read-mostly collaborators: the registry is read
    through its locked accessors and never written here.

    Args:
        host: this server's identity.
        registry: shared resource state.
        resolver / validator / evaluator / executor: pipeline stages;
            defaults are built from host where needed.
    """

    def __init__(
        self,
        host: HostIdentity,
        registry: ResourceRegistry,
        resolver: ClientChainResolver | None = None,
        validator: DirectiveValidator | None = None,
        evaluator: DirectiveEvaluator | None = None,
        executor: DirectiveExecutor | None = None,
    ) -> None:
        self._host = host
        self._registry = registry
        self._resolver = resolver or ClientChainResolver()
        self._validator = validator or DirectiveValidator()
        self._evaluator = evaluator or DirectiveEvaluator(host)
        self._executor = executor or NoopExecutor()

    @property
    def host(self) -> HostIdentity:
        return self._host

    @property
    def registry(self) -> ResourceRegistry:
        return self._registry

    def facts_for(self, request: InboundRequest) -> RequestFacts:
        chain = self._resolver.resolve(
            request.remote_addr,
            request.declared_host,
            request.header(FORWARDED_FOR),
        )
        return RequestFacts(
            path=request.path,
            query=request.query,
            headers=join_headers(request.headers),
            chain=chain,
        )

    def inspect(self, request: InboundRequest) -> InspectionReport:
        facts = self.facts_for(request)
        directives = self._validator.validate_query(facts.query)
        result = self._evaluator.explain(directives, facts)
        if directives.has_action:
            log.debug("Evaluated %s: %s", facts.path, result.reason)
        if not result.plan.is_empty():
            self._executor.execute(result.plan, facts)
        return InspectionReport(
            host=self._host,
            resources=self._registry.snapshot(),
            facts=facts,
            input=directives,
            process=result.plan,
        )

    def respond(self, request: InboundRequest) -> str:
        """inspect() then render(): the response body for request."""
        return render(self.inspect(request))
