"""Request inspection pipeline and its HTTP front end.

resolve IP chain -> validate directives -> evaluate into a plan ->
render the report alongside host and resource state.
"""
from reqscope.inspector.evaluator import DirectiveEvaluator, EvaluationResult
from reqscope.inspector.executor import DirectiveExecutor, NoopExecutor
from reqscope.inspector.resolver import (
    FORWARDED_FOR,
    ClientChainResolver,
    extract_host,
    split_forwarded,
)
from reqscope.inspector.responder import InspectionReport, InspectionResponder, render
from reqscope.inspector.server import DEFAULT_PORT, InspectionHandler, InspectionServer
from reqscope.inspector.validator import (
    VALIDATOR_TABLE,
    DirectiveField,
    DirectiveValidator,
    parse_query,
)

__all__ = [
    "DirectiveEvaluator",
    "EvaluationResult",
    "DirectiveExecutor",
    "NoopExecutor",
    "FORWARDED_FOR",
    "ClientChainResolver",
    "extract_host",
    "split_forwarded",
    "InspectionReport",
    "InspectionResponder",
    "render",
    "DEFAULT_PORT",
    "InspectionHandler",
    "InspectionServer",
    "VALIDATOR_TABLE",
    "DirectiveField",
    "DirectiveValidator",
    "parse_query",
]
