"""Domain model for reqscope.

Re-exports all public types for convenient access:
    from reqscope.domain import DirectiveSet, HostIdentity, RequestFacts
"""
from reqscope.domain.directives import (
    ACTION_KEYS,
    CONDITION_KEYS,
    CONDITION_PREFIX,
    DIRECTIVE_KEYS,
    DirectiveSet,
    NumericRange,
    digits_key,
    directive_kind,
    saturating_int,
)
from reqscope.domain.host import HostDiscoveryError, HostIdentity, discover_host
from reqscope.domain.request import (
    InboundRequest,
    IPChain,
    RequestFacts,
    join_headers,
)
from reqscope.domain.types import (
    DirectiveKind,
    HeaderMap,
    IPText,
    Percent,
    QueryParams,
    ResourceKind,
)

__all__ = [
    "ACTION_KEYS",
    "CONDITION_KEYS",
    "CONDITION_PREFIX",
    "DIRECTIVE_KEYS",
    "DirectiveSet",
    "NumericRange",
    "digits_key",
    "directive_kind",
    "saturating_int",
    "HostDiscoveryError",
    "HostIdentity",
    "discover_host",
    "InboundRequest",
    "IPChain",
    "RequestFacts",
    "join_headers",
    "DirectiveKind",
    "HeaderMap",
    "IPText",
    "Percent",
    "QueryParams",
    "ResourceKind",
]
