"""Per-request records: what came in, and the facts derived from it.

InboundRequest is transport-neutral so the inspection pipeline can be
driven without sockets (tests, the ``check`` CLI command). RequestFacts
is built once per request and discarded with the response.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable
from urllib.parse import urlsplit

from reqscope.domain.types import HeaderMap, IPText


@dataclass(frozen=True, slots=True)
class IPChain:
    """Resolved client/proxy addresses. Missing hops are empty strings."""
    client_ip: IPText = ""
    proxy1_ip: IPText = ""
    proxy2_ip: IPText = ""
    target_ip: IPText = ""


@dataclass(frozen=True, slots=True)
class InboundRequest:
    """A request as received, before any interpretation.

    target is the request-target from the request line (path plus an
    optional ``?query``). remote_addr is either ``"host:port"`` text or
    a socket address tuple.
    """
    method: str
    target: str
    headers: tuple[tuple[str, str], ...] = ()
    remote_addr: str | tuple[Any, ...] = ""
    host: str | None = None

    def _split_target(self) -> tuple[str, str]:
        if "://" in self.target:
            # absolute-form, as sent to forward proxies
            parts = urlsplit(self.target)
            return parts.path or "/", parts.query
        path, _, query = self.target.partition("?")
        return path or "/", query

    @property
    def path(self) -> str:
        return self._split_target()[0]

    @property
    def query(self) -> str:
        return self._split_target()[1]

    def header(self, name: str) -> str | None:
        """All values of one header joined with ", ", or None when absent."""
        wanted = name.lower()
        values = [v for k, v in self.headers if k.lower() == wanted]
        if not values:
            return None
        return ", ".join(values)

    @property
    def declared_host(self) -> str:
        if self.host is not None:
            return self.host
        return self.header("Host") or ""


def join_headers(headers: Iterable[tuple[str, str]]) -> HeaderMap:
    """Collapse repeated headers into one comma-joined string each.

    Names are grouped case-insensitively; the first spelling seen is
    kept, and both header order and value order follow arrival order.
    """
    spelling: dict[str, str] = {}
    values: dict[str, list[str]] = {}
    for name, value in headers:
        key = name.lower()
        if key not in spelling:
            spelling[key] = name
            values[key] = []
        values[key].append(value)
    return {spelling[key]: ", ".join(vals) for key, vals in values.items()}


@dataclass(frozen=True, slots=True)
class RequestFacts:
    path: str
    query: str
    headers: HeaderMap = field(default_factory=dict)
    chain: IPChain = field(default_factory=IPChain)

    @property
    def client_ip(self) -> IPText:
        return self.chain.client_ip

    @property
    def proxy1_ip(self) -> IPText:
        return self.chain.proxy1_ip

    @property
    def proxy2_ip(self) -> IPText:
        return self.chain.proxy2_ip

    @property
    def target_ip(self) -> IPText:
        return self.chain.target_ip

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "querystring": self.query,
            "header": dict(self.headers),
            "clientip": self.chain.client_ip,
            "proxy1ip": self.chain.proxy1_ip,
            "proxy2ip": self.chain.proxy2_ip,
            "targetip": self.chain.target_ip,
        }
