"""Client-chain resolver: who sent this request, and through whom.

Algorithm:
  1. target_ip = host part of the declared Host
  2. split X-Forwarded-For on commas, trim each segment
  3. client_ip = first forwarded entry, or the remote address if none
  4. proxy1_ip / proxy2_ip = second / third forwarded entry, if present

Proxies are assumed to append to X-Forwarded-For left to right. Nothing
here proves that: a client can put anything in the header. Forwarded
entries pass through as opaque strings unless validate_forwarded is on,
in which case entries that are not IP literals are dropped first.
"""
from __future__ import annotations

import ipaddress
import logging
from typing import Any

from reqscope.domain.request import IPChain
from reqscope.domain.types import IPText

log = logging.getLogger(__name__)

FORWARDED_FOR = "X-Forwarded-For"


def extract_host(hostport: str) -> str:
    """Strip a trailing ":port", and brackets from an IPv6 literal.

    "10.0.0.1:80" -> "10.0.0.1", "[2001:db8::1]:443" -> "2001:db8::1",
    "example.com" -> "example.com", "2001:db8::1" -> "2001:db8::1".
    """
    if hostport.startswith("["):
        head, sep, _ = hostport.rpartition(":")
        if sep and head.endswith("]"):
            hostport = head
        return hostport.strip("[]")
    if hostport.count(":") > 1:
        # bare IPv6 literal, no port
        return hostport
    return hostport.split(":", 1)[0]


def host_of(remote_addr: str | tuple[Any, ...]) -> str:
    """Host part of a remote address given as "host:port" or a sockaddr tuple."""
    if isinstance(remote_addr, tuple):
        if not remote_addr:
            return ""
        return str(remote_addr[0]).strip("[]")
    return extract_host(remote_addr)


def split_forwarded(value: str | None) -> list[str]:
    """Comma-separated X-Forwarded-For value as a list of trimmed entries.

    An absent or blank header is an empty chain, not [""].
    """
    if value is None or not value.strip():
        return []
    return [part.strip() for part in value.split(",")]


def is_ip_literal(text: str) -> bool:
    """True for IPv4 or IPv6 literals; "010.0.0.1" style zero-padded octets are rejected."""
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


class ClientChainResolver:
    """Derives the IPChain of a request. Stateless, safe to share.

    Args:
        validate_forwarded: drop forwarded entries that are not IP literals.
    """

    def __init__(self, validate_forwarded: bool = False) -> None:
        self._validate_forwarded = validate_forwarded

    @property
    def validate_forwarded(self) -> bool:
        return self._validate_forwarded

    def resolve(
        self,
        remote_addr: str | tuple[Any, ...],
        declared_host: str,
        forwarded_for: str | None,
    ) -> IPChain:
        chain = split_forwarded(forwarded_for)
        if self._validate_forwarded:
            chain = self._filter(chain)

        client_ip: IPText = chain[0] if chain else host_of(remote_addr)
        return IPChain(
            client_ip=client_ip,
            proxy1_ip=chain[1] if len(chain) >= 2 else "",
            proxy2_ip=chain[2] if len(chain) >= 3 else "",
            target_ip=extract_host(declared_host),
        )

    @staticmethod
    def _filter(chain: list[str]) -> list[str]:
        kept = []
        for entry in chain:
            if is_ip_literal(entry):
                kept.append(entry)
            else:
                log.debug("Discarding non-IP %s entry %r", FORWARDED_FOR, entry)
        return kept
