"""Host identity: who is answering the request.

Discovered once at startup and never changed afterwards, so handler
threads read it without locking.
"""
from __future__ import annotations

import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)

# Documentation prefixes (RFC 5737 / RFC 3849). connect() on a UDP socket
# only picks a route; nothing is sent to these.
_PEER_V4 = ("192.0.2.1", 9)
_PEER_V6 = ("2001:db8::1", 9)


class HostDiscoveryError(RuntimeError):
    """Raised when the host name or primary address cannot be determined."""


@dataclass(frozen=True, slots=True)
class HostIdentity:
    name: str
    ip: str
    ipv6: str | None = None
    az: str | None = None

    def addresses(self) -> tuple[str, ...]:
        """All non-empty addresses of this host, IPv4 first."""
        return tuple(a for a in (self.ip, self.ipv6) if a)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "ip": self.ip}
        if self.ipv6:
            out["ipv6"] = self.ipv6
        if self.az:
            out["az"] = self.az
        return out


def _routed_address(family: socket.AddressFamily, peer: tuple[str, int]) -> str | None:
    """Local address the kernel would use for outbound traffic of this family."""
    try:
        with socket.socket(family, socket.SOCK_DGRAM) as sock:
            sock.connect(peer)
            addr = sock.getsockname()[0]
    except OSError:
        return None
    ip = ipaddress.ip_address(addr.split("%", 1)[0])
    if ip.is_loopback or ip.is_unspecified:
        return None
    return addr


def _resolved_address(hostname: str, family: socket.AddressFamily) -> str | None:
    """First non-loopback address the hostname resolves to."""
    try:
        infos = socket.getaddrinfo(hostname, None, family, socket.SOCK_STREAM)
    except OSError:
        return None
    for info in infos:
        addr = info[4][0]
        if not ipaddress.ip_address(addr.split("%", 1)[0]).is_loopback:
            return addr
    return None


def discover_host(az: str | None = None) -> HostIdentity:
    """Build the HostIdentity for this process.

    Raises:
        HostDiscoveryError: if the hostname is unavailable or the host has
            no usable IPv4 address.
    """
    try:
        name = socket.gethostname()
    except OSError as exc:
        raise HostDiscoveryError(f"Cannot read hostname: {exc}") from exc
    if not name:
        raise HostDiscoveryError("Hostname is empty")

    ip = _routed_address(socket.AF_INET, _PEER_V4) or _resolved_address(name, socket.AF_INET)
    if ip is None:
        raise HostDiscoveryError(f"No non-loopback IPv4 address found for {name}")

    ipv6 = None
    if socket.has_ipv6:
        ipv6 = _routed_address(socket.AF_INET6, _PEER_V6) or _resolved_address(name, socket.AF_INET6)

    host = HostIdentity(name=name, ip=ip, ipv6=ipv6, az=az or None)
    log.info("Host identity: name=%s ip=%s ipv6=%s az=%s", host.name, host.ip, host.ipv6, host.az)
    return host
