"""Shared fixtures for inspector tests.

Provides a fixed host identity, a registry, a responder, and helpers
for spinning up the InspectionServer in a background thread.
"""
from __future__ import annotations

import http.client
import json
import threading
import time
from typing import Any

import pytest

from reqscope.domain.host import HostIdentity
from reqscope.domain.request import InboundRequest
from reqscope.inspector.responder import InspectionResponder
from reqscope.inspector.server import InspectionServer
from reqscope.resources.registry import ResourceRegistry


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def host() -> HostIdentity:
    return HostIdentity(
        name="web-1.example.internal",
        ip="10.1.2.3",
        ipv6="2001:db8::10",
        az="ap-northeast-1a",
    )


@pytest.fixture()
def registry() -> ResourceRegistry:
    return ResourceRegistry()


@pytest.fixture()
def responder(host, registry) -> InspectionResponder:
    return InspectionResponder(host, registry)


def make_request(
    query: str = "",
    forwarded_for: str | None = None,
    remote_addr: str | tuple = "192.168.1.1:54321",
    host_header: str = "192.0.2.10:9000",
    path: str = "/",
    extra_headers: tuple[tuple[str, str], ...] = (),
) -> InboundRequest:
    headers = [("Host", host_header)]
    if forwarded_for is not None:
        headers.append(("X-Forwarded-For", forwarded_for))
    headers.extend(extra_headers)
    return InboundRequest(
        method="GET",
        target=path + ("?" + query if query else ""),
        headers=tuple(headers),
        remote_addr=remote_addr,
    )


# ---------------------------------------------------------------------------
# Server fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def server_factory():
    """Factory that starts an InspectionServer on an OS-assigned port.

    Returns a callable taking (responder, max_workers) and returning
    (server, (host, port)). Servers are stopped after the test.
    """
    servers: list[InspectionServer] = []

    def _create(
        responder: InspectionResponder,
        max_workers: int = 4,
    ) -> tuple[InspectionServer, tuple[str, int]]:
        srv = InspectionServer(responder, host="127.0.0.1", port=0, max_workers=max_workers)
        t = threading.Thread(target=srv.start, daemon=True)
        t.start()
        assert srv.wait_ready(timeout=5.0), "server never became ready"
        servers.append(srv)
        return srv, srv.address

    yield _create

    for s in servers:
        s.stop()


def send_request(
    host: str,
    port: int,
    method: str = "GET",
    target: str = "/",
    headers: dict[str, str] | None = None,
    body: bytes | None = None,
    timeout: float = 5.0,
) -> tuple[int, dict[str, str], str]:
    """One HTTP exchange on a fresh connection. Returns (status, headers, body)."""
    conn = http.client.HTTPConnection(host, port, timeout=timeout)
    try:
        conn.request(method, target, body=body, headers=headers or {})
        resp = conn.getresponse()
        return resp.status, dict(resp.getheaders()), resp.read().decode("utf-8")
    finally:
        conn.close()


def parse_body(body: str) -> dict[str, Any]:
    return json.loads(body)


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
