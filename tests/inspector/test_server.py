"""Tests for the InspectionServer over real sockets.

Each test starts a server on an OS-assigned port; server_factory stops
it afterwards.
"""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest

from reqscope.domain.types import ResourceKind
from reqscope.inspector.responder import InspectionResponder
from reqscope.inspector.server import InspectionServer

from tests.inspector.conftest import parse_body, send_request, wait_for


def test_single_request(server_factory, responder):
    srv, (host, port) = server_factory(responder)
    status, headers, body = send_request(host, port, target="/hello?cpu=50")
    assert status == 200
    assert headers["Content-Type"] == "application/json"
    assert body.startswith("\n") and body.endswith("\n")

    doc = parse_body(body)
    assert doc["request"]["path"] == "/hello"
    assert doc["request"]["querystring"] == "cpu=50"
    assert doc["request"]["clientip"] == "127.0.0.1"
    assert doc["request"]["targetip"] == "127.0.0.1"
    assert doc["direction"]["process"] == {"cpu": "50"}


def test_forwarded_for_header(server_factory, responder):
    srv, (host, port) = server_factory(responder)
    status, _, body = send_request(
        host, port,
        target="/?cpu=50&ifclientip=203.0.113.5",
        headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.2"},
    )
    doc = parse_body(body)
    assert status == 200
    assert doc["request"]["clientip"] == "203.0.113.5"
    assert doc["request"]["proxy1ip"] == "10.0.0.2"
    assert doc["direction"]["process"] == {"cpu": "50"}


@pytest.mark.parametrize(
    "method", ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE", "PROPFIND", "PURGE"]
)
def test_any_method_any_path(server_factory, responder, method):
    srv, (host, port) = server_factory(responder)
    body = b"payload" if method in ("POST", "PUT", "PATCH") else None
    status, _, text = send_request(host, port, method=method, target="/any/where", body=body)
    assert status == 200
    assert parse_body(text)["request"]["path"] == "/any/where"


def test_head_has_no_body(server_factory, responder):
    srv, (host, port) = server_factory(responder)
    status, headers, body = send_request(host, port, method="HEAD", target="/")
    assert status == 200
    assert int(headers["Content-Length"]) > 0
    assert body == ""


def test_resource_snapshot_reflects_registry(server_factory, responder, registry):
    srv, (host, port) = server_factory(responder)
    registry.set_target(ResourceKind.MEMORY, 60)
    registry.set_current(ResourceKind.CPU, 18.5)
    _, _, body = send_request(host, port)
    assert parse_body(body)["resource"] == {
        "cpu": {"target": 0.0, "current": 18.5},
        "memory": {"target": 60.0, "current": 0.0},
    }


def test_concurrent_clients(server_factory, responder):
    srv, (host, port) = server_factory(responder, max_workers=8)

    def one(i):
        return send_request(
            host, port,
            target=f"/?cpu={i % 101}&ifclientip=10.0.0.{i % 250}",
            headers={"X-Forwarded-For": f"10.0.0.{i % 250}"},
        )

    results = []
    with ThreadPoolExecutor(max_workers=20) as pool:
        futs = [pool.submit(one, i) for i in range(100)]
        for f in as_completed(futs):
            results.append(f.result())

    assert len(results) == 100
    assert all(status == 200 for status, _, _ in results)
    for _, _, body in results:
        doc = parse_body(body)
        assert doc["direction"]["process"] == {"cpu": doc["direction"]["input"]["cpu"]}


def test_requests_processed_counter(server_factory, responder):
    srv, (host, port) = server_factory(responder)
    for _ in range(10):
        send_request(host, port)
    assert wait_for(lambda: srv.requests_processed == 10)


class _ExplodingResponder:
    def respond(self, request):
        raise RuntimeError("boom")


def test_handler_error_returns_500_and_server_survives(server_factory, responder):
    srv, (host, port) = server_factory(_ExplodingResponder())
    status, _, body = send_request(host, port)
    assert status == 500
    assert parse_body(body)["status_code"] == 500

    status, _, _ = send_request(host, port)
    assert status == 500  # still serving


def test_address_before_start_raises(responder):
    srv = InspectionServer(responder, port=0)
    with pytest.raises(RuntimeError):
        _ = srv.address


def test_bind_failure_raises(server_factory, responder):
    srv, (host, port) = server_factory(responder)
    clash = InspectionServer(responder, host=host, port=port)
    with pytest.raises(OSError):
        clash.start()
    clash.stop()


def test_stop_before_serving_does_not_hang(responder):
    srv = InspectionServer(responder, host="127.0.0.1", port=0)
    srv.stop()

    t = threading.Thread(target=srv.start, daemon=True)
    t.start()
    t.join(timeout=5.0)
    assert not t.is_alive()
    assert not srv.wait_ready(timeout=0.1)


def test_stop_returns_promptly_while_starting(responder):
    srv = InspectionServer(responder, host="127.0.0.1", port=0)
    t = threading.Thread(target=srv.start, daemon=True)
    t.start()

    stopper = threading.Thread(target=srv.stop, daemon=True)
    stopper.start()
    stopper.join(timeout=5.0)
    assert not stopper.is_alive()
    t.join(timeout=5.0)
    assert not t.is_alive()
