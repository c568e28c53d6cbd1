"""HTTP front end: one catch-all route, any method, JSON inspection report.

Architecture:
    Main thread: HTTPServer.serve_forever() accepting connections
    Worker threads: ThreadPoolExecutor runs one handler per connection
    Per-connection flow: parse -> inspect -> render -> respond -> close

Handlers never wait on each other. The only shared mutable state they
touch is the resource registry, and only through its locked readers.
"""
from __future__ import annotations

import json
import logging
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable

from reqscope.domain.request import InboundRequest
from reqscope.inspector.responder import InspectionResponder

log = logging.getLogger(__name__)

DEFAULT_PORT = 9000


class InspectionHandler(BaseHTTPRequestHandler):
    """Answers every method on every path with the inspection report."""

    server_version = "reqscope"

    def __init__(
        self,
        *args: Any,
        responder: InspectionResponder,
        on_complete: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> None:
        self.responder = responder
        self.on_complete = on_complete
        super().__init__(*args, **kwargs)

    def log_message(self, format: str, *args: Any) -> None:
        log.debug("%s - %s", self.address_string(), format % args)

    def _discard_body(self) -> None:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        if length > 0:
            self.rfile.read(length)

    def _inbound(self) -> InboundRequest:
        return InboundRequest(
            method=self.command,
            target=self.path,
            headers=tuple(self.headers.items()),
            remote_addr=self.client_address,
        )

    def _handle(self) -> None:
        try:
            self._discard_body()
            body = self.responder.respond(self._inbound())
            self._send(200, body)
        except Exception:
            log.exception("Error handling %s %s from %s", self.command, self.path, self.client_address)
            error = {
                "error": "Internal service error",
                "status_code": 500,
                "timestamp": time.time(),
            }
            self._send(500, json.dumps(error, indent=2))
        finally:
            if self.on_complete is not None:
                self.on_complete()

    def _send(self, status_code: int, body: str) -> None:
        payload = body.encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    def __getattr__(self, name: str) -> Any:
        # BaseHTTPRequestHandler dispatches to do_<METHOD>; every method lands here.
        if name.startswith("do_"):
            return self._handle
        raise AttributeError(name)


class _PooledHTTPServer(HTTPServer):
    """HTTPServer that hands each accepted connection to a thread pool."""

    allow_reuse_address = True
    request_queue_size = 128

    def __init__(
        self,
        server_address: tuple[str, int],
        handler: Callable[..., BaseHTTPRequestHandler],
        executor: ThreadPoolExecutor,
    ) -> None:
        self._executor = executor
        super().__init__(server_address, handler)

    def process_request(self, request: socket.socket, client_address: Any) -> None:
        self._executor.submit(self._process_in_worker, request, client_address)

    def _process_in_worker(self, request: socket.socket, client_address: Any) -> None:
        try:
            self.finish_request(request, client_address)
        except ConnectionError:
            log.debug("Client %s disconnected", client_address)
        except Exception:
            self.handle_error(request, client_address)
        finally:
            self.shutdown_request(request)

    def handle_error(self, request: Any, client_address: Any) -> None:
        log.exception("Error serving %s", client_address)


class _PooledHTTPServerV6(_PooledHTTPServer):
    address_family = socket.AF_INET6


class InspectionServer:
    """Threaded HTTP server for the inspection service.

    Args:
        responder: builds the body for every request.
        host: bind address (default "0.0.0.0"; an IPv6 literal binds IPv6).
        port: bind port (default 9000; 0 = OS picks a free port).
        max_workers: thread pool size (default 16).
    """

    def __init__(
        self,
        responder: InspectionResponder,
        host: str = "0.0.0.0",
        port: int = DEFAULT_PORT,
        max_workers: int = 16,
    ) -> None:
        self._responder = responder
        self._host = host
        self._port = port
        self._max_workers = max_workers
        self._server: _PooledHTTPServer | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._requests_processed = 0
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._stopping = False
        self._state_lock = threading.Lock()

    @property
    def address(self) -> tuple[str, int]:
        """(host, port) the server is bound to. Only valid after start()."""
        if self._server is None:
            raise RuntimeError("Server not started")
        host, port = self._server.server_address[:2]
        return host, port

    def _handler_factory(self, *args: Any, **kwargs: Any) -> InspectionHandler:
        return InspectionHandler(
            *args,
            responder=self._responder,
            on_complete=self._count_request,
            **kwargs,
        )

    def _count_request(self) -> None:
        with self._lock:
            self._requests_processed += 1

    def start(self) -> None:
        """Bind and serve. Blocks until stop() is called.

        Raises:
            OSError: if the listening socket cannot be bound.
        """
        server_cls = _PooledHTTPServerV6 if ":" in self._host else _PooledHTTPServer
        executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="reqscope")
        try:
            self._server = server_cls((self._host, self._port), self._handler_factory, executor)
        except OSError:
            executor.shutdown(wait=False)
            raise
        self._executor = executor
        with self._state_lock:
            if self._stopping:
                log.info("Stop requested during startup; not serving")
                self._server.server_close()
                executor.shutdown(wait=False)
                self._executor = None
                return
            # shutdown() only returns once serve_forever() has run
            self._ready.set()
        host, port = self.address
        log.info("Listening on %s:%d with %d workers", host, port, self._max_workers)
        self._server.serve_forever(poll_interval=0.5)

    def stop(self) -> None:
        """Stop accepting, drain in-flight handlers, close the socket.

        Safe to call before or during start(); a server that has not
        begun serving is closed without waiting on serve_forever().
        """
        with self._state_lock:
            self._stopping = True
            serving = self._ready.is_set()
        if self._server is not None:
            if serving:
                self._server.shutdown()
            self._server.server_close()
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=False)
            self._executor = None
        log.info("Server stopped after %d requests", self.requests_processed)

    def wait_ready(self, timeout: float = 5.0) -> bool:
        """Block until the server is bound. For tests and supervisors."""
        return self._ready.wait(timeout=timeout)

    @property
    def requests_processed(self) -> int:
        """Total requests answered (thread-safe read)."""
        with self._lock:
            return self._requests_processed
