"""reqscope CLI entry point.

Usage: uv run reqscope [command]
"""
import argparse
import logging
import os
import signal
import socket
import sys
import threading

log = logging.getLogger("reqscope")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _setup_logging(level: str | None) -> None:
    name = (level or os.environ.get("REQSCOPE_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)


def _add_serve_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "serve",
        help="Run the inspection HTTP server.",
        description="Flags override the matching REQSCOPE_* environment variables.",
    )
    p.add_argument("--host", help="Bind address (default: 0.0.0.0)")
    p.add_argument("--port", type=int, help="Bind port (default: 9000)")
    p.add_argument("--workers", type=int, help="Worker threads (default: 16)")
    p.add_argument("--az", help="Availability-zone label reported for this host")
    p.add_argument("--cpu-target", type=float, help="Initial CPU target percent (default: 0)")
    p.add_argument("--memory-target", type=float, help="Initial memory target percent (default: 0)")
    p.add_argument(
        "--sample-interval", type=float,
        help="Seconds between /proc resource samples; 0 disables sampling (default: 0)",
    )
    p.add_argument(
        "--validate-forwarded", action="store_true", default=None,
        help="Drop X-Forwarded-For entries that are not IP addresses.",
    )
    p.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL (default: INFO)")


def _add_check_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "check",
        help="Run one query string through the pipeline and print the report.",
    )
    p.add_argument("query", nargs="?", default="", help='Query string, e.g. "cpu=50&ifclientip=10.0.0.1"')
    p.add_argument("--path", default="/", help="Request path (default: /)")
    p.add_argument(
        "--remote-addr", default="127.0.0.1:0",
        help="Connection peer as host:port (default: 127.0.0.1:0)",
    )
    p.add_argument("--host", default="localhost:9000", help="Host header (default: localhost:9000)")
    p.add_argument("--forwarded-for", help="X-Forwarded-For header value")
    p.add_argument("--az", help="Availability-zone label for this host")
    p.add_argument("--validate-forwarded", action="store_true")
    p.add_argument("--log-level", help="Log level (default: INFO)")


def _run_serve(args: argparse.Namespace) -> int:
    from reqscope.config import ConfigError, ServiceConfig
    from reqscope.domain.host import HostDiscoveryError, discover_host
    from reqscope.inspector.resolver import ClientChainResolver
    from reqscope.inspector.responder import InspectionResponder
    from reqscope.inspector.server import InspectionServer
    from reqscope.resources.registry import ResourceRegistry
    from reqscope.resources.sampler import ResourceSampler

    try:
        config = ServiceConfig.from_env().with_overrides(
            host=args.host,
            port=args.port,
            workers=args.workers,
            az=args.az,
            cpu_target=args.cpu_target,
            memory_target=args.memory_target,
            sample_interval=args.sample_interval,
            validate_forwarded=args.validate_forwarded,
            log_level=args.log_level.upper() if args.log_level else None,
        ).validate()
        host = discover_host(az=config.az)
    except (ConfigError, HostDiscoveryError) as exc:
        log.critical("Cannot start: %s", exc)
        return 1

    registry = ResourceRegistry(config.initial_targets())
    responder = InspectionResponder(
        host,
        registry,
        resolver=ClientChainResolver(validate_forwarded=config.validate_forwarded),
    )
    server = InspectionServer(responder, host=config.host, port=config.port, max_workers=config.workers)
    sampler = ResourceSampler(registry, config.sample_interval) if config.sample_interval > 0 else None

    stop_evt = threading.Event()
    failures: list[BaseException] = []

    def _serve() -> None:
        try:
            server.start()
        except OSError as exc:
            failures.append(exc)
        finally:
            stop_evt.set()

    def _on_signal(signum: int, _frame: object) -> None:
        log.info("Received %s, shutting down", signal.Signals(signum).name)
        stop_evt.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    log.info(
        "[reqscope] starting with cpu_target=%.1f%% memory_target=%.1f%% sample_interval=%ss validate_forwarded=%s",
        config.cpu_target, config.memory_target, config.sample_interval, config.validate_forwarded,
    )
    thread = threading.Thread(target=_serve, name="reqscope-http", daemon=True)
    thread.start()
    if sampler is not None:
        sampler.start()
    try:
        while not stop_evt.wait(0.5):
            pass
    finally:
        if sampler is not None:
            sampler.stop()
        if not failures:
            server.stop()
        thread.join(timeout=5.0)

    if failures:
        log.critical("Cannot listen on %s:%d: %s", config.host, config.port, failures[0])
        return 1
    return 0


def _run_check(args: argparse.Namespace) -> int:
    from reqscope.domain.host import HostDiscoveryError, HostIdentity, discover_host
    from reqscope.domain.request import InboundRequest
    from reqscope.inspector.resolver import FORWARDED_FOR, ClientChainResolver
    from reqscope.inspector.responder import InspectionResponder
    from reqscope.resources.registry import ResourceRegistry

    try:
        host = discover_host(az=args.az)
    except HostDiscoveryError as exc:
        log.warning("%s; reporting loopback identity", exc)
        host = HostIdentity(name=socket.gethostname() or "localhost", ip="127.0.0.1", az=args.az)

    headers: list[tuple[str, str]] = [("Host", args.host)]
    if args.forwarded_for is not None:
        headers.append((FORWARDED_FOR, args.forwarded_for))
    target = args.path + ("?" + args.query if args.query else "")
    request = InboundRequest(
        method="GET",
        target=target,
        headers=tuple(headers),
        remote_addr=args.remote_addr,
    )
    responder = InspectionResponder(
        host,
        ResourceRegistry(),
        resolver=ClientChainResolver(validate_forwarded=args.validate_forwarded),
    )
    sys.stdout.write(responder.respond(request))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="reqscope",
        description="Request inspection and conditional-action service.",
    )
    subparsers = parser.add_subparsers(dest="command")

    _add_serve_parser(subparsers)
    _add_check_parser(subparsers)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _setup_logging(args.log_level)

    if args.command == "serve":
        sys.exit(_run_serve(args))
    if args.command == "check":
        sys.exit(_run_check(args))
