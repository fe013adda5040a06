"""Process-wide metrics registry, message kinds and the metrics HTTP server."""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Iterable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from .config import parse_socket_addr
from .metrics import CounterVec, Metric, Registry
from .version import VERSION as VERSION_INFO

logger = logging.getLogger(__name__)

REGISTRY = Registry()

VERSION = CounterVec(
    "version",
    "Plugin version info",
    ["buildts", "git", "package", "proto", "rustc", "solana", "version"],
)

_register_lock = threading.Lock()
_registered = False


class GrpcMessageKind(enum.Enum):
    """Kind of a subscription update, used as a metrics label."""

    ACCOUNT = "account"
    SLOT = "slot"
    TRANSACTION = "transaction"
    BLOCK = "block"
    PING = "ping"
    PONG = "pong"
    BLOCK_META = "blockmeta"
    ENTRY = "entry"
    UNKNOWN = "unknown"

    @classmethod
    def from_oneof(cls, field: str) -> GrpcMessageKind:
        """Map the name of the set update field to its kind."""
        try:
            return _ONEOF_KINDS[field]
        except KeyError:
            raise ValueError(f"unknown update field: {field!r}") from None


_ONEOF_KINDS = {
    "account": GrpcMessageKind.ACCOUNT,
    "slot": GrpcMessageKind.SLOT,
    "transaction": GrpcMessageKind.TRANSACTION,
    "block": GrpcMessageKind.BLOCK,
    "ping": GrpcMessageKind.PING,
    "pong": GrpcMessageKind.PONG,
    "block_meta": GrpcMessageKind.BLOCK_META,
    "entry": GrpcMessageKind.ENTRY,
}


def _register_once(collectors: Iterable[Metric]) -> None:
    global _registered  # pylint: disable=global-statement
    with _register_lock:
        if _registered:
            return
        REGISTRY.register(VERSION)
        for collector in collectors:
            REGISTRY.register(collector)
        VERSION.labels(
            VERSION_INFO.buildts,
            VERSION_INFO.git,
            VERSION_INFO.package,
            VERSION_INFO.proto,
            VERSION_INFO.rustc,
            VERSION_INFO.solana,
            VERSION_INFO.version,
        ).inc()
        _registered = True


class _MetricsHandler(BaseHTTPRequestHandler):
    def _respond(self) -> None:
        if urlsplit(self.path).path == "/metrics":
            body = REGISTRY.encode().encode("utf-8")
            self.send_response(200)
            self.send_header("Content-Type", "text/plain; version=0.0.4")
        else:
            body = b""
            self.send_response(404)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    do_GET = do_POST = do_PUT = do_DELETE = _respond

    def log_message(self, format, *args):  # noqa: A002  pylint: disable=redefined-builtin
        logger.debug("metrics request: " + format, *args)


def _serve(server: ThreadingHTTPServer) -> None:
    try:
        server.serve_forever()
    except Exception:  # pylint: disable=broad-except
        logger.exception("prometheus server failed")


def run_server(
    address: str | tuple[str, int], collectors: Iterable[Metric] = ()
) -> ThreadingHTTPServer:
    """Register metrics (first call only) and serve /metrics in a background thread."""
    _register_once(collectors)
    if isinstance(address, str):
        address = parse_socket_addr(address)
    server = ThreadingHTTPServer(address, _MetricsHandler)
    server.daemon_threads = True
    threading.Thread(target=_serve, args=(server,), daemon=True).start()
    logger.info("prometheus server started: %s", server.server_address)
    return server