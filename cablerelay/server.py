"""Shared HTTP servers with path routing and a health endpoint."""

from __future__ import annotations

import logging
import socket
import ssl as _ssl
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Mapping, Union
from urllib.parse import urlsplit

_log = logging.getLogger(__name__)

HEALTH_MSG = b"Ah, ha, ha, ha, stayin' alive, stayin' alive."
READ_HEADER_TIMEOUT = 5.0


@dataclass
class SSLConfig:
    """Paths to a TLS certificate and its private key."""

    cert_path: str = ""
    key_path: str = ""

    def available(self) -> bool:
        """Return True when both the certificate and the key are set."""
        return bool(self.cert_path) and bool(self.key_path)


@dataclass
class Response:
    """An HTTP response produced by a route handler."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


Handler = Callable[[str, Mapping[str, Any], bytes], Union[Response, int]]


def health_handler(method: str, headers: Mapping[str, Any], body: bytes) -> Response:
    """Always answer 200 with a short liveness message."""
    return Response(200, HEALTH_MSG)


# Defaults used by for_port when creating a server.
HOST = "localhost"
SSL_CONFIG: SSLConfig | None = None
MAX_CONN = 0

_all_servers: dict[str, "HTTPServer"] = {}
_all_servers_lock = threading.Lock()


def for_port(port: str | int) -> "HTTPServer":
    """Return the server for a port, creating it from the module defaults if needed."""
    key = str(port)
    with _all_servers_lock:
        server = _all_servers.get(key)
        if server is None:
            server = HTTPServer(HOST, key, SSL_CONFIG, MAX_CONN)
            _all_servers[key] = server
        return server


def _join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _as_response(result: Response | int) -> Response:
    if isinstance(result, Response):
        return result
    return Response(int(result))


class _ListeningServer(ThreadingHTTPServer):
    daemon_threads = True
    block_on_close = False

    def __init__(self, address, handler_cls, max_conn: int, context: _ssl.SSLContext | None) -> None:
        if ":" in address[0]:
            self.address_family = socket.AF_INET6
        self._slots = threading.BoundedSemaphore(max_conn) if max_conn > 0 else None
        self._context = context
        super().__init__(address, handler_cls)

    def get_request(self):
        sock, addr = super().get_request()
        if self._context is not None:
            sock = self._context.wrap_socket(sock, server_side=True, do_handshake_on_connect=False)
        return sock, addr

    def process_request(self, request, client_address):
        if self._slots is not None:
            self._slots.acquire()
        try:
            super().process_request(request, client_address)
        except Exception:
            if self._slots is not None:
                self._slots.release()
            raise

    def process_request_thread(self, request, client_address):
        try:
            super().process_request_thread(request, client_address)
        finally:
            if self._slots is not None:
                self._slots.release()


def _make_request_handler(routes: dict[str, Handler]) -> type[BaseHTTPRequestHandler]:
    class _RequestHandler(BaseHTTPRequestHandler):
        timeout = READ_HEADER_TIMEOUT

        def _dispatch(self) -> None:
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError:
                self._respond(Response(400, b"Bad Request"))
                return
            body = self.rfile.read(length) if length > 0 else b""

            handler = routes.get(urlsplit(self.path).path)
            if handler is None:
                self._respond(Response(404, b"404 page not found\n"))
                return

            try:
                response = _as_response(handler(self.command, self.headers, body))
            except Exception:
                _log.exception("Handler for %s failed", self.path)
                response = Response(500, b"Internal Server Error")
            self._respond(response)

        def _respond(self, response: Response) -> None:
            self.send_response(response.status)
            for name, value in response.headers.items():
                self.send_header(name, value)
            self.send_header("Content-Length", str(len(response.body)))
            self.end_headers()
            if self.command != "HEAD" and response.body:
                self.wfile.write(response.body)

        do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = do_HEAD = do_OPTIONS = _dispatch

        def log_message(self, format: str, *args: Any) -> None:
            _log.debug("%s - " + format, self.address_string(), *args)

    return _RequestHandler


class HTTPServer:
    """An HTTP server whose handlers can be attached by several components."""

    def __init__(self, host: str, port: str | int, ssl: SSLConfig | None, max_conn: int) -> None:
        self._host = host
        self._port = int(port)
        self._addr = _join_host_port(host, str(port))
        self._max_conn = max_conn
        self._routes: dict[str, Handler] = {}
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._httpd: _ListeningServer | None = None
        self._context: _ssl.SSLContext | None = None

        self.secured = ssl is not None and ssl.available()
        if self.secured:
            assert ssl is not None
            context = _ssl.SSLContext(_ssl.PROTOCOL_TLS_SERVER)
            context.minimum_version = _ssl.TLSVersion.TLSv1_2
            try:
                context.load_cert_chain(ssl.cert_path, ssl.key_path)
            except (OSError, _ssl.SSLError) as exc:
                raise ValueError(f"Failed to load SSL certificate: {exc}.") from exc
            self._context = context

    def start(self) -> None:
        """Listen and serve requests until shut down; returns at once if already started."""
        with self._lock:
            if self._started or self._shutdown:
                return
            self._started = True

        httpd = _ListeningServer(
            (self._host, self._port),
            _make_request_handler(self._routes),
            self._max_conn,
            self._context,
        )

        with self._lock:
            if self._shutdown:
                httpd.server_close()
                return
            self._httpd = httpd

        try:
            httpd.serve_forever()
        finally:
            httpd.server_close()

    def start_and_announce(self, name: str) -> None:
        """Log what is being started, then start unless already running."""
        with self._lock:
            running = self._started
        if running:
            _log.debug("%s is mounted at %s", name, self.address())
            return
        _log.debug("Starting %s at %s", name, self.address())
        self.start()

    def running(self) -> bool:
        """Return True once the server has been started."""
        return self._started

    def setup_handler(self, path: str, handler: Handler) -> None:
        """Route requests for an exact path to a handler."""
        self._routes[path] = handler

    def shutdown(self) -> None:
        """Stop serving; further calls do nothing."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            httpd = self._httpd
        if httpd is not None:
            httpd.shutdown()

    def stopped(self) -> bool:
        """Return True once the server has been shut down."""
        with self._lock:
            return self._shutdown

    def address(self) -> str:
        """Return scheme://host:port of the server."""
        scheme = "https://" if self.secured else "http://"
        return f"{scheme}{self._addr}"