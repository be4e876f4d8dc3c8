"""Broadcast subscribers: adapter selection and the HTTP endpoint."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Union

from cablerelay.redis_pubsub import RedisConfig, RedisSubscriber
from cablerelay.server import HTTPServer, for_port

DEFAULT_HTTP_PORT = 8090
DEFAULT_HTTP_PATH = "/_broadcast"

_log = logging.LoggerAdapter(logging.getLogger(__name__), {"fields": {"context": "pubsub"}})


class PubSubHandler(Protocol):
    def handle_pubsub(self, data: bytes) -> None: ...


@dataclass
class HTTPConfig:
    """HTTP broadcast endpoint settings."""

    port: int = DEFAULT_HTTP_PORT
    path: str = DEFAULT_HTTP_PATH
    # Token expected in a Bearer Authorization header; empty disables the check.
    secret: str = ""


def _get_header(headers: Mapping[str, Any], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return str(value)
    return ""


class HTTPSubscriber:
    """Accepts broadcast messages as POST requests."""

    def __init__(self, node: PubSubHandler, config: HTTPConfig) -> None:
        self._node = node
        self._port = config.port
        self._path = config.path
        self._auth_header = f"Bearer {config.secret}" if config.secret else ""
        self._server: HTTPServer | None = None

    def start(self, done: "queue.Queue[Exception]") -> None:
        """Attach the endpoint to the server for the port and start serving in the background."""
        server = for_port(str(self._port))
        self._server = server
        server.setup_handler(self._path, self.handle)

        _log.info("Accept broadcast requests at %s%s", server.address(), self._path)

        def serve() -> None:
            try:
                server.start_and_announce("Pub/Sub HTTP server")
            except Exception as exc:
                if not server.stopped():
                    done.put(
                        RuntimeError(f"Pub/Sub HTTP server at {server.address()} stopped: {exc}")
                    )

        threading.Thread(target=serve, name="pubsub-http", daemon=True).start()

    def shutdown(self) -> None:
        """Stop the HTTP server."""
        if self._server is not None:
            self._server.shutdown()

    def handle(self, method: str, headers: Mapping[str, Any], body: bytes) -> int:
        """Process a broadcast request and return the response status."""
        if method != "POST":
            _log.debug("Invalid request method: %s", method)
            return 422

        if self._auth_header and _get_header(headers, "Authorization") != self._auth_header:
            return 401

        self._node.handle_pubsub(body)
        return 201


Subscriber = Union[RedisSubscriber, HTTPSubscriber]


def new_subscriber(
    node: PubSubHandler, adapter: str, redis: RedisConfig, http: HTTPConfig
) -> Subscriber:
    """Create the subscriber for the named adapter ("redis" or "http")."""
    if adapter == "redis":
        return RedisSubscriber(node, redis)
    if adapter == "http":
        return HTTPSubscriber(node, http)
    raise ValueError(f"Unknown adapter type: {adapter}")