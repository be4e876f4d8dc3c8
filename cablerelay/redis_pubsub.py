"""Broadcast subscriber that listens on a Redis pub/sub channel."""

from __future__ import annotations

import logging
import queue
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlsplit, urlunsplit

import redis
from redis.sentinel import MasterNotFoundError, Sentinel

MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_KEEPALIVE_INTERVAL = 30
DEFAULT_REDIS_URL = "redis://localhost:6379/5"
DEFAULT_REDIS_CHANNEL = "__anycable__"
DEFAULT_SENTINEL_DISCOVERY_INTERVAL = 30
DEFAULT_TLS_VERIFY = False

_SENTINEL_TIMEOUT = 0.5
_DEFAULT_SENTINEL_PORT = 26379
# Longest time to block on the socket before checking for shutdown.
_POLL_INTERVAL = 1.0

_log = logging.LoggerAdapter(logging.getLogger(__name__), {"fields": {"context": "pubsub"}})

_CONNECTION_ERRORS = (redis.RedisError, OSError)


class PubSubHandler(Protocol):
    def handle_pubsub(self, data: bytes) -> None: ...


@dataclass
class RedisConfig:
    """Redis pub/sub adapter settings."""

    # Redis URL, or the master name as host when sentinels are used.
    url: str = DEFAULT_REDIS_URL
    channel: str = DEFAULT_REDIS_CHANNEL
    # Comma-separated sentinel addresses.
    sentinels: str = ""
    sentinel_discovery_interval: int = DEFAULT_SENTINEL_DISCOVERY_INTERVAL
    keepalive_ping_interval: int = DEFAULT_KEEPALIVE_INTERVAL
    # Verify the server certificate for rediss:// URLs.
    tls_verify: bool = DEFAULT_TLS_VERIFY


def next_retry(step: int) -> float:
    """Return the delay in seconds before reconnect attempt ``step`` (from 1)."""
    if step <= 0:
        raise ValueError("step must be positive")
    secs = step * step + random.randrange(step * 4) * (step + 1)
    return float(secs)


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode(errors="replace")
    return str(value)


class RedisSubscriber:
    """Subscribes to a Redis channel and passes every message to the node."""

    def __init__(self, node: PubSubHandler, config: RedisConfig) -> None:
        self._node = node
        self._url = config.url
        self._sentinels = config.sentinels
        self._sentinel_discovery_interval = float(config.sentinel_discovery_interval)
        self._ping_interval = float(config.keepalive_ping_interval)
        self._channel = config.channel
        self._tls_verify = config.tls_verify
        self._reconnect_attempt = 0
        self._sentinel: Sentinel | None = None
        self._master_name = ""
        self._stop = threading.Event()

    def start(self, done: "queue.Queue[Exception]") -> None:
        """Start listening in the background; fatal errors are put on ``done``."""
        parts = urlsplit(self._url)
        # Accessing the port validates it.
        parts.port

        if self._sentinels:
            self._master_name = parts.hostname or ""
            _log.debug(
                "Redis sentinel parameters: sentinels: %s, masterName: %s",
                self._sentinels,
                self._master_name,
            )
            self._sentinel = self._build_sentinel()
            threading.Thread(
                target=self._discover_sentinels, name="redis-sentinel-discovery", daemon=True
            ).start()

        threading.Thread(
            target=self._keepalive, args=(done,), name="redis-pubsub", daemon=True
        ).start()

    def shutdown(self) -> None:
        """Stop listening."""
        self._stop.set()

    def _build_sentinel(self) -> Sentinel:
        sentinel = Sentinel([], sentinel_kwargs={"socket_timeout": _SENTINEL_TIMEOUT})
        sentinel.sentinels = [
            self._sentinel_client(addr.strip())
            for addr in self._sentinels.split(",")
            if addr.strip()
        ]
        return sentinel

    def _sentinel_client(self, addr: str) -> redis.Redis:
        parts = urlsplit(f"redis://{addr}")
        password = parts.password
        return redis.Redis(
            host=parts.hostname or addr,
            port=parts.port or _DEFAULT_SENTINEL_PORT,
            password=password,
            socket_timeout=_SENTINEL_TIMEOUT,
            socket_connect_timeout=_SENTINEL_TIMEOUT,
        )

    def _discover_sentinels(self) -> None:
        self._discover_once()
        while not self._stop.wait(self._sentinel_discovery_interval):
            self._discover_once()

    def _discover_once(self) -> None:
        sentinel = self._sentinel
        if sentinel is None:
            return

        known = {
            (c.connection_pool.connection_kwargs.get("host"), c.connection_pool.connection_kwargs.get("port"))
            for c in sentinel.sentinels
        }
        for client in list(sentinel.sentinels):
            try:
                peers = client.sentinel_sentinels(self._master_name)
            except _CONNECTION_ERRORS:
                _log.warning("Failed to discover sentinels")
                continue

            for peer in peers:
                host = _as_text(peer.get("ip", ""))
                try:
                    port = int(peer.get("port", 0))
                except (TypeError, ValueError):
                    continue
                if host and (host, port) not in known:
                    known.add((host, port))
                    sentinel.sentinels.append(
                        redis.Redis(
                            host=host,
                            port=port,
                            socket_timeout=_SENTINEL_TIMEOUT,
                            socket_connect_timeout=_SENTINEL_TIMEOUT,
                        )
                    )
            return

    def _keepalive(self, done: "queue.Queue[Exception]") -> None:
        while not self._stop.is_set():
            if self._sentinel is not None:
                try:
                    host, port = self._sentinel.discover_master(self._master_name)
                except (MasterNotFoundError, *_CONNECTION_ERRORS) as exc:
                    _log.warning("Failed to get master address from sentinel.")
                    done.put(exc)
                    return
                _log.debug("Got master address from sentinel: %s:%s", host, port)
                self._url = self._with_host(self._url, host, port)

            try:
                self._listen()
            except _CONNECTION_ERRORS as exc:
                _log.warning("Redis connection failed: %s", exc)

            if self._stop.is_set():
                return

            self._reconnect_attempt += 1
            if self._reconnect_attempt >= MAX_RECONNECT_ATTEMPTS:
                done.put(ConnectionError("Redis reconnect attempts exceeded"))
                return

            delay = next_retry(self._reconnect_attempt)
            _log.info("Next Redis reconnect attempt in %ss", delay)
            if self._stop.wait(delay):
                return
            _log.info("Reconnecting to Redis...")

    @staticmethod
    def _with_host(url: str, host: str, port: int) -> str:
        parts = urlsplit(url)
        userinfo, sep, _ = parts.netloc.rpartition("@")
        netloc = f"{userinfo}{sep}{host}:{port}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    def _connect(self) -> redis.Redis:
        options: dict[str, Any] = {}
        if urlsplit(self._url).scheme == "rediss":
            options["ssl_cert_reqs"] = "required" if self._tls_verify else "none"
        return redis.Redis.from_url(self._url, **options)

    @staticmethod
    def _is_master(client: redis.Redis) -> bool:
        try:
            role = client.execute_command("ROLE")
        except _CONNECTION_ERRORS:
            return False
        return bool(role) and _as_text(role[0]) == "master"

    def _listen(self) -> None:
        client = self._connect()
        try:
            if self._sentinels and not self._is_master(client):
                raise redis.ConnectionError("Failed master role check")

            pubsub = client.pubsub()
            try:
                try:
                    pubsub.subscribe(self._channel)
                except _CONNECTION_ERRORS as exc:
                    _log.error("Failed to subscribe to Redis channel: %s", exc)
                    raise

                self._reconnect_attempt = 0
                next_ping = time.monotonic() + self._ping_interval

                while not self._stop.is_set():
                    wait = max(0.0, min(next_ping - time.monotonic(), _POLL_INTERVAL))
                    message = pubsub.get_message(timeout=wait)
                    if message is not None:
                        self._dispatch(message)

                    if time.monotonic() >= next_ping:
                        pubsub.ping()
                        next_ping = time.monotonic() + self._ping_interval
            finally:
                try:
                    pubsub.close()
                except _CONNECTION_ERRORS:
                    pass
        finally:
            client.close()

    def _dispatch(self, message: dict[str, Any]) -> None:
        kind = _as_text(message.get("type", ""))
        if kind == "message":
            data = message.get("data", b"")
            if isinstance(data, str):
                data = data.encode()
            _log.debug("Incoming pubsub message from Redis: %s", data)
            self._node.handle_pubsub(data)
        elif kind == "subscribe":
            _log.info("Subscribed to Redis channel: %s", _as_text(message.get("channel", "")))