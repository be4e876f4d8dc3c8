"""A bounded pool of reusable client connections."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable

_log = logging.getLogger(__name__)

Factory = Callable[[], Any]


class PoolClosedError(RuntimeError):
    """Raised when a connection is requested from a closed pool."""

    def __init__(self) -> None:
        super().__init__("pool is closed")


class Conn:
    """A connection borrowed from a pool; closing it hands it back."""

    __slots__ = ("conn", "_pool")

    def __init__(self, conn: Any, pool: "ChannelPool") -> None:
        self.conn = conn
        self._pool = pool

    def close(self) -> None:
        """Return the connection to its pool (or close it if the pool is full or closed)."""
        self._pool._put(self.conn)


class ChannelPool:
    """Keeps up to ``max_cap`` idle connections and creates new ones on demand."""

    def __init__(self, initial_cap: int, max_cap: int, factory: Factory) -> None:
        if initial_cap < 0 or max_cap <= 0 or initial_cap > max_cap:
            raise ValueError("invalid capacity settings")

        self._lock = threading.Lock()
        self._conns: deque[Any] | None = deque()
        self._max_cap = max_cap
        self._factory: Factory | None = factory
        self._active = 0

        for _ in range(initial_cap):
            try:
                conn = factory()
            except Exception as exc:
                self.close()
                raise RuntimeError(f"factory is not able to fill the pool: {exc}") from exc
            self._conns.append(conn)

    def get(self) -> Conn:
        """Borrow an idle connection, creating a new one when none is idle."""
        with self._lock:
            if self._conns is None:
                raise PoolClosedError()
            if self._conns:
                conn = self._conns.popleft()
                self._active += 1
                return Conn(conn, self)
            factory = self._factory

        if factory is None:
            raise PoolClosedError()

        conn = factory()
        with self._lock:
            self._active += 1
        return Conn(conn, self)

    def _put(self, conn: Any) -> None:
        if conn is None:
            raise ValueError("connection is nil. rejecting")

        with self._lock:
            self._active -= 1
            if self._conns is not None and len(self._conns) < self._max_cap:
                self._conns.append(conn)
                return

        conn.close()

    def close(self) -> None:
        """Close every idle connection and refuse further requests."""
        with self._lock:
            conns = self._conns
            self._conns = None
            self._factory = None

        if conns is None:
            return

        for conn in conns:
            try:
                conn.close()
            except Exception:
                _log.debug("Failed to close pooled connection", exc_info=True)

    def available(self) -> int:
        """Return the number of idle connections."""
        with self._lock:
            return len(self._conns) if self._conns is not None else 0

    def busy(self) -> int:
        """Return the number of connections currently borrowed."""
        return self._active