"""Rate-limited execution of disconnect notifications."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Protocol

_log = logging.LoggerAdapter(
    logging.getLogger(__name__), {"fields": {"context": "disconnector"}}
)

_MAX_QUEUED = 4096


class DisconnectNode(Protocol):
    def disconnect_now(self, session: Any) -> None: ...


@dataclass
class DisconnectQueueConfig:
    """Disconnect queue settings."""

    # Maximum number of disconnect calls per second.
    rate: int = 100
    # Seconds to wait for queued calls at shutdown.
    shutdown_timeout: int = 5


class DisconnectTimeoutError(TimeoutError):
    """Raised when queued disconnects could not all be made during shutdown."""


class DisconnectQueue:
    """Calls ``node.disconnect_now`` for queued sessions at a limited rate."""

    def __init__(self, node: DisconnectNode, config: DisconnectQueueConfig) -> None:
        if config.rate <= 0:
            raise ValueError("rate must be positive")
        self._node = node
        self._interval = (1000 // config.rate) / 1000
        self._timeout = float(config.shutdown_timeout)
        self._queue: deque[Any] = deque()
        self._cond = threading.Condition()
        self._stopped = False

        _log.debug("Calls rate: %ss", self._interval)

    def run(self) -> None:
        """Process queued sessions until shut down."""
        next_tick = time.monotonic() + self._interval

        while True:
            with self._cond:
                while not self._queue and not self._stopped:
                    self._cond.wait()
                if self._stopped:
                    return
                session = self._queue.popleft()
                self._cond.notify_all()

            now = time.monotonic()
            if now < next_tick:
                time.sleep(next_tick - now)
                now = next_tick
            next_tick = now + self._interval

            try:
                self._node.disconnect_now(session)
            except Exception:
                _log.debug("Disconnect call failed", exc_info=True)

    def shutdown(self) -> None:
        """Stop throttling and make the remaining calls one by one."""
        with self._cond:
            if self._stopped:
                return
            self._stopped = True
            self._cond.notify_all()
            left = len(self._queue)

        if left == 0:
            return

        _log.info("Invoking remaining disconnects for %ss: %d", self._timeout, left)

        while left > 0:
            with self._cond:
                deadline = time.monotonic() + self._timeout
                while not self._queue:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise DisconnectTimeoutError(
                            f"Had no time to invoke Disconnect calls: {len(self._queue)}"
                        )
                    self._cond.wait(remaining)
                session = self._queue.popleft()
                self._cond.notify_all()

            self._node.disconnect_now(session)
            left -= 1

    def enqueue(self, session: Any) -> None:
        """Queue a session for disconnect; ignored once shut down."""
        with self._cond:
            while not self._stopped and len(self._queue) >= _MAX_QUEUED:
                self._cond.wait()
            if self._stopped:
                return
            self._queue.append(session)
            self._cond.notify_all()

    def size(self) -> int:
        """Return the number of queued sessions."""
        with self._cond:
            return len(self._queue)


class NoopDisconnectQueue:
    """A disconnect queue that drops every session instead of disconnecting it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running = False
        self._dropped = 0

    @property
    def running(self) -> bool:
        """Whether ``run`` was called and ``shutdown`` has not been since."""
        with self._lock:
            return self._running

    @property
    def dropped(self) -> int:
        """How many sessions were handed over and discarded."""
        with self._lock:
            return self._dropped

    def run(self) -> None:
        """Mark the queue as running and report that disconnects are off."""
        with self._lock:
            self._running = True
        _log.info("Disconnect events are turned off")

    def shutdown(self) -> None:
        """Mark the queue as stopped."""
        with self._lock:
            self._running = False

    def enqueue(self, session: Any) -> None:
        """Discard the session, counting it."""
        with self._lock:
            self._dropped += 1

    def size(self) -> int:
        return 0