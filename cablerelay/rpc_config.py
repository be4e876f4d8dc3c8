"""RPC controller settings and the concurrency barrier for RPC calls."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

DEFAULT_RPC_HOST = "localhost:50051"


class FixedSizeBarrier:
    """Limits the number of concurrent calls to a fixed capacity."""

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        self._capacity = capacity
        self._capacity_info = str(capacity)
        self._free = capacity
        self._cond = threading.Condition()
        self._running = False
        self._exhausted_count = 0

    def acquire(self) -> None:
        """Take a slot, waiting until one is free."""
        with self._cond:
            while self._free == 0:
                self._cond.wait()
            self._free -= 1

    def release(self) -> None:
        """Give a slot back."""
        with self._cond:
            if self._free >= self._capacity:
                raise ValueError("barrier released more times than acquired")
            self._free += 1
            self._cond.notify()

    def busy_count(self) -> int:
        """Return the number of slots currently taken."""
        with self._cond:
            return self._capacity - self._free

    def capacity(self) -> int:
        return self._capacity

    def capacity_info(self) -> str:
        return self._capacity_info

    def exhausted(self) -> None:
        """Record that the server reported exhaustion; the capacity stays fixed."""
        with self._cond:
            self._exhausted_count += 1

    @property
    def exhausted_count(self) -> int:
        """How many exhaustion reports were received."""
        with self._cond:
            return self._exhausted_count

    def has_dynamic_capacity(self) -> bool:
        return False

    def start(self) -> None:
        """Mark the barrier as in service."""
        with self._cond:
            self._running = True

    def stop(self) -> None:
        """Mark the barrier as out of service."""
        with self._cond:
            self._running = False

    @property
    def running(self) -> bool:
        """Whether the barrier has been started and not stopped."""
        with self._cond:
            return self._running


@dataclass
class RPCConfig:
    """RPC controller configuration."""

    host: str = DEFAULT_RPC_HOST
    # Should be slightly less than the RPC server concurrency.
    concurrency: int = 28
    enable_tls: bool = False
    max_recv_size: int = 0
    max_send_size: int = 0
    dial_fun: Optional[Callable[["RPCConfig"], Any]] = None