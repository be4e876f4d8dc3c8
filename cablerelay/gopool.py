"""A bounded pool of reusable worker threads."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections import deque
from typing import Callable

WORKER_RESPAWN_THRESHOLD = 1 << 16
"""How many tasks a worker performs before it is replaced by a fresh thread."""

_log = logging.getLogger(__name__)

_pools: list["GoPool"] = []


class ScheduleTimeoutError(TimeoutError):
    """Raised when no worker became free within the scheduling timeout."""

    def __init__(self) -> None:
        super().__init__("schedule error: timed out")


def all_pools() -> list["GoPool"]:
    """Return every pool created so far."""
    return list(_pools)


class GoPool:
    """Runs tasks on at most ``size`` threads, queueing up to half that many.

    One fifth of the threads (at least one, at most 1024) are started up front.
    """

    def __init__(self, name: str, size: int) -> None:
        if size <= 0:
            raise ValueError("pool size must be positive")

        self.name = name
        self.size = size

        spawn = min(max(size // 5, 1), 1024)
        self._queue_size = max(size // 2, 1)
        self._work: deque[Callable[[], None]] = deque()
        self._workers = 0
        self._cond = threading.Condition()
        self._ids = itertools.count(1)

        for _ in range(spawn):
            with self._cond:
                self._workers += 1
            self._start_worker(None)

        _pools.append(self)

    def schedule(self, task: Callable[[], None]) -> None:
        """Schedule a task, waiting as long as needed for room."""
        self._schedule(task, None)

    def schedule_timeout(self, timeout: float, task: Callable[[], None]) -> None:
        """Schedule a task, raising ScheduleTimeoutError after ``timeout`` seconds."""
        self._schedule(task, timeout)

    def _schedule(self, task: Callable[[], None], timeout: float | None) -> None:
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._cond:
            while True:
                if len(self._work) < self._queue_size:
                    self._work.append(task)
                    self._cond.notify_all()
                    return
                if self._workers < self.size:
                    self._workers += 1
                    break
                if deadline is None:
                    self._cond.wait()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise ScheduleTimeoutError()
                    self._cond.wait(remaining)

        self._start_worker(task)

    def _start_worker(self, task: Callable[[], None] | None) -> None:
        thread = threading.Thread(
            target=self._worker,
            args=(task,),
            name=f"{self.name}-worker-{next(self._ids)}",
            daemon=True,
        )
        thread.start()

    def _worker(self, task: Callable[[], None] | None) -> None:
        if task is not None:
            self._run(task)
        performed = 1

        while True:
            with self._cond:
                while not self._work:
                    self._cond.wait()
                task = self._work.popleft()
                self._cond.notify_all()

            self._run(task)
            performed += 1

            if performed >= WORKER_RESPAWN_THRESHOLD:
                with self._cond:
                    if not self._work:
                        self._workers -= 1
                        self._cond.notify_all()
                        return
                # Hand the slot over to a fresh thread so queued work proceeds.
                self._start_worker(None)
                return

    def _run(self, task: Callable[[], None]) -> None:
        try:
            task()
        except Exception:
            _log.exception("Task failed in pool %s", self.name)