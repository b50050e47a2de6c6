"""Delayed task execution off the key-event hot path.

``TaskScheduler`` runs tasks on a single daemon worker thread, so delayed
captures, layout-switch polls and corrections never run concurrently with
each other.  ``ManualScheduler`` has the same interface over a virtual clock
and runs tasks only when told to; the simulator and the tests use it.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class CancelToken:
    """Cancels every task scheduled with it."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ScheduledTask:
    def __init__(self, due: float, seq: int, fn: Callable[[], None], token: CancelToken | None):
        self.due = due
        self.seq = seq
        self.fn = fn
        self.token = token
        self._cancelled = False

    def __lt__(self, other: "ScheduledTask") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)

    @property
    def cancelled(self) -> bool:
        return self._cancelled or (self.token is not None and self.token.cancelled)

    def cancel(self) -> None:
        self._cancelled = True


def _run_task(task: ScheduledTask) -> None:
    try:
        task.fn()
    except Exception:
        logger.exception("Scheduled task %r failed", getattr(task.fn, '__name__', task.fn))


class TaskScheduler:
    """Serial delayed-task queue backed by one worker thread."""

    def __init__(self, name: str = "switchback-scheduler"):
        self._heap: list[ScheduledTask] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._running = True
        self._thread = threading.Thread(target=self._loop, daemon=True, name=name)
        self._thread.start()

    def call_later(self, delay: float, fn: Callable[[], None],
                   token: CancelToken | None = None) -> ScheduledTask:
        task = ScheduledTask(time.monotonic() + max(0.0, delay), next(self._seq), fn, token)
        with self._cond:
            if not self._running:
                task.cancel()
                return task
            heapq.heappush(self._heap, task)
            self._cond.notify()
        return task

    def cancel_all(self) -> None:
        with self._cond:
            for task in self._heap:
                task.cancel()
            self._heap.clear()

    def _loop(self) -> None:
        while True:
            with self._cond:
                while self._running and not self._heap:
                    self._cond.wait()
                if not self._running:
                    return
                task = self._heap[0]
                wait = task.due - time.monotonic()
                if wait > 0:
                    self._cond.wait(wait)
                    continue
                heapq.heappop(self._heap)
            if not task.cancelled:
                _run_task(task)

    def shutdown(self, timeout: float = 1.0) -> None:
        """Cancel pending tasks and stop the worker thread."""
        with self._cond:
            self._running = False
            for task in self._heap:
                task.cancel()
            self._heap.clear()
            self._cond.notify_all()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout)


class ManualScheduler:
    """Deterministic scheduler driven by an explicit virtual clock."""

    def __init__(self):
        self.now = 0.0
        self._heap: list[ScheduledTask] = []
        self._seq = itertools.count()
        self._running = True

    def call_later(self, delay: float, fn: Callable[[], None],
                   token: CancelToken | None = None) -> ScheduledTask:
        task = ScheduledTask(self.now + max(0.0, delay), next(self._seq), fn, token)
        if not self._running:
            task.cancel()
            return task
        heapq.heappush(self._heap, task)
        return task

    def pending(self) -> int:
        return sum(1 for t in self._heap if not t.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every task that becomes due.

        Returns the number of tasks run.
        """
        target = self.now + seconds
        ran = 0
        while self._heap and self._heap[0].due <= target:
            task = heapq.heappop(self._heap)
            self.now = max(self.now, task.due)
            if not task.cancelled:
                _run_task(task)
                ran += 1
        self.now = target
        return ran

    def run_until_idle(self, limit: int = 10000) -> int:
        """Run tasks (including ones they schedule) until none are left."""
        ran = 0
        while self._heap and ran < limit:
            task = heapq.heappop(self._heap)
            self.now = max(self.now, task.due)
            if not task.cancelled:
                _run_task(task)
                ran += 1
        return ran

    def cancel_all(self) -> None:
        for task in self._heap:
            task.cancel()
        self._heap.clear()

    def shutdown(self, timeout: float = 1.0) -> None:
        self._running = False
        self.cancel_all()
