"""Deferred callbacks for debouncing and frame throttling.

The engine never blocks: it asks a Scheduler to run a callback later and keeps
the returned handle so the work can be cancelled on teardown. TickScheduler
runs on a clock the host advances (a render loop, or a test); the
ThreadingScheduler uses wall-clock timers.
"""

import heapq
import itertools
import threading
import time
from collections.abc import Callable
from contextlib import nullcontext
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def now(self) -> float: ...


class _TickHandle:
    def __init__(self, deadline: float, callback: Callable[[], None]):
        self.deadline = deadline
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class TickScheduler:
    """A virtual clock in milliseconds.

    Callbacks due at or before the new time fire in deadline order when the
    clock is moved forward with advance() or tick(). Callbacks scheduled while
    firing are honoured within the same advance if they fall inside it.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._queue: list[tuple[float, int, _TickHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _TickHandle:
        handle = _TickHandle(self._now + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (handle.deadline, next(self._counter), handle))
        return handle

    def advance(self, delta_ms: float) -> int:
        return self.tick(self._now + max(0.0, delta_ms))

    def tick(self, now_ms: float) -> int:
        """Move the clock to now_ms and run everything that fell due. Returns the number of callbacks run."""
        fired = 0
        while self._queue and self._queue[0][0] <= now_ms:
            deadline, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, deadline)
            handle.callback()
            fired += 1
        self._now = max(self._now, now_ms)
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)


class _ThreadingHandle:
    def __init__(self, timer: threading.Timer):
        self._timer = timer
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ThreadingScheduler:
    """Wall-clock scheduler backed by threading.Timer.

    Callbacks run under self.lock. Engine objects driven by this scheduler
    also take the lock in their public methods (see scheduler_lock), so a
    caller never interleaves with a running callback. The lock must be
    reentrant.
    """

    def __init__(self, lock=None):
        self.lock = lock or threading.RLock()

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _ThreadingHandle:
        holder: list[_ThreadingHandle] = []

        def _run():
            with self.lock:
                if holder and holder[0].cancelled:
                    return
                callback()

        timer = threading.Timer(max(0.0, delay_ms) / 1000.0, _run)
        timer.daemon = True
        handle = _ThreadingHandle(timer)
        holder.append(handle)
        timer.start()
        return handle


def scheduler_lock(scheduler):
    """The lock a scheduler runs its callbacks under; a no-op context when it has none."""
    lock = getattr(scheduler, "lock", None)
    return lock if lock is not None else nullcontext()
