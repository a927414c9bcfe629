"""Single-threaded timer queue for delayed engine callbacks.

The engine only ever needs one-shot timers (the incident pause and debounced
saves). `Scheduler` keeps them on a virtual clock so tests can step time
explicitly; `MonotonicScheduler` drives the same queue from the wall clock.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """Handle returned by `call_later`; pass it to `cancel`."""

    __slots__ = ("due", "seq", "callback", "label", "cancelled")

    def __init__(self, due: float, seq: int, callback: Callable[[], None], label: str) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.label = label
        self.cancelled = False

    def __lt__(self, other: TimerHandle) -> bool:
        return (self.due, self.seq) < (other.due, other.seq)

    def __repr__(self) -> str:
        return f"TimerHandle(label={self.label!r}, due={self.due}, cancelled={self.cancelled})"


class Scheduler:
    """Virtual-clock timer queue. Callbacks run only from `advance`/`run_pending`."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: list[TimerHandle] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None], label: str = "") -> TimerHandle:
        if delay < 0:
            delay = 0.0
        handle = TimerHandle(self._now + delay, next(self._seq), callback, label)
        heapq.heappush(self._queue, handle)
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is not None:
            handle.cancelled = True

    def pending(self) -> int:
        return sum(1 for h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire every timer that came due, in due order."""
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0].due <= target:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, handle.due)
            fired += self._fire(handle)
        self._now = target
        return fired

    def run_pending(self) -> int:
        """Fire timers already due at the current time."""
        return self.advance(0.0)

    def _fire(self, handle: TimerHandle) -> int:
        handle.cancelled = True
        try:
            handle.callback()
        except Exception as e:
            logger.error("Scheduled callback %s failed: %s", handle.label or handle.callback, e, exc_info=True)
        return 1


class MonotonicScheduler(Scheduler):
    """Scheduler whose clock follows `time.monotonic()`; call `pump()` to fire due timers."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        super().__init__(start=clock())

    def pump(self) -> int:
        elapsed = self._clock() - self._now
        return self.advance(max(0.0, elapsed))
