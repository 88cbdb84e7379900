"""Deadline-ordered delay queue used to expire moderation entries.

All pending removals live in one min-heap owned by :class:`ExpiryScheduler`
and are drained by a single daemon thread, so the number of timers does not
grow with the number of bans. Handles are cancelled lazily: a cancelled
handle stays in the heap until it reaches the top and is then discarded.

The worker never sleeps longer than ``slack`` seconds between checks, which
bounds how late a removal can fire. Removals never fire before their
deadline.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)

# Upper bound, in seconds, on how late a due callback may run.
SCHEDULER_SLACK = 1.0


class ScheduledRemoval:
    """Handle for one pending callback."""

    __slots__ = ("deadline", "callback", "cancelled", "fired")

    def __init__(self, deadline: float, callback: Callable[[], None]):
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class ExpiryScheduler:
    def __init__(self, clock: Callable[[], float] = time.monotonic, slack: float = SCHEDULER_SLACK):
        self.clock = clock
        self.slack = slack
        self._heap: List[Tuple[float, int, ScheduledRemoval]] = []
        self._seq = itertools.count()
        self._live = 0
        self._cond = threading.Condition()
        self._thread: threading.Thread | None = None
        self._stopping = False

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledRemoval:
        """Run ``callback`` once, ``delay`` seconds from now."""
        handle = ScheduledRemoval(self.clock() + max(0.0, delay), callback)
        with self._cond:
            heapq.heappush(self._heap, (handle.deadline, next(self._seq), handle))
            self._live += 1
            self._cond.notify()
        return handle

    def cancel(self, handle: ScheduledRemoval) -> bool:
        """Cancel a pending handle. Returns ``False`` if it already fired."""
        with self._cond:
            if not handle.active:
                return False
            handle.cancelled = True
            self._live -= 1
            return True

    def pending(self) -> int:
        """Number of handles that have neither fired nor been cancelled."""
        with self._cond:
            return self._live

    def _pop_due(self, now: float) -> List[ScheduledRemoval]:
        due = []
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle.fired = True
            self._live -= 1
            due.append(handle)
        # drop cancelled handles sitting on top so the heap does not hold them
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        return due

    def run_pending(self, now: float | None = None) -> int:
        """Fire every handle whose deadline is at or before ``now``.

        Callbacks run outside the scheduler lock, so they may take other
        locks (the store's) without ordering problems.
        """
        if now is None:
            now = self.clock()
        with self._cond:
            due = self._pop_due(now)
        for handle in due:
            try:
                handle.callback()
            except Exception:
                logger.exception("Scheduled removal failed")
        return len(due)

    def _next_wait(self) -> float:
        if not self._heap:
            return self.slack
        return min(max(0.0, self._heap[0][0] - self.clock()), self.slack)

    def _worker(self) -> None:
        logger.debug("Expiry scheduler started")
        while True:
            with self._cond:
                if self._stopping:
                    break
                self._cond.wait(self._next_wait())
                if self._stopping:
                    break
            self.run_pending()
        logger.debug("Expiry scheduler stopped")

    def start(self) -> None:
        with self._cond:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stopping = False
            self._thread = threading.Thread(target=self._worker, name="expiry-scheduler", daemon=True)
            self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the worker thread. Pending handles are kept, not fired."""
        with self._cond:
            thread = self._thread
            self._stopping = True
            self._cond.notify_all()
        if thread is not None:
            thread.join(timeout)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
