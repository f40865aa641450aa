"""
Cancellable delayed callbacks.

TimerScheduler runs callbacks on threading.Timer threads. ManualScheduler
runs them only when advance() moves its clock, for replay and tests.
"""

import heapq
import itertools
import threading
from typing import Callable, List, Optional, Tuple


class ScheduledTask:
    """Handle for one pending callback."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.done = False
        self._timer: Optional[threading.Timer] = None

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.done)

    def cancel(self):
        """Prevent the callback from running. Safe to call repeatedly."""
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    def run(self):
        if not self.pending:
            return
        self.done = True
        self.callback()

class TimerScheduler:
    """Schedules callbacks on daemon timer threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """
        Run callback after delay seconds unless cancelled first.

        Args:
            delay: Delay in seconds
            callback: Zero-argument callable

        Returns:
            ScheduledTask handle
        """
        task = ScheduledTask(delay, callback)
        timer = threading.Timer(delay, task.run)
        timer.daemon = True
        task._timer = timer
        timer.start()
        return task

class ManualScheduler:
    """Scheduler driven by an explicit clock."""

    def __init__(self, start_time: float = 0.0):
        self.now = start_time
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(delay, callback)
        heapq.heappush(self._queue, (self.now + delay, next(self._counter), task))
        return task

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, task in self._queue if task.pending)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward and run every task that came due.

        Returns:
            Number of callbacks run
        """
        target = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            self.now = due
            if task.pending:
                task.run()
                ran += 1
        self.now = target
        return ran
