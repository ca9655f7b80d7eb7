# activity_recorder/timers.py
import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Timer:
    __slots__ = ("deadline", "callback", "cancelled")

    def __init__(self, deadline: float, callback: Callable[[], None]):
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class TimerQueue:
    """
    Single-threaded delayed callbacks.

    Nothing fires on its own: the owning loop calls run_due() whenever it
    gets control back (after pumping browser events, or after a test
    advances its fake clock).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._heap: List[Tuple[float, int, Timer]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> Timer:
        timer = Timer(self.clock() + delay, callback)
        heapq.heappush(self._heap, (timer.deadline, next(self._seq), timer))
        return timer

    def _discard_cancelled(self):
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)

    def next_deadline(self) -> Optional[float]:
        self._discard_cancelled()
        return self._heap[0][0] if self._heap else None

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._heap if not t.cancelled)

    def run_due(self) -> int:
        """Fire every timer whose deadline has passed, earliest first."""
        fired = 0
        now = self.clock()
        while True:
            self._discard_cancelled()
            if not self._heap or self._heap[0][0] > now:
                break
            _, _, timer = heapq.heappop(self._heap)
            timer.cancelled = True
            timer.callback()
            fired += 1
        if fired:
            logger.debug("Fired %d timer(s)", fired)
        return fired
