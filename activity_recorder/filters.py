# activity_recorder/filters.py
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from activity_recorder.dom import ElementView
from activity_recorder.timers import Timer, TimerQueue

CONTAINER_TAGS = {
    "html", "body", "div", "span", "section", "article", "main",
    "header", "footer", "nav", "aside",
}


def is_actionable(el: Optional[ElementView]) -> bool:
    """
    Generic containers only count as click targets when they are marked
    interactive (inline click handler, role="button", or tabindex).
    """
    if el is None or not el.tag_name:
        return False
    if el.tag_name.lower() not in CONTAINER_TAGS:
        return True
    return (
        el.has_click_handler
        or el.get_attribute("role") == "button"
        or el.has_attribute("tabindex")
    )


class Debouncer:
    """
    Keyed debounce over a TimerQueue.

    Each call restarts the wait window for its key and replaces the stored
    arguments, so a burst produces one callback carrying the last call's
    arguments.
    """

    def __init__(self, timers: TimerQueue, wait: float, callback: Callable[..., Any]):
        self.timers = timers
        self.wait = wait
        self.callback = callback
        self._pending: Dict[Hashable, Tuple[Timer, tuple]] = {}

    def __call__(self, *args, key: Hashable = None):
        previous = self._pending.get(key)
        if previous:
            previous[0].cancel()
        timer = self.timers.call_later(self.wait, lambda: self._fire(key))
        self._pending[key] = (timer, args)

    def _fire(self, key: Hashable):
        entry = self._pending.pop(key, None)
        if entry:
            self.callback(*entry[1])

    @property
    def pending(self) -> int:
        return len(self._pending)

    def cancel(self):
        for timer, _ in self._pending.values():
            timer.cancel()
        self._pending.clear()

    def flush(self):
        """Run every pending callback now instead of waiting."""
        for key in list(self._pending):
            timer, _ = self._pending[key]
            timer.cancel()
            self._fire(key)
