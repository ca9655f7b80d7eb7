# activity_recorder/recorder.py
import logging
import time
from typing import Callable, Dict, Optional

from activity_recorder.config import RecorderConfig
from activity_recorder.dom import TEXT_ENTRY_TAGS, DocumentLike, DomEvent, ElementView, Listener
from activity_recorder.emitter import EventEmitter
from activity_recorder.events import build_event, describe_element, value_payload
from activity_recorder.filters import Debouncer, is_actionable
from activity_recorder.locators import xpath
from activity_recorder.models import EventKind, InteractionEvent
from activity_recorder.timers import TimerQueue

logger = logging.getLogger(__name__)

_NO_PAGE = object()


class Subscription:
    """Handle returned by Recorder.attach(); call detach() to stop capturing."""

    def __init__(self, recorder: "Recorder", document: DocumentLike, handlers: Dict[str, Listener]):
        self._recorder = recorder
        self._document = document
        self._handlers = handlers
        self.active = True

    def detach(self):
        if not self.active:
            return
        for event_type, handler in self._handlers.items():
            self._document.remove_event_listener(event_type, handler)
        self.active = False
        self._recorder._detached(self._document)

    __call__ = detach


class Recorder:
    """
    Turns raw DOM events from one document into InteractionEvents.

    All capture state lives on the instance: the page-visit marker, the last
    recorded scroll offset and URL, and the debounce timers.
    """

    def __init__(self,
                 sink,
                 config: Optional[RecorderConfig] = None,
                 timers: Optional[TimerQueue] = None,
                 clock: Callable[[], float] = time.time):
        self.config = config or RecorderConfig()
        self.timers = timers or TimerQueue()
        self.clock = clock
        self.emitter = EventEmitter(sink)

        self._document: Optional[DocumentLike] = None
        self._visited_page = _NO_PAGE
        self._last_scroll = 0.0
        self._last_url: Optional[str] = None

        self._input_debouncer = Debouncer(self.timers, self.config.input_debounce, self._emit_input)
        self._scroll_debouncer = Debouncer(self.timers, self.config.scroll_debounce, self._emit_scroll)

    # ---------------- Lifecycle ----------------
    def attach(self, document: DocumentLike) -> Subscription:
        if self._document is not None:
            raise RuntimeError("Recorder is already attached to a document")
        self._document = document
        self._last_scroll = document.scroll_y or 0
        self._last_url = document.url

        handlers = {
            "click": self._on_click,
            "input": self._on_input,
            "keydown": self._on_keydown,
            "scroll": self._on_scroll,
            "load": self._on_load,
            "pushstate": self._on_navigation,
            "popstate": self._on_navigation,
            "hashchange": self._on_navigation,
        }
        for event_type, handler in handlers.items():
            document.add_event_listener(event_type, handler)
        logger.info("Recorder attached to %s", document.url)

        if document.ready_state == "complete":
            self._record_page_visit()
        return Subscription(self, document, handlers)

    def _detached(self, document: DocumentLike):
        self._input_debouncer.cancel()
        self._scroll_debouncer.cancel()
        self._document = None
        logger.info("Recorder detached from %s", document.url)

    def flush(self):
        """Emit pending debounced events without waiting for their quiet period."""
        self._input_debouncer.flush()
        self._scroll_debouncer.flush()

    # ---------------- Emit ----------------
    def _emit(self, kind: EventKind, el: Optional[ElementView] = None, payload=None, target=None) -> InteractionEvent:
        event = build_event(
            kind,
            self._document,
            el,
            payload=payload,
            clock=self.clock,
            target=target,
            text_limit=self.config.text_selector_length,
        )
        self.emitter.emit(event)
        return event

    # ---------------- Page visit / navigation ----------------
    def _record_page_visit(self):
        page = self._document.page_id
        if page == self._visited_page:
            return
        self._visited_page = page
        self._last_url = self._document.url
        self._last_scroll = self._document.scroll_y or 0
        self._emit(EventKind.PAGE_VISIT, payload={})

    def _on_load(self, event: DomEvent):
        self._record_page_visit()

    def _on_navigation(self, event: DomEvent):
        url = self._document.url
        if url == self._last_url:
            logger.debug("Ignoring %s without URL change", event.type)
            return
        previous, self._last_url = self._last_url, url
        self._emit(EventKind.NAVIGATION, payload={"from": previous})

    # ---------------- Click ----------------
    def _on_click(self, event: DomEvent):
        el = event.target
        if not is_actionable(el):
            logger.debug("Ignoring click on non-actionable %s", el.tag_name if el else None)
            return
        text = (el.text or "")[:self.config.click_text_length] or None
        self._emit(EventKind.CLICK, el, payload={"text": text})

    # ---------------- Input ----------------
    def _on_input(self, event: DomEvent):
        if event.target is None:
            return
        self._input_debouncer(event.target, key=xpath(event.target))

    def _emit_input(self, el: ElementView):
        target = describe_element(el, self.config.text_selector_length)
        self._emit(EventKind.INPUT, payload=value_payload(el, self.config, target), target=target)

    def _on_keydown(self, event: DomEvent):
        el = event.target
        if event.key != "Enter" or el is None or el.tag_name.upper() not in TEXT_ENTRY_TAGS:
            return
        target = describe_element(el, self.config.text_selector_length)
        self._emit(EventKind.KEYPRESS_ENTER, payload=value_payload(el, self.config, target), target=target)

    # ---------------- Scroll ----------------
    def _on_scroll(self, event: DomEvent):
        self._scroll_debouncer()

    def _emit_scroll(self):
        y = self._document.scroll_y or 0
        delta = abs(y - self._last_scroll)
        if delta <= self.config.scroll_threshold:
            logger.debug("Ignoring scroll of %spx", delta)
            return
        direction = "down" if y > self._last_scroll else "up"
        self._last_scroll = y
        self._emit(EventKind.SCROLL, payload={"y": round(y), "delta": round(delta), "direction": direction})
