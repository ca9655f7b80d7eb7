# sources/soup.py
"""
In-process DOM backed by BeautifulSoup.

SoupDocument parses an HTML page and plays the role of the browser: it
dispatches DomEvents to registered listeners, and its helpers (click, type_text,
scroll_to, push_state, ...) reproduce what a user interaction would do to the
page state before the matching event fires.
"""
import logging
import uuid
from collections import defaultdict
from typing import Dict, Iterator, List, Optional, Union
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup, Tag

from activity_recorder.dom import DomEvent, Listener

logger = logging.getLogger(__name__)


class SoupElement:
    __slots__ = ("tag",)

    def __init__(self, tag: Tag):
        self.tag = tag

    def __repr__(self):
        return f"<SoupElement {self.tag.name}>"

    @property
    def tag_name(self) -> str:
        return (self.tag.name or "").upper()

    @property
    def parent(self) -> Optional["SoupElement"]:
        parent = self.tag.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return SoupElement(parent)

    def previous_siblings(self) -> Iterator["SoupElement"]:
        for sib in self.tag.previous_siblings:
            if isinstance(sib, Tag):
                yield SoupElement(sib)

    @property
    def text(self) -> str:
        return " ".join(self.tag.get_text(" ").split())

    @property
    def value(self) -> Optional[str]:
        name = self.tag.name
        if name == "input":
            return self.tag.get("value", "")
        if name == "textarea":
            return self.tag.get_text()
        if name == "select":
            option = self.tag.find("option", selected=True) or self.tag.find("option")
            if option is None:
                return ""
            return option.get("value", option.get_text(strip=True))
        return None

    @property
    def has_click_handler(self) -> bool:
        return self.tag.has_attr("onclick")

    def get_attribute(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def has_attribute(self, name: str) -> bool:
        return self.tag.has_attr(name)


class SoupDocument:
    def __init__(self,
                 html: str,
                 url: str = "about:blank",
                 ready_state: str = "complete",
                 parser: str = "html.parser"):
        self.parser = parser
        self.url = url
        self.ready_state = ready_state
        self.scroll_y = 0
        self.page_id = uuid.uuid4().hex
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._load(html)

    def _load(self, html: str):
        self.soup = BeautifulSoup(html, self.parser)
        self.title = self.soup.title.string.strip() if self.soup.title and self.soup.title.string else ""

    # ---------------- Listeners ----------------
    def add_event_listener(self, event_type: str, handler: Listener):
        self._listeners[event_type].append(handler)

    def remove_event_listener(self, event_type: str, handler: Listener):
        try:
            self._listeners[event_type].remove(handler)
        except ValueError:
            pass

    def listener_count(self) -> int:
        return sum(len(h) for h in self._listeners.values())

    def dispatch(self, event_type: str, target: Union[Tag, SoupElement, None] = None, key: str = None):
        if isinstance(target, Tag):
            target = SoupElement(target)
        event = DomEvent(type=event_type, target=target, key=key)
        for handler in list(self._listeners[event_type]):
            handler(event)

    # ---------------- Queries ----------------
    def query(self, css: str) -> SoupElement:
        tag = self.soup.select_one(css)
        if tag is None:
            raise LookupError(f"No element matches {css!r}")
        return SoupElement(tag)

    def query_all(self, css: str) -> List[SoupElement]:
        return [SoupElement(t) for t in self.soup.select(css)]

    # ---------------- User actions ----------------
    def click(self, css: str):
        self.dispatch("click", self.query(css))

    def fill(self, css: str, value: str):
        """Set a field's value in one step and fire a single input event."""
        el = self.query(css)
        _set_value(el.tag, value)
        self.dispatch("input", el)

    def type_text(self, css: str, text: str):
        """Append text one character at a time, one input event per keystroke."""
        el = self.query(css)
        for ch in text:
            _set_value(el.tag, (el.value or "") + ch)
            self.dispatch("input", el)

    def press(self, css: str, key: str):
        self.dispatch("keydown", self.query(css), key=key)

    def scroll_to(self, y: float):
        self.scroll_y = y
        self.dispatch("scroll")

    def push_state(self, url: str):
        self.url = urljoin(self.url, url)
        self.dispatch("pushstate")

    def go_back(self, url: str):
        self.url = urljoin(self.url, url)
        self.dispatch("popstate")

    def go_to_anchor(self, fragment: str):
        """In-page anchor navigation: browsers fire popstate then hashchange."""
        base, _ = urldefrag(self.url)
        self.url = f"{base}#{fragment.lstrip('#')}"
        self.dispatch("popstate")
        self.dispatch("hashchange")

    def finish_loading(self):
        self.ready_state = "complete"
        self.dispatch("load")

    def reload(self, html: Optional[str] = None, url: Optional[str] = None):
        """Start a new page lifetime, optionally with new content."""
        if html is not None:
            self._load(html)
        if url is not None:
            self.url = url
        self.page_id = uuid.uuid4().hex
        self.scroll_y = 0
        self.ready_state = "loading"
        logger.debug("Reloading %s", self.url)


def _set_value(tag: Tag, value: str):
    if tag.name == "textarea":
        tag.string = value
    else:
        tag["value"] = value
