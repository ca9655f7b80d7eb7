# sources/browser.py
"""
Playwright bridge.

RECORDER_JS is installed as an init script in every page. It listens to the
raw DOM events and forwards them as console messages prefixed with
``__PY_RECORDER__:``. BrowserDocument turns those messages back into
DomEvents whose targets are SnapshotElements rebuilt from the forwarded
ancestor chain, so the Python Recorder runs unchanged against a real browser.
"""
import json
import logging
from collections import defaultdict
from typing import Any, Dict, Iterator, List, Optional

from playwright.sync_api import ConsoleMessage, Page

from activity_recorder.dom import DomEvent, Listener

logger = logging.getLogger(__name__)

CONSOLE_PREFIX = "__PY_RECORDER__:"

RECORDER_JS = r"""
(() => {
    if (window.top !== window || window.__pyRecorderInstalled) return;
    window.__pyRecorderInstalled = true;

    const PREFIX = "__PY_RECORDER__:";
    const FORM_TAGS = ["INPUT", "TEXTAREA", "SELECT"];
    const pageId = Date.now().toString(36) + Math.random().toString(36).slice(2);

    function snapshot(el) {
        const chain = [];
        let first = true;
        while (el && el.nodeType === 1) {
            const attributes = {};
            for (const a of el.attributes) attributes[a.name] = a.value;
            const siblings = [];
            for (let s = el.previousElementSibling; s; s = s.previousElementSibling) {
                siblings.push(s.tagName);
            }
            chain.push({
                tag: el.tagName,
                attributes: attributes,
                text: first ? (el.innerText || "").trim().slice(0, 200) : "",
                value: first && FORM_TAGS.includes(el.tagName) ? String(el.value ?? "") : null,
                onclick: typeof el.onclick === "function",
                siblings: siblings
            });
            first = false;
            el = el.parentElement;
        }
        return chain;
    }

    function send(type, target, extra) {
        const msg = Object.assign({
            type: type,
            pageId: pageId,
            url: location.href,
            title: document.title,
            readyState: document.readyState,
            scrollY: window.scrollY,
            target: target ? snapshot(target) : null
        }, extra || {});
        console.log(PREFIX + JSON.stringify(msg));
    }

    document.addEventListener("click", e => send("click", e.target), true);
    document.addEventListener("input", e => send("input", e.target), true);
    document.addEventListener("keydown", e => {
        if (e.key === "Enter") send("keydown", e.target, { key: e.key });
    }, true);
    window.addEventListener("scroll", () => send("scroll", null), { passive: true });
    window.addEventListener("load", () => send("load", null), { once: true });
    window.addEventListener("popstate", () => send("popstate", null));
    window.addEventListener("hashchange", () => send("hashchange", null));

    const push = history.pushState;
    history.pushState = function () {
        const result = push.apply(this, arguments);
        send("pushstate", null);
        return result;
    };
})();
"""


class SnapshotElement:
    """Element view over one node of a forwarded ancestor chain."""

    def __init__(self,
                 tag: str,
                 attributes: Optional[Dict[str, str]] = None,
                 text: str = "",
                 value: Optional[str] = None,
                 onclick: bool = False,
                 sibling_tags: Optional[List[str]] = None,
                 parent: Optional["SnapshotElement"] = None):
        self._tag = tag.upper()
        self.attributes = attributes or {}
        self._text = text or ""
        self._value = value
        self._onclick = onclick
        self.sibling_tags = sibling_tags or []
        self._parent = parent

    @classmethod
    def from_chain(cls, chain: List[Dict[str, Any]]) -> Optional["SnapshotElement"]:
        """Build from a target-first list of ancestors; returns the target."""
        node = None
        for entry in reversed(chain or []):
            tag = entry.get("tag")
            if not tag:
                raise ValueError("snapshot entry without tag")
            node = cls(
                tag=tag,
                attributes=entry.get("attributes"),
                text=entry.get("text", ""),
                value=entry.get("value"),
                onclick=bool(entry.get("onclick")),
                sibling_tags=entry.get("siblings"),
                parent=node,
            )
        return node

    def __repr__(self):
        return f"<SnapshotElement {self._tag}>"

    @property
    def tag_name(self) -> str:
        return self._tag

    @property
    def parent(self) -> Optional["SnapshotElement"]:
        return self._parent

    def previous_siblings(self) -> Iterator["SnapshotElement"]:
        for tag in self.sibling_tags:
            yield SnapshotElement(tag)

    @property
    def text(self) -> str:
        return self._text

    @property
    def value(self) -> Optional[str]:
        return self._value

    @property
    def has_click_handler(self) -> bool:
        return self._onclick or "onclick" in self.attributes

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes


class BrowserDocument:
    """Document view over a Playwright page, fed by RECORDER_JS messages."""

    def __init__(self, page: Page):
        self.page = page
        self.url = page.url
        self.title = ""
        self.ready_state = "loading"
        self.scroll_y = 0
        self.page_id = None
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

        page.add_init_script(RECORDER_JS)
        page.on("console", self._handle_console)

    def close(self):
        self.page.remove_listener("console", self._handle_console)

    def add_event_listener(self, event_type: str, handler: Listener):
        self._listeners[event_type].append(handler)

    def remove_event_listener(self, event_type: str, handler: Listener):
        try:
            self._listeners[event_type].remove(handler)
        except ValueError:
            pass

    def _handle_console(self, msg: ConsoleMessage):
        text = msg.text
        if not text.startswith(CONSOLE_PREFIX):
            return
        try:
            payload = json.loads(text[len(CONSOLE_PREFIX):])
        except json.JSONDecodeError as e:
            logger.warning("Unreadable recorder message: %s", e)
            return
        self.handle_message(payload)

    def handle_message(self, payload: Dict[str, Any]):
        event_type = payload.get("type")
        if not event_type:
            logger.warning("Recorder message without type: %s", payload)
            return
        try:
            target = SnapshotElement.from_chain(payload.get("target"))
        except (ValueError, AttributeError, TypeError) as e:
            logger.warning("Malformed target in %s message: %s", event_type, e)
            return

        self.page_id = payload.get("pageId", self.page_id)
        self.url = payload.get("url", self.url)
        self.title = payload.get("title", self.title)
        self.ready_state = payload.get("readyState", self.ready_state)
        self.scroll_y = payload.get("scrollY", self.scroll_y) or 0

        event = DomEvent(type=event_type, target=target, key=payload.get("key"))
        for handler in list(self._listeners[event_type]):
            handler(event)
