# activity_recorder/dom.py
"""
Abstract views over a DOM.

The capture pipeline never touches a concrete browser node. Everything it
needs from an element or a page goes through these two protocols, which are
implemented by the BeautifulSoup source (sources/soup.py) and the Playwright
bridge (sources/browser.py).
"""
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Iterable, Optional, Protocol

FORM_CONTROL_TAGS = {"INPUT", "TEXTAREA", "SELECT", "BUTTON"}
TEXT_ENTRY_TAGS = {"INPUT", "TEXTAREA"}


class ElementView(Protocol):
    @property
    def tag_name(self) -> str:
        """Uppercase tag name, e.g. ``BUTTON``."""

    @property
    def parent(self) -> Optional["ElementView"]:
        """Parent element, or None at the document root or when detached."""

    @property
    def text(self) -> str:
        """Visible text content."""

    @property
    def value(self) -> Optional[str]:
        """Current form value, None for non-form elements."""

    @property
    def has_click_handler(self) -> bool:
        ...

    def get_attribute(self, name: str) -> Optional[str]:
        ...

    def has_attribute(self, name: str) -> bool:
        ...

    def previous_siblings(self) -> Iterable["ElementView"]:
        """Element siblings before this one, nearest first."""


@dataclass
class DomEvent:
    type: str
    target: Optional[ElementView] = None
    key: Optional[str] = None


Listener = Callable[[DomEvent], Any]


class DocumentLike(Protocol):
    url: str
    title: str
    ready_state: str
    scroll_y: float
    page_id: Hashable

    def add_event_listener(self, event_type: str, handler: Listener) -> None:
        ...

    def remove_event_listener(self, event_type: str, handler: Listener) -> None:
        ...
