# activity_recorder/locators.py
from typing import Optional, Tuple

from activity_recorder.classifier import is_dynamic_id
from activity_recorder.dom import ElementView

TEXT_SELECTOR_TAGS = {"a", "button", "h1", "h2", "h3", "h4", "h5", "h6"}
ATTRIBUTE_PRIORITY = ("data-testid", "name", "aria-label")

_IMPLICIT_ROLES = {
    "button": "button",
    "textarea": "textbox",
    "img": "img",
    "nav": "navigation",
    "main": "main",
    "form": "form",
    "ul": "list",
    "ol": "list",
    "li": "listitem",
    "table": "table",
    "dialog": "dialog",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "h4": "heading",
    "h5": "heading",
    "h6": "heading",
}

_INPUT_ROLES = {
    "checkbox": "checkbox",
    "radio": "radio",
    "submit": "button",
    "button": "button",
    "reset": "button",
    "image": "button",
    "range": "slider",
    "search": "searchbox",
    "number": "spinbutton",
}


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _attribute_selector(name: str, value: str) -> str:
    return f'[{name}="{_quote(value)}"]'


def css_selector(el: Optional[ElementView], text_limit: int = 50) -> Optional[str]:
    """
    Best-effort stable CSS-like locator, first match wins:
    stable id, data-testid, name, aria-label, tag+text for links, buttons
    and headings, role. Returns None when nothing stable is available.
    """
    if el is None:
        return None

    element_id = el.get_attribute("id")
    if element_id and not is_dynamic_id(element_id):
        return f"#{element_id}"

    for attr in ATTRIBUTE_PRIORITY:
        value = el.get_attribute(attr)
        if value:
            return _attribute_selector(attr, value)

    tag = el.tag_name.lower()
    if tag in TEXT_SELECTOR_TAGS:
        text = (el.text or "").strip()[:text_limit]
        if text:
            return f'{tag}:text("{_quote(text)}")'

    role = el.get_attribute("role")
    if role:
        return _attribute_selector("role", role)

    return None


def xpath(el: Optional[ElementView]) -> str:
    """
    Absolute positional path like ``/html[1]/body[1]/div[2]``.

    Indexes are 1-based among same-tag siblings. The walk stops wherever the
    parent chain ends, so a detached subtree yields a partial path.
    """
    parts = []
    node = el
    while node is not None:
        tag = node.tag_name
        index = 1 + sum(1 for sib in node.previous_siblings() if sib.tag_name == tag)
        parts.append(f"{tag.lower()}[{index}]")
        node = node.parent
    if not parts:
        return ""
    return "/" + "/".join(reversed(parts))


def locate(el: ElementView, text_limit: int = 50) -> Tuple[Optional[str], str]:
    return css_selector(el, text_limit=text_limit), xpath(el)


def semantic_role(el: Optional[ElementView]) -> Optional[str]:
    if el is None:
        return None
    explicit = el.get_attribute("role")
    if explicit:
        return explicit

    tag = el.tag_name.lower()
    if tag == "a":
        return "link" if el.has_attribute("href") else None
    if tag == "input":
        input_type = (el.get_attribute("type") or "text").lower()
        if input_type == "hidden":
            return None
        return _INPUT_ROLES.get(input_type, "textbox")
    if tag == "select":
        return "listbox" if el.has_attribute("multiple") else "combobox"
    return _IMPLICIT_ROLES.get(tag)
