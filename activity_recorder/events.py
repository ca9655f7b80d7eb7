# activity_recorder/events.py
import time
from typing import Any, Callable, Dict, Optional

from activity_recorder.config import RecorderConfig
from activity_recorder.dom import FORM_CONTROL_TAGS, DocumentLike, ElementView
from activity_recorder.locators import locate, semantic_role
from activity_recorder.metadata_utils import hash_value, is_sensitive_field
from activity_recorder.models import ElementDescriptor, EventKind, InteractionEvent, PageContext


def input_type_of(el: ElementView) -> Optional[str]:
    """Mirror of the DOM ``.type`` property for form controls."""
    tag = el.tag_name
    if tag not in FORM_CONTROL_TAGS:
        return None
    declared = (el.get_attribute("type") or "").lower()
    if tag == "INPUT":
        return declared or "text"
    if tag == "BUTTON":
        return declared or "submit"
    if tag == "SELECT":
        return "select-multiple" if el.has_attribute("multiple") else "select-one"
    return "textarea"


def describe_element(el: Optional[ElementView], text_limit: int = 50) -> Optional[ElementDescriptor]:
    if el is None:
        return None
    selector, path = locate(el, text_limit=text_limit)
    return ElementDescriptor(
        tag_name=el.tag_name.upper(),
        xpath=path,
        selector=selector,
        input_type=input_type_of(el),
        role=semantic_role(el),
    )


def value_payload(el: ElementView, config: RecorderConfig, target: Optional[ElementDescriptor] = None) -> Dict[str, Any]:
    value = el.value or ""
    payload: Dict[str, Any] = {"length": len(value)}

    target = target or describe_element(el, config.text_selector_length)
    locator = (target.selector or target.xpath) if target else ""
    if (target and target.input_type == "password") or is_sensitive_field(locator, config.sensitive_fields):
        payload["redacted"] = True
        return payload

    if config.capture_input_value:
        payload["value"] = value[:config.max_value_length]
    if config.capture_input_hash:
        payload["hash"] = hash_value(value)
    return payload


def build_event(kind: EventKind,
                document: DocumentLike,
                el: Optional[ElementView] = None,
                payload: Optional[Dict[str, Any]] = None,
                clock: Callable[[], float] = time.time,
                target: Optional[ElementDescriptor] = None,
                text_limit: int = 50) -> InteractionEvent:
    """Assemble a record from the document and element state right now."""
    if target is None:
        target = describe_element(el, text_limit=text_limit)
    return InteractionEvent(
        kind=kind,
        timestamp=int(clock() * 1000),
        page_context=PageContext(url=document.url or "", title=document.title or ""),
        target=target,
        payload=payload or {},
    )
