# activity_recorder/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class EventKind(str, Enum):
    """Interaction kinds produced by the recorder."""

    CLICK = "click"
    INPUT = "input"
    KEYPRESS_ENTER = "keypress_enter"
    SCROLL = "scroll"
    NAVIGATION = "navigation"
    PAGE_VISIT = "page_visit"


@dataclass(frozen=True)
class PageContext:
    url: str
    title: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "title": self.title}


@dataclass(frozen=True)
class ElementDescriptor:
    """Snapshot of the element an event targeted. Holds no node reference."""

    tag_name: str
    xpath: str
    selector: Optional[str] = None
    input_type: Optional[str] = None
    role: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "tagName": self.tag_name,
            "selector": self.selector,
            "xpath": self.xpath,
            "inputType": self.input_type,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementDescriptor":
        return cls(
            tag_name=data.get("tagName") or "",
            xpath=data.get("xpath") or "",
            selector=data.get("selector"),
            input_type=data.get("inputType"),
            role=data.get("role"),
        )


@dataclass
class InteractionEvent:
    kind: EventKind
    timestamp: int
    page_context: PageContext
    target: Optional[ElementDescriptor] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "timestamp": self.timestamp,
            "pageContext": self.page_context.to_dict(),
            "targetDescriptor": self.target.to_dict() if self.target else None,
            "payload": dict(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InteractionEvent":
        page = data.get("pageContext") or {}
        target = data.get("targetDescriptor")
        return cls(
            kind=EventKind(data["kind"]),
            timestamp=int(data.get("timestamp") or 0),
            page_context=PageContext(url=page.get("url", ""), title=page.get("title", "")),
            target=ElementDescriptor.from_dict(target) if target else None,
            payload=dict(data.get("payload") or {}),
        )


@dataclass
class Workflow:
    """A named, ordered recording session."""

    id: str
    name: str
    created_at: int
    events: List[InteractionEvent] = field(default_factory=list)

    @classmethod
    def new(cls, name: str, created_at: int) -> "Workflow":
        return cls(id=f"workflow_{created_at}", name=name, created_at=created_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "events": [e.to_dict() for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workflow":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            created_at=int(data.get("createdAt") or 0),
            events=[InteractionEvent.from_dict(e) for e in data.get("events", [])],
        )

    def to_optimization_request(self) -> Dict[str, Any]:
        """Request body accepted by the workflow optimization endpoint."""
        return {
            "workflowId": self.id,
            "workflowName": self.name,
            "events": [e.to_dict() for e in self.events],
        }
