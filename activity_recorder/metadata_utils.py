# activity_recorder/metadata_utils.py
import json
import hashlib
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from activity_recorder.models import Workflow

DEFAULT_SENSITIVE_SELECTORS = {"password", "passwd", "token", "secret", "card", "cvv", "ssn", "otp"}
EVENT_KEYS = ("kind", "timestamp", "pageContext", "targetDescriptor", "payload")

def is_sensitive_field(locator: Optional[str], custom_sensitive: Iterable[str] = None) -> bool:
    locator = (locator or "").lower()
    sensitive_keywords = set(DEFAULT_SENSITIVE_SELECTORS)
    if custom_sensitive:
        sensitive_keywords |= {s.lower() for s in custom_sensitive}
    return any(kw in locator for kw in sensitive_keywords)

def hash_value(value: str) -> str:
    return compute_sha256(value or "")

def sanitize_events(events: List[Dict], custom_sensitive: Set[str] = None) -> Tuple[List[Dict], List[str]]:
    """Keep only wire keys and redact values typed into sensitive fields."""
    masked = set()
    sanitized = []
    for ev in events:
        ev_copy = {k: ev[k] for k in EVENT_KEYS if k in ev}
        payload = dict(ev_copy.get("payload") or {})
        target = ev_copy.get("targetDescriptor") or {}
        locator = target.get("selector") or target.get("xpath") or ""
        sensitive = target.get("inputType") == "password" or is_sensitive_field(locator, custom_sensitive)
        if sensitive and payload.get("value") is not None:
            masked.add(locator)
            payload["value"] = "<REDACTED>"
            payload["redacted"] = True
        if "payload" in ev_copy:
            ev_copy["payload"] = payload
        sanitized.append(ev_copy)
    return sanitized, sorted(masked)

def canonicalize_for_hash(obj: Any) -> str:
    def _clean(x):
        if isinstance(x, dict):
            return {k: _clean(v) for k, v in sorted(x.items()) if v is not None and v != ""}
        if isinstance(x, list):
            return [_clean(i) for i in x]
        return x
    cleaned = _clean(obj)
    return json.dumps(cleaned, sort_keys=True, ensure_ascii=False, separators=(",", ":"))

def compute_sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()

def generate_stable_flow_id(flow_name: str, canonical_json: str, shorten: int = 8) -> str:
    if flow_name:
        h = compute_sha256(canonical_json)
        return f"flow::{flow_name}::{h[:shorten]}"
    return f"flow::unnamed::{uuid.uuid4().hex[:shorten]}"

def build_metadata(workflow: Workflow,
                   origin: str,
                   user: str = None,
                   hash_val: str = None,
                   masked_selectors: List[str] = None,
                   version: int = 1,
                   notes: str = None) -> Dict:
    urls = []
    for ev in workflow.events:
        if ev.page_context.url and ev.page_context.url not in urls:
            urls.append(ev.page_context.url)
    return {
        "id": None,
        "workflow_id": workflow.id,
        "source_type": "activity_recorder",
        "origin": origin,
        "flow_name": workflow.name,
        "user": user,
        "created_at": workflow.created_at,
        "exported_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "events_count": len(workflow.events),
        "urls": urls,
        "hash": hash_val,
        "redaction": bool(masked_selectors),
        "sensitive_fields_masked": masked_selectors or [],
        "version": version,
        "notes": notes or "",
    }

def prepare_workflow_for_export(workflow: Workflow,
                                origin: str = "activity_recorder",
                                user: str = None,
                                custom_sensitive: Set[str] = None,
                                version: int = 1,
                                notes: str = None) -> Tuple[Dict, Dict, str]:
    sanitized_events, masked = sanitize_events(
        [e.to_dict() for e in workflow.events], custom_sensitive=custom_sensitive
    )
    artifact = workflow.to_dict()
    artifact["events"] = sanitized_events
    canonical_json = canonicalize_for_hash({"name": workflow.name, "events": sanitized_events})
    h = compute_sha256(canonical_json)
    doc_id = generate_stable_flow_id(workflow.name or "unnamed", canonical_json)
    metadata = build_metadata(
        workflow,
        origin=origin,
        user=user,
        hash_val=h,
        masked_selectors=masked,
        version=version,
        notes=notes,
    )
    metadata["id"] = doc_id
    return artifact, metadata, doc_id
