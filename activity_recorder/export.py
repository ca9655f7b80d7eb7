# activity_recorder/export.py
import json
import logging
import os
from typing import Set

import pandas as pd

from activity_recorder.metadata_utils import prepare_workflow_for_export, sanitize_events
from activity_recorder.models import Workflow

logger = logging.getLogger(__name__)

COLUMNS = ["step", "kind", "timestamp", "url", "title", "tag", "selector", "xpath", "input_type", "role", "value", "details"]


def workflow_to_dataframe(workflow: Workflow, custom_sensitive: Set[str] = None) -> pd.DataFrame:
    """One row per recorded event, with sensitive values redacted."""
    events, _ = sanitize_events([e.to_dict() for e in workflow.events], custom_sensitive=custom_sensitive)
    rows = []
    for idx, ev in enumerate(events, start=1):
        target = ev.get("targetDescriptor") or {}
        page = ev.get("pageContext") or {}
        payload = dict(ev.get("payload") or {})
        value = payload.pop("value", None)
        rows.append({
            "step": idx,
            "kind": ev.get("kind"),
            "timestamp": ev.get("timestamp"),
            "url": page.get("url"),
            "title": page.get("title"),
            "tag": target.get("tagName"),
            "selector": target.get("selector"),
            "xpath": target.get("xpath"),
            "input_type": target.get("inputType"),
            "role": target.get("role"),
            "value": value,
            "details": json.dumps(payload, ensure_ascii=False, sort_keys=True) if payload else "",
        })
    return pd.DataFrame(rows, columns=COLUMNS)


def export_workflow(workflow: Workflow, output_path: str, user: str = None, custom_sensitive: Set[str] = None) -> str:
    """Write a workflow as .json (artifact + metadata), .csv or .xlsx."""
    ext = os.path.splitext(output_path)[1].lower()
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    if ext == ".json":
        artifact, metadata, _ = prepare_workflow_for_export(workflow, user=user, custom_sensitive=custom_sensitive)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump({"workflow": artifact, "metadata": metadata}, f, indent=4, ensure_ascii=False)
    elif ext == ".csv":
        workflow_to_dataframe(workflow, custom_sensitive).to_csv(output_path, index=False)
    elif ext == ".xlsx":
        df = workflow_to_dataframe(workflow, custom_sensitive)
        with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
            df.to_excel(writer, index=False, sheet_name="Events")
    else:
        raise ValueError(f"Unsupported export file type: {ext}")

    logger.info("Exported workflow %s (%d events) to %s", workflow.id, len(workflow.events), output_path)
    return output_path
