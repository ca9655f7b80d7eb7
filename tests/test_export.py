import json

import pandas as pd
import pytest

from activity_recorder.export import COLUMNS, export_workflow, workflow_to_dataframe
from activity_recorder.models import ElementDescriptor, EventKind, InteractionEvent, PageContext, Workflow


def sample_workflow():
    page = PageContext(url="https://example.com/login", title="Login")
    wf = Workflow.new("login", 1700000000000)
    wf.events = [
        InteractionEvent(EventKind.PAGE_VISIT, 1700000000001, page),
        InteractionEvent(
            EventKind.INPUT, 1700000000002, page,
            target=ElementDescriptor("INPUT", "/html[1]/body[1]/input[1]", '[name="password"]', "password", "textbox"),
            payload={"length": 7, "value": "hunter2"},
        ),
        InteractionEvent(
            EventKind.CLICK, 1700000000003, page,
            target=ElementDescriptor("BUTTON", "/html[1]/body[1]/button[1]", "#login", "submit", "button"),
            payload={"text": "Log in"},
        ),
    ]
    return wf


def test_dataframe_has_one_row_per_event():
    df = workflow_to_dataframe(sample_workflow())
    assert list(df.columns) == COLUMNS
    assert list(df["kind"]) == ["page_visit", "input", "click"]
    assert df.loc[1, "value"] == "<REDACTED>"
    assert df.loc[2, "selector"] == "#login"
    assert json.loads(df.loc[2, "details"]) == {"text": "Log in"}


def test_export_csv(tmp_path):
    path = export_workflow(sample_workflow(), str(tmp_path / "out" / "login.csv"))
    df = pd.read_csv(path)
    assert len(df) == 3
    assert df.loc[2, "xpath"] == "/html[1]/body[1]/button[1]"


def test_export_json_includes_metadata(tmp_path):
    path = export_workflow(sample_workflow(), str(tmp_path / "login.json"), user="tester")
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["workflow"]["id"] == "workflow_1700000000000"
    assert data["workflow"]["events"][1]["payload"]["value"] == "<REDACTED>"
    assert data["metadata"]["flow_name"] == "login"
    assert data["metadata"]["user"] == "tester"


def test_export_rejects_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        export_workflow(sample_workflow(), str(tmp_path / "login.pdf"))
