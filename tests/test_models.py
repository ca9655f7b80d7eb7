from activity_recorder.models import ElementDescriptor, EventKind, InteractionEvent, PageContext, Workflow


def test_event_wire_shape():
    event = InteractionEvent(
        kind=EventKind.KEYPRESS_ENTER,
        timestamp=1700000000000,
        page_context=PageContext(url="https://example.com/search", title="Search"),
        target=ElementDescriptor(tag_name="INPUT", xpath="/html[1]/body[1]/input[1]", selector='[name="q"]', input_type="search"),
        payload={"length": 4, "value": "shoe"},
    )
    data = event.to_dict()
    assert set(data) == {"kind", "timestamp", "pageContext", "targetDescriptor", "payload"}
    assert data["kind"] == "keypress_enter"
    assert data["targetDescriptor"]["tagName"] == "INPUT"
    assert data["targetDescriptor"]["inputType"] == "search"
    assert InteractionEvent.from_dict(data) == event


def test_page_level_event_has_no_descriptor():
    event = InteractionEvent(EventKind.SCROLL, 1, PageContext("https://example.com"))
    assert event.to_dict()["targetDescriptor"] is None


def test_workflow_boundary_shapes():
    wf = Workflow.new("search", 1700000000000)
    wf.events.append(InteractionEvent(EventKind.PAGE_VISIT, 1700000000001, PageContext("https://example.com")))

    assert wf.id == "workflow_1700000000000"
    assert set(wf.to_dict()) == {"id", "name", "createdAt", "events"}
    request = wf.to_optimization_request()
    assert request["workflowId"] == wf.id
    assert request["workflowName"] == "search"
    assert request["events"][0]["kind"] == "page_visit"
