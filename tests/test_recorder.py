import hashlib

import pytest

from activity_recorder.config import RecorderConfig
from activity_recorder.emitter import MemorySink
from activity_recorder.models import EventKind
from activity_recorder.recorder import Recorder
from activity_recorder.sources.soup import SoupDocument

from conftest import CHECKOUT_HTML, CHECKOUT_URL


def of_kind(sink, kind):
    return [e for e in sink.events if e.kind == kind]


# ---------------- Page visit / navigation ----------------
def test_page_visit_recorded_once_when_document_complete(recorder, sink, page):
    recorder.attach(page)
    page.dispatch("load")

    assert sink.kinds() == ["page_visit"]
    visit = sink.events[0]
    assert visit.target is None
    assert visit.page_context.url == CHECKOUT_URL
    assert visit.page_context.title == "Checkout"


def test_page_visit_deferred_until_load(recorder, sink):
    doc = SoupDocument(CHECKOUT_HTML, url=CHECKOUT_URL, ready_state="loading")
    recorder.attach(doc)
    assert sink.events == []

    doc.finish_loading()
    doc.finish_loading()
    assert sink.kinds() == ["page_visit"]


def test_anchor_navigation_never_repeats_page_visit(recorder, sink, page):
    recorder.attach(page)
    page.go_to_anchor("reviews")

    assert sink.kinds() == ["page_visit", "navigation"]
    nav = sink.events[1]
    assert nav.page_context.url == CHECKOUT_URL + "#reviews"
    assert nav.payload == {"from": CHECKOUT_URL}


def test_push_state_emits_once_per_transition(recorder, sink, page):
    recorder.attach(page)
    page.push_state("/checkout/payment")
    page.push_state("/checkout/payment")
    page.go_back(CHECKOUT_URL)

    navs = of_kind(sink, EventKind.NAVIGATION)
    assert [n.page_context.url for n in navs] == [
        "https://shop.example.com/checkout/payment",
        CHECKOUT_URL,
    ]
    assert len(of_kind(sink, EventKind.PAGE_VISIT)) == 1


def test_reload_starts_new_page_lifetime(recorder, sink, page):
    recorder.attach(page)
    page.reload(url="https://shop.example.com/done")
    page.finish_loading()

    assert sink.kinds() == ["page_visit", "page_visit"]
    assert sink.events[1].page_context.url == "https://shop.example.com/done"


# ---------------- Click ----------------
def test_click_on_button_with_dynamic_id(recorder, sink, page):
    recorder.attach(page)
    page.click("button")

    click = sink.events[-1]
    assert click.kind == EventKind.CLICK
    assert click.target.selector == '[data-testid="submit-btn"]'
    assert click.target.xpath == "/html[1]/body[1]/div[1]/form[1]/button[1]"
    assert click.target.tag_name == "BUTTON"
    assert click.target.input_type == "submit"
    assert click.payload == {"text": "Submit"}


def test_click_on_bare_div_is_ignored(recorder, sink, page):
    recorder.attach(page)
    page.click("div.wrapper")
    assert of_kind(sink, EventKind.CLICK) == []

    page.click("div.card")
    clicks = of_kind(sink, EventKind.CLICK)
    assert len(clicks) == 1
    assert clicks[0].target.selector == '[role="button"]'


# ---------------- Input ----------------
def test_keystrokes_collapse_into_one_input_event(recorder, sink, page, tick):
    recorder.attach(page)
    for ch in "hello":
        page.type_text("#email", ch)
        tick(0.1)
    assert of_kind(sink, EventKind.INPUT) == []

    tick(0.5)
    inputs = of_kind(sink, EventKind.INPUT)
    assert len(inputs) == 1
    assert inputs[0].payload == {"length": 5, "value": "hello"}
    assert inputs[0].target.selector == "#email"
    assert inputs[0].target.input_type == "email"


def test_input_reflects_value_at_emission_time(recorder, sink, page, tick):
    recorder.attach(page)
    page.fill("textarea", "draft")
    page.query("textarea").tag.string = "final text"
    tick(0.6)

    event = of_kind(sink, EventKind.INPUT)[0]
    assert event.payload["value"] == "final text"
    assert event.target.selector == '[name="notes"]'
    assert event.target.input_type == "textarea"


def test_fields_are_debounced_independently(recorder, sink, page, tick):
    recorder.attach(page)
    page.fill("#email", "a@b.co")
    page.fill("textarea", "leave at door")
    tick(0.6)

    values = sorted(e.payload["value"] for e in of_kind(sink, EventKind.INPUT))
    assert values == ["a@b.co", "leave at door"]


def test_password_value_is_never_captured(recorder, sink, page, tick):
    recorder.attach(page)
    page.fill("input[type=password]", "hunter2")
    tick(0.6)

    assert of_kind(sink, EventKind.INPUT)[0].payload == {"length": 7, "redacted": True}


def test_long_values_are_truncated(recorder, sink, page, tick):
    recorder.attach(page)
    page.fill("textarea", "y" * 500)
    tick(0.6)

    payload = of_kind(sink, EventKind.INPUT)[0].payload
    assert payload["length"] == 500
    assert payload["value"] == "y" * 200


def test_hash_instead_of_value(sink, timers, clock, page, tick):
    config = RecorderConfig(capture_input_value=False, capture_input_hash=True)
    Recorder(sink, config=config, timers=timers, clock=clock).attach(page)
    page.fill("#email", "hello")
    tick(0.6)

    payload = of_kind(sink, EventKind.INPUT)[0].payload
    assert payload == {"length": 5, "hash": hashlib.sha256(b"hello").hexdigest()}


def test_enter_is_recorded_immediately(recorder, sink, page, tick):
    recorder.attach(page)
    page.fill("#email", "a@b.co")
    page.press("#email", "Enter")

    assert sink.kinds() == ["page_visit", "keypress_enter"]
    assert sink.events[1].payload == {"length": 6, "value": "a@b.co"}

    tick(0.6)
    assert sink.kinds() == ["page_visit", "keypress_enter", "input"]


def test_other_keys_and_targets_are_ignored(recorder, sink, page):
    recorder.attach(page)
    page.press("#email", "Tab")
    page.press("button", "Enter")
    assert sink.kinds() == ["page_visit"]


# ---------------- Scroll ----------------
def test_scroll_threshold_and_direction(recorder, sink, page, tick):
    recorder.attach(page)
    page.scroll_to(100)
    tick(0.5)
    assert of_kind(sink, EventKind.SCROLL) == []

    page.scroll_to(250)
    page.scroll_to(450)
    tick(0.5)
    page.scroll_to(100)
    tick(0.5)

    scrolls = of_kind(sink, EventKind.SCROLL)
    assert [s.payload for s in scrolls] == [
        {"y": 450, "delta": 450, "direction": "down"},
        {"y": 100, "delta": 350, "direction": "up"},
    ]
    assert all(s.target is None for s in scrolls)


# ---------------- Lifecycle ----------------
def test_detach_stops_capture_and_cancels_pending(recorder, sink, page, tick):
    subscription = recorder.attach(page)
    page.fill("#email", "pending")
    subscription.detach()
    tick(1)
    page.click("button")

    assert sink.kinds() == ["page_visit"]
    assert page.listener_count() == 0
    assert subscription.active is False


def test_attach_twice_is_an_error(recorder, page):
    recorder.attach(page)
    with pytest.raises(RuntimeError):
        recorder.attach(page)


def test_reattach_to_another_page(recorder, sink, page):
    recorder.attach(page)()
    other = SoupDocument(CHECKOUT_HTML, url="https://shop.example.com/other")
    recorder.attach(other)
    assert [e.page_context.url for e in sink.events] == [CHECKOUT_URL, "https://shop.example.com/other"]


def test_flush_emits_pending_input(recorder, sink, page):
    recorder.attach(page)
    page.fill("#email", "now")
    recorder.flush()
    assert sink.kinds() == ["page_visit", "input"]


def test_recording_survives_sink_outage(recorder, sink, page):
    recorder.attach(page)
    sink.available = False
    page.click("button")
    sink.available = True
    page.click("nav a")

    assert sink.kinds() == ["page_visit", "click"]
    assert sink.events[1].target.selector == 'a:text("Home")'
    assert recorder.emitter.dropped == 1


def test_recorders_do_not_share_state(timers, clock):
    first_sink, second_sink = MemorySink(), MemorySink()
    first_page = SoupDocument(CHECKOUT_HTML, url=CHECKOUT_URL)
    second_page = SoupDocument(CHECKOUT_HTML, url=CHECKOUT_URL)
    Recorder(first_sink, timers=timers, clock=clock).attach(first_page)
    Recorder(second_sink, timers=timers, clock=clock).attach(second_page)

    first_page.click("button")
    assert first_sink.kinds() == ["page_visit", "click"]
    assert second_sink.kinds() == ["page_visit"]


def test_every_targeted_event_has_a_locator(recorder, sink, page, tick):
    recorder.attach(page)
    page.click("span")
    page.click("ul li")
    page.fill("select", "fr")
    page.press("#email", "Enter")
    tick(0.6)

    targeted = [e for e in sink.events if e.target is not None]
    assert len(targeted) == 4
    assert all(e.target.xpath for e in targeted)
    assert [e.timestamp for e in sink.events] == sorted(e.timestamp for e in sink.events)
