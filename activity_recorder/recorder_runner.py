# activity_recorder/recorder_runner.py
import argparse
import logging
from typing import Any, Callable, Dict, List, Optional

import yaml
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from activity_recorder.config import RecorderConfig, load_config
from activity_recorder.emitter import HttpSink
from activity_recorder.export import export_workflow
from activity_recorder.models import Workflow
from activity_recorder.recorder import Recorder
from activity_recorder.sources.browser import BrowserDocument
from activity_recorder.sources.soup import SoupDocument
from activity_recorder.timers import TimerQueue
from activity_recorder.workflow_store import WorkflowStore

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 100


def _open_sink(flow_name: str, config: RecorderConfig):
    """HTTP collector when config.sink_url is set, else a new session in the local store."""
    if config.sink_url:
        return HttpSink(config.sink_url), None
    store = WorkflowStore(config.db_path)
    store.init_db()
    session = store.open_session(flow_name)
    return session, session


def _dropped(recorder: Recorder, sink) -> int:
    return recorder.emitter.dropped + getattr(sink, "dropped", 0)


def record_flow(flow_name: str,
                url: str,
                config: Optional[RecorderConfig] = None,
                headless: bool = False,
                should_stop: Callable[[], bool] = lambda: False) -> Optional[Workflow]:
    """
    Record a browser session until the page is closed, Ctrl+C, or should_stop().

    Events go to the local workflow store, or to config.sink_url when set.
    Returns the stored workflow (None when streaming to a remote sink).
    """
    config = config or load_config()
    sink, session = _open_sink(flow_name, config)

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=headless)
        context = browser.new_context()
        page = context.new_page()

        document = BrowserDocument(page)
        timers = TimerQueue()
        recorder = Recorder(sink, config=config, timers=timers)
        subscription = recorder.attach(document)

        page.goto(url)
        logger.info("Recording started for %s at %s", flow_name, url)
        try:
            while not page.is_closed() and not should_stop():
                page.wait_for_timeout(POLL_INTERVAL_MS)
                timers.run_due()
        except KeyboardInterrupt:
            logger.info("Recording interrupted")
        except PlaywrightError as e:
            logger.info("Browser closed: %s", e)
        finally:
            recorder.flush()
            subscription.detach()
            sink.close()
            if not page.is_closed():
                document.close()
            browser.close()

    logger.info("Recording stopped for %s (%d events dropped)", flow_name, _dropped(recorder, sink))
    return session.workflow() if session else None


# ---------------- Offline replay ----------------
class ReplayClock:
    """Virtual time for debounce timers; only ``wait`` steps move it."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def load_actions(path: str) -> List[Dict[str, Any]]:
    """Read a list of replay steps from a JSON or YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        actions = yaml.safe_load(f) or []
    if not isinstance(actions, list):
        raise ValueError(f"{path} must contain a list of actions")
    return actions


def apply_action(document: SoupDocument, step: Dict[str, Any], clock: ReplayClock, timers: TimerQueue):
    action = step.get("action")
    if action == "click":
        document.click(step["selector"])
    elif action == "fill":
        document.fill(step["selector"], str(step["value"]))
    elif action == "type":
        document.type_text(step["selector"], str(step["text"]))
    elif action == "press":
        document.press(step["selector"], step.get("key", "Enter"))
    elif action == "scroll":
        document.scroll_to(float(step["y"]))
    elif action == "push_state":
        document.push_state(step["url"])
    elif action == "back":
        document.go_back(step["url"])
    elif action == "anchor":
        document.go_to_anchor(step["fragment"])
    elif action == "wait":
        clock.now += float(step["seconds"])
    else:
        raise ValueError(f"Unsupported replay action: {action!r}")
    timers.run_due()


def replay_flow(flow_name: str,
                html: str,
                actions: List[Dict[str, Any]],
                url: str = "about:blank",
                config: Optional[RecorderConfig] = None) -> Optional[Workflow]:
    """
    Capture a workflow offline by replaying actions against saved HTML.

    Each step is a dict such as ``{"action": "fill", "selector": "#email",
    "value": "a@b.c"}``; ``{"action": "wait", "seconds": 1}`` advances the
    debounce clock. Pending debounced events are flushed at the end.
    """
    config = config or load_config()
    sink, session = _open_sink(flow_name, config)

    document = SoupDocument(html, url=url)
    clock = ReplayClock()
    timers = TimerQueue(clock=clock)
    recorder = Recorder(sink, config=config, timers=timers)
    subscription = recorder.attach(document)
    logger.info("Replaying %d actions for %s at %s", len(actions), flow_name, url)
    try:
        for step in actions:
            apply_action(document, step, clock, timers)
    finally:
        recorder.flush()
        subscription.detach()
        sink.close()

    logger.info("Replay finished for %s (%d events dropped)", flow_name, _dropped(recorder, sink))
    return session.workflow() if session else None


def main(argv=None):
    parser = argparse.ArgumentParser(description="Record browser interactions into a workflow")
    parser.add_argument("--flow_name", required=True)
    parser.add_argument("--url", help="Page to open (page URL to report when replaying)")
    parser.add_argument("--html", help="Replay against this saved HTML file instead of a live browser")
    parser.add_argument("--actions", help="JSON or YAML list of replay actions (with --html)")
    parser.add_argument("--config", help="JSON or YAML recorder config")
    parser.add_argument("--headless", action="store_true")
    parser.add_argument("--export", help="Write the workflow to .json, .csv or .xlsx")
    parser.add_argument("--user", help="Recorded-by user for export metadata")
    args = parser.parse_args(argv)
    if args.html and not args.actions:
        parser.error("--html requires --actions")
    if not args.html and not args.url:
        parser.error("--url is required unless replaying with --html")

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = load_config(args.config)
    if args.html:
        with open(args.html, "r", encoding="utf-8") as f:
            html = f.read()
        workflow = replay_flow(args.flow_name, html, load_actions(args.actions),
                               url=args.url or "about:blank", config=config)
    else:
        workflow = record_flow(args.flow_name, args.url, config=config, headless=args.headless)
    if workflow is None:
        return
    logger.info("Saved workflow %s with %d events", workflow.id, len(workflow.events))
    if args.export:
        export_workflow(workflow, args.export, user=args.user, custom_sensitive=set(config.sensitive_fields))


if __name__ == "__main__":
    main()
