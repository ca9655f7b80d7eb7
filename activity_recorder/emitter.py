# activity_recorder/emitter.py
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import List

import requests

from activity_recorder.models import InteractionEvent

logger = logging.getLogger(__name__)


class SinkUnavailable(Exception):
    """The channel to the recording sink is gone (closed, reloaded, unreachable)."""


class EventEmitter:
    """
    Fire-and-forget delivery to a sink.

    Each event is offered once. Failures are logged and the event dropped;
    nothing is buffered, so the next event goes straight through once the
    sink is back.
    """

    def __init__(self, sink):
        self.sink = sink
        self.dropped = 0

    def emit(self, event: InteractionEvent) -> bool:
        try:
            self.sink.send(event)
            return True
        except SinkUnavailable as e:
            self.dropped += 1
            logger.warning("Recording sink unavailable, dropped %s event: %s", event.kind.value, e)
        except Exception:
            self.dropped += 1
            logger.error("Error recording %s event", event.kind.value, exc_info=True)
        return False


class MemorySink:
    def __init__(self):
        self.events: List[InteractionEvent] = []
        self.available = True

    def send(self, event: InteractionEvent):
        if not self.available:
            raise SinkUnavailable("memory sink closed")
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [e.kind.value for e in self.events]


class HttpSink:
    """
    POSTs each event as JSON to a collector endpoint.

    Posts run on one background worker, in send order, so send() never waits
    for the collector. A failed delivery is logged from the worker and counted
    in ``dropped``. Call close() to drain the queue and stop the worker.
    """

    def __init__(self, url: str, timeout: float = 5, session: requests.Session = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.dropped = 0
        self.closed = False
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recorder-sink")

    def send(self, event: InteractionEvent):
        if self.closed:
            raise SinkUnavailable(f"sink for {self.url} is closed")
        future = self._executor.submit(self._post, event.to_dict())
        future.add_done_callback(partial(self._delivered, event.kind.value))

    def _post(self, data):
        try:
            response = self.session.post(self.url, json=data, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SinkUnavailable(str(e)) from e

    def _delivered(self, kind: str, future: Future):
        error = future.exception()
        if error is None:
            return
        with self._lock:
            self.dropped += 1
        if isinstance(error, SinkUnavailable):
            logger.warning("Recording sink unavailable, dropped %s event: %s", kind, error)
        else:
            logger.error("Error recording %s event", kind, exc_info=error)

    def close(self, wait: bool = True):
        self.closed = True
        self._executor.shutdown(wait=wait)
