import pytest

from activity_recorder.emitter import MemorySink
from activity_recorder.recorder import Recorder
from activity_recorder.sources.soup import SoupDocument
from activity_recorder.timers import TimerQueue

CHECKOUT_HTML = """
<html>
<head><title>Checkout</title></head>
<body>
  <div id="app">
    <nav><a href="/home">Home</a><a href="/cart">Cart</a></nav>
    <form>
      <input id="email" name="email" type="email">
      <input name="password" type="password">
      <textarea name="notes"></textarea>
      <select name="country"><option value="us">US</option><option value="fr" selected>FR</option></select>
      <button id="submit-42892001" data-testid="submit-btn">Submit</button>
    </form>
    <div class="wrapper">plain</div>
    <div class="card" role="button">Card</div>
    <div class="tile" tabindex="0">Tile</div>
    <span onclick="go()">Go</span>
    <ul><li>One</li><li>Two</li><li>Three</li></ul>
  </div>
</body>
</html>
"""

CHECKOUT_URL = "https://shop.example.com/checkout"


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers(clock):
    return TimerQueue(clock=clock)


@pytest.fixture
def tick(clock, timers):
    def _tick(seconds):
        clock.advance(seconds)
        timers.run_due()
    return _tick


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def recorder(sink, timers, clock):
    return Recorder(sink, timers=timers, clock=clock)


@pytest.fixture
def page():
    return SoupDocument(CHECKOUT_HTML, url=CHECKOUT_URL)
