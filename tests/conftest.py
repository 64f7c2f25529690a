from __future__ import annotations

import heapq
import itertools
from datetime import date, datetime

import pytest

from charts import ChartRenderer, TargetUnavailable
from dashboard import DashboardContext
from export_pdf import DocumentExporter
from generate_data import generate
from metrics import DEFAULT_METRICS
from scheduler import Scheduler

TODAY = date(2024, 5, 1)
NOW = datetime(2024, 5, 1, 9, 30, 0)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeHandle:
    def __init__(self, loop, when, fn):
        self._loop = loop
        self.when = when
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Manual clock: callbacks run only when advance() passes their deadline."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay, fn):
        handle = FakeHandle(self, self.now + delay, fn)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def advance(self, seconds):
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            self.now = when
            if not handle.cancelled:
                handle.fn()
        self.now = target

    @property
    def pending(self):
        return sum(1 for _, _, h in self._queue if not h.cancelled)


class FakeChartSurface:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.drawn = []
        self.closed = []

    def draw(self, spec):
        if spec.title in self.fail_for:
            raise TargetUnavailable(f"no canvas for {spec.title}")
        handle = {"title": spec.title, "id": len(self.drawn)}
        self.drawn.append(spec)
        return handle

    def snapshot(self, handle):
        return f"png:{handle['title']}:{handle['id']}".encode()

    def close(self, handle):
        self.closed.append(handle)


class FakeArtifact:
    def __init__(self, metric, png=b"png"):
        self.metric = metric
        self.png = png
        self.closed = False

    def snapshot(self):
        if self.closed:
            raise TargetUnavailable(self.metric)
        return self.png


class RecordingSurface:
    """DrawingSurface that records every primitive per page."""

    def __init__(self, page_width=210.0, page_height=297.0):
        self.page_width = page_width
        self.page_height = page_height
        self.pages = [[]]
        self.finalized = False

    def place_image(self, png, x, y, width, height):
        self.pages[-1].append(("image", png, x, y, width, height))

    def place_text(self, text, x, y, *, size, color, align="left"):
        self.pages[-1].append(("text", text, x, y, size, color, align))

    def place_filled_rect(self, x, y, width, height, color):
        self.pages[-1].append(("rect", x, y, width, height, color))

    def add_page(self):
        self.pages.append([])

    def finalize(self):
        self.finalized = True
        return b"%PDF-recorded"

    def ops(self, kind, page=None):
        pages = self.pages if page is None else [self.pages[page]]
        return [op for p in pages for op in p if op[0] == kind]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def series():
    return generate(DEFAULT_METRICS, 7, today=TODAY, seed=7)


@pytest.fixture
def recording():
    return RecordingSurface()


@pytest.fixture
def exporter(recording):
    return DocumentExporter(surface_factory=lambda: recording, clock=lambda: NOW)


@pytest.fixture
def chart_surface():
    return FakeChartSurface()


@pytest.fixture
def context(fake_loop, chart_surface, recording, tmp_path):
    return DashboardContext(
        scheduler=Scheduler(fake_loop),
        renderer=ChartRenderer(chart_surface),
        exporter=DocumentExporter(surface_factory=lambda: recording, clock=lambda: NOW),
        output_dir=tmp_path,
        seed=3,
    )
