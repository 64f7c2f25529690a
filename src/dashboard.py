"""Dashboard context plus the two widget surfaces (chat and reports).

The context is built once and handed to each widget; the widgets share no
state with each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from charts import ChartRenderer, MatplotlibSurface
from export_pdf import DocumentExporter
from generate_data import MetricSeries, generate
from metrics import DEFAULT_METRICS
from rules import VOICE_ERROR_REPLY, WELCOME_MESSAGES, respond
from scheduler import CancelToken, Scheduler
from settings import (
    DEFAULT_DAYS,
    LOAD_DELAY_S,
    OUTPUT_DIR,
    REPLY_DELAY_S,
    WELCOME_DELAY_S,
    WELCOME_STEP_DELAYS_S,
)

logger = logging.getLogger(__name__)


@dataclass
class DashboardContext:
    scheduler: Scheduler
    renderer: ChartRenderer
    exporter: DocumentExporter
    output_dir: Path = OUTPUT_DIR
    metrics: tuple[str, ...] = DEFAULT_METRICS
    days: int = DEFAULT_DAYS
    seed: int | None = None
    reply_delay: float = REPLY_DELAY_S
    load_delay: float = LOAD_DELAY_S
    welcome_delay: float = WELCOME_DELAY_S

    @classmethod
    def create(cls, loop=None, **overrides) -> "DashboardContext":
        return cls(
            scheduler=Scheduler(loop),
            renderer=ChartRenderer(MatplotlibSurface()),
            exporter=DocumentExporter(),
            **overrides,
        )


# ---------------------------------------------------------------------------
# Chat widget
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatMessage:
    sender: str
    content: str
    kind: str = ""


class HealthBotSession:
    """Transcript plus the delayed reply reveal for the assistant widget."""

    def __init__(self, context: DashboardContext, on_change: Callable[[ChatMessage], None] | None = None):
        self.context = context
        self.on_change = on_change
        self.messages: list[ChatMessage] = []
        self._token = CancelToken("healthbot")

    @property
    def typing(self) -> bool:
        return any(m.kind == "typing" for m in self.messages)

    def _add_message(self, content: str, sender: str, kind: str = "") -> None:
        if kind != "typing":
            self._hide_typing()
        if not content.strip() and kind != "typing":
            return
        message = ChatMessage(sender, content, kind)
        self.messages.append(message)
        if self.on_change is not None:
            self.on_change(message)

    def _hide_typing(self) -> None:
        self.messages = [m for m in self.messages if m.kind != "typing"]

    def start(self) -> None:
        """Clear the transcript and stage the welcome lines."""
        self.messages.clear()
        for step, text in zip(WELCOME_STEP_DELAYS_S, WELCOME_MESSAGES):
            self.context.scheduler.call_later(
                self.context.welcome_delay + step, self._add_message, text, "bot", token=self._token
            )

    def send(self, text: str) -> bool:
        message = (text or "").strip()
        if not message:
            return False
        self._add_message(message, "user")
        self._process(message)
        return True

    def process_command(self, command: str) -> bool:
        return self.send(command)

    def receive_transcript(self, transcript: str) -> None:
        """Voice path: the transcript goes straight to the reply step."""
        self._process(transcript)

    def voice_error(self) -> None:
        self._add_message(VOICE_ERROR_REPLY, "bot")

    def _process(self, message: str) -> None:
        self._add_message("", "bot", "typing")
        self.context.scheduler.call_later(
            self.context.reply_delay, self._reveal, message, token=self._token
        )

    def _reveal(self, message: str) -> None:
        self._add_message(respond(message), "bot")

    def teardown(self) -> None:
        self._token.cancel()


# ---------------------------------------------------------------------------
# Reports widget
# ---------------------------------------------------------------------------

@dataclass
class ScanningReports:
    context: DashboardContext
    on_ready: Callable[["ScanningReports"], None] | None = None
    series: dict[str, MetricSeries] = field(default_factory=dict)
    _token: CancelToken = field(default_factory=lambda: CancelToken("reports"), repr=False)

    @property
    def loaded(self) -> bool:
        return bool(self.series)

    @property
    def can_export(self) -> bool:
        return self.loaded and not self.context.exporter.busy

    def load(self) -> None:
        """Schedule the simulated data fetch, then render every chart."""
        self.context.scheduler.call_later(self.context.load_delay, self.refresh, token=self._token)

    def refresh(self) -> None:
        ctx = self.context
        self.series = generate(ctx.metrics, ctx.days, seed=ctx.seed)
        rendered = ctx.renderer.render_all(self.series)
        logger.info("Loaded %d metrics, %d charts rendered", len(self.series), len(rendered))
        if self.on_ready is not None:
            self.on_ready(self)

    def download_chart(self, metric: str) -> Path | None:
        exported = self.context.exporter.export_one(metric, self.context.renderer.artifacts)
        if exported is None:
            return None
        path = exported.write(self.context.output_dir)
        logger.info("Chart saved: %s", path)
        return path

    def download_all(self) -> Path | None:
        if not self.can_export:
            logger.warning("Report export not available right now")
            return None
        exported = self.context.exporter.export_all(self.series, self.context.renderer.artifacts)
        if exported is None:
            return None
        path = exported.write(self.context.output_dir)
        logger.info("PDF generated: %s", path)
        return path

    def teardown(self) -> None:
        self._token.cancel()
        self.context.renderer.teardown()
