# src/export_pdf.py
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Mapping, Protocol

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from charts import ChartArtifact, ReportError, TargetUnavailable, chart_filename
from generate_data import MetricSeries
from settings import (
    BODY_TEXT,
    HEADER_FILL,
    HEADER_TEXT,
    REPORT_TITLE,
    ROW_FILL,
    SUBTITLE_COLOR,
    TITLE_COLOR,
    ExportLayout,
)

logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]

A4_WIDTH_MM = A4[0] / mm


class DocumentSurfaceUnavailable(ReportError):
    """No document surface to draw on; raised before any drawing."""


# ----------------------------
# Drawing primitives
# ----------------------------

class DrawingSurface(Protocol):
    """Millimetre coordinates, origin at the top-left of the current page."""

    page_width: float
    page_height: float

    def place_image(self, png: bytes, x: float, y: float, width: float, height: float) -> None: ...

    def place_text(
        self, text: str, x: float, y: float, *, size: float, color: RGB, align: str = "left"
    ) -> None: ...

    def place_filled_rect(self, x: float, y: float, width: float, height: float, color: RGB) -> None: ...

    def add_page(self) -> None: ...

    def finalize(self) -> bytes: ...


class ReportLabSurface:
    """DrawingSurface over a reportlab canvas writing into memory."""

    def __init__(self, pagesize=A4, title: str = REPORT_TITLE, font: str = "Helvetica") -> None:
        self._buf = io.BytesIO()
        self._canvas = canvas.Canvas(self._buf, pagesize=pagesize)
        self._canvas.setTitle(title)
        self._font = font
        self.page_width = pagesize[0] / mm
        self.page_height = pagesize[1] / mm

    def _y(self, y: float, height: float = 0.0) -> float:
        # reportlab's origin is bottom-left
        return (self.page_height - y - height) * mm

    def place_image(self, png: bytes, x: float, y: float, width: float, height: float) -> None:
        self._canvas.drawImage(
            ImageReader(io.BytesIO(png)),
            x * mm,
            self._y(y, height),
            width=width * mm,
            height=height * mm,
        )

    def place_text(self, text, x, y, *, size, color, align="left") -> None:
        c = self._canvas
        c.setFont(self._font, size)
        c.setFillColorRGB(*(v / 255.0 for v in color))
        if align == "center":
            c.drawCentredString(x * mm, self._y(y), text)
        elif align == "right":
            c.drawRightString(x * mm, self._y(y), text)
        else:
            c.drawString(x * mm, self._y(y), text)

    def place_filled_rect(self, x, y, width, height, color) -> None:
        c = self._canvas
        c.setFillColorRGB(*(v / 255.0 for v in color))
        c.rect(x * mm, self._y(y, height), width * mm, height * mm, stroke=0, fill=1)

    def add_page(self) -> None:
        self._canvas.showPage()

    def finalize(self) -> bytes:
        self._canvas.save()
        return self._buf.getvalue()


# ----------------------------
# Layout model
# ----------------------------

@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass
class ChartBlock:
    metric: str
    caption: str
    image: Rect
    caption_y: float
    table_y: float
    rows: tuple[tuple[str, str], ...]
    png: bytes = field(default=b"", repr=False)


@dataclass
class ReportPage:
    number: int
    blocks: list[ChartBlock] = field(default_factory=list)


@dataclass
class ReportDocument:
    title: str
    generated_at: str
    page_width: float
    pages: list[ReportPage] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def blocks(self) -> list[ChartBlock]:
        return [b for p in self.pages for b in p.blocks]


@dataclass(frozen=True)
class ExportedFile:
    filename: str
    content: bytes = field(repr=False)
    media_type: str = "application/pdf"

    def write(self, directory: Path) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.content)
        return path


def report_filename(day) -> str:
    return f"Scanning_Reports_{day.isoformat()}.pdf"


def fmt_value(value: float, unit: str) -> str:
    return f"{float(value):.1f} {unit}".strip()


def table_rows(series: MetricSeries) -> tuple[tuple[str, str], ...]:
    return tuple((p.date.isoformat(), fmt_value(p.value, series.unit)) for p in series.points)


# ----------------------------
# Exporter
# ----------------------------

class DocumentExporter:
    """
    Lays out one chart block per metric (image, caption, data table) with a
    fixed number of metrics per page, then draws the layout onto a
    DrawingSurface and returns the finished document.
    """

    def __init__(
        self,
        surface_factory: Callable[[], DrawingSurface] | None = ReportLabSurface,
        layout: ExportLayout | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.surface_factory = surface_factory
        self.layout = layout or ExportLayout()
        self.clock = clock
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def _open_surface(self) -> DrawingSurface:
        surface = self.surface_factory() if self.surface_factory is not None else None
        if surface is None:
            raise DocumentSurfaceUnavailable("no document surface configured for export")
        return surface

    def _collect_snapshots(
        self, series: Mapping[str, MetricSeries], artifacts: Mapping[str, ChartArtifact]
    ) -> dict[str, bytes]:
        images = {}
        for name in series:
            artifact = artifacts.get(name)
            if artifact is None:
                logger.warning("No chart for %s yet; leaving it out of the report", name)
                continue
            try:
                images[name] = artifact.snapshot()
            except TargetUnavailable as exc:
                logger.warning("Chart for %s unavailable (%s); leaving it out", name, exc)
        return images

    def paginate(
        self,
        series: Mapping[str, MetricSeries],
        images: Mapping[str, bytes],
        page_width: float = A4_WIDTH_MM,
        generated_at: datetime | None = None,
    ) -> ReportDocument:
        """Compute page breaks and coordinates; metrics absent from `images` are skipped."""
        lay = self.layout
        generated_at = generated_at or self.clock()
        doc = ReportDocument(
            title=REPORT_TITLE,
            generated_at=generated_at.strftime("%Y-%m-%d %H:%M:%S"),
            page_width=page_width,
            pages=[ReportPage(1)],
        )

        y = lay.first_page_top
        for index, (name, s) in enumerate(series.items()):
            # the index counts skipped metrics too
            if index > 0 and index % lay.metrics_per_page == 0:
                doc.pages.append(ReportPage(len(doc.pages) + 1))
                y = lay.page_top

            png = images.get(name)
            if png is None:
                continue

            img_w = page_width * lay.image_width_fraction
            img_h = img_w * lay.image_aspect
            image = Rect((page_width - img_w) / 2, y, img_w, img_h)
            y += img_h + lay.image_gap

            caption_y = y
            y += lay.caption_gap

            rows = table_rows(s)
            table_y = y
            y += (len(rows) + 1) * lay.row_height + lay.table_gap

            doc.pages[-1].blocks.append(
                ChartBlock(
                    metric=name,
                    caption=f"{name} ({s.unit})",
                    image=image,
                    caption_y=caption_y,
                    table_y=table_y,
                    rows=rows,
                    png=png,
                )
            )
        return doc

    def _draw_table(self, surface: DrawingSurface, block: ChartBlock) -> None:
        lay = self.layout
        col_w = surface.page_width / 3
        x0 = lay.left_margin
        text_x = x0 + lay.cell_padding
        baseline = lay.row_height - 3
        y = block.table_y

        surface.place_filled_rect(x0, y, col_w, lay.row_height, HEADER_FILL)
        surface.place_text("Date", text_x, y + baseline, size=lay.table_size, color=HEADER_TEXT)
        surface.place_filled_rect(x0 + col_w, y, col_w, lay.row_height, HEADER_FILL)
        surface.place_text("Value", text_x + col_w, y + baseline, size=lay.table_size, color=HEADER_TEXT)

        for i, (day, value) in enumerate(block.rows):
            row_y = y + (i + 1) * lay.row_height
            if i % 2 == 0:
                surface.place_filled_rect(x0, row_y, col_w * 2, lay.row_height, ROW_FILL)
            surface.place_text(day, text_x, row_y + baseline, size=lay.table_size, color=BODY_TEXT)
            surface.place_text(value, text_x + col_w, row_y + baseline, size=lay.table_size, color=BODY_TEXT)

    def draw(self, doc: ReportDocument, surface: DrawingSurface) -> None:
        lay = self.layout
        center = surface.page_width / 2
        surface.place_text(doc.title, center, lay.title_y, size=lay.title_size, color=TITLE_COLOR, align="center")
        surface.place_text(
            f"Generated on: {doc.generated_at}",
            center,
            lay.subtitle_y,
            size=lay.subtitle_size,
            color=SUBTITLE_COLOR,
            align="center",
        )

        for page in doc.pages:
            if page.number > 1:
                surface.add_page()
            for block in page.blocks:
                r = block.image
                surface.place_image(block.png, r.x, r.y, r.width, r.height)
                surface.place_text(
                    block.caption, lay.left_margin, block.caption_y, size=lay.caption_size, color=TITLE_COLOR
                )
                self._draw_table(surface, block)

    def export_all(
        self,
        series: Mapping[str, MetricSeries],
        artifacts: Mapping[str, ChartArtifact],
    ) -> ExportedFile | None:
        """
        Full multi-chart report. Returns None when an export is already in
        progress; raises DocumentSurfaceUnavailable before drawing anything
        when there is no surface.
        """
        if self._busy:
            logger.warning("Export already in progress; ignoring request")
            return None

        self._busy = True
        try:
            surface = self._open_surface()
            now = self.clock()
            images = self._collect_snapshots(series, artifacts)
            doc = self.paginate(series, images, surface.page_width, now)
            self.draw(doc, surface)
            content = surface.finalize()
        finally:
            self._busy = False

        exported = ExportedFile(report_filename(now.date()), content)
        logger.info(
            "Report built: %s (%d pages, %d charts)", exported.filename, doc.page_count, len(doc.blocks)
        )
        return exported

    def export_one(self, metric: str, artifacts: Mapping[str, ChartArtifact]) -> ExportedFile | None:
        """Single chart PNG, no pagination. None when the chart is not rendered."""
        artifact = artifacts.get(metric)
        if artifact is None:
            logger.warning("No chart rendered for %s", metric)
            return None
        try:
            png = artifact.snapshot()
        except TargetUnavailable as exc:
            logger.warning("Chart for %s unavailable: %s", metric, exc)
            return None
        return ExportedFile(
            chart_filename(metric, self.clock().date()),
            png,
            media_type="image/png",
        )
