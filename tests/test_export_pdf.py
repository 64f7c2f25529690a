import io

import pytest
from PIL import Image

from export_pdf import (
    DocumentExporter,
    DocumentSurfaceUnavailable,
    ExportedFile,
    ReportLabSurface,
    fmt_value,
    report_filename,
    table_rows,
)
from generate_data import generate
from metrics import DEFAULT_METRICS
from settings import HEADER_FILL, ROW_FILL, ExportLayout

from conftest import NOW, TODAY, FakeArtifact, RecordingSurface


def _artifacts(names):
    return {n: FakeArtifact(n, png=f"png:{n}".encode()) for n in names}


def test_five_metrics_make_three_pages(exporter, recording, series):
    assert len(series) == 5
    exported = exporter.export_all(series, _artifacts(series))

    assert exported.content == b"%PDF-recorded"
    assert len(recording.pages) == 3
    per_page = [len(recording.ops("image", page=i)) for i in range(3)]
    assert per_page == [2, 2, 1]


def test_paginate_without_a_surface(exporter, series):
    images = {n: b"png" for n in series}
    doc = exporter.paginate(series, images, generated_at=NOW)
    assert doc.page_count == 3
    assert [len(p.blocks) for p in doc.pages] == [2, 2, 1]
    assert [b.metric for b in doc.blocks] == list(DEFAULT_METRICS)
    assert doc.generated_at == "2024-05-01 09:30:00"


def test_missing_artifact_is_skipped(exporter, recording):
    three = generate(["Heart Rate", "Oxygen Level", "Temperature"], 7, today=TODAY)
    artifacts = _artifacts(["Heart Rate", "Temperature"])

    exported = exporter.export_all(three, artifacts)

    assert exported is not None
    images = recording.ops("image")
    assert [op[1] for op in images] == [b"png:Heart Rate", b"png:Temperature"]
    captions = [op[1] for op in recording.ops("text") if op[1].endswith(")")]
    assert captions == ["Heart Rate (BPM)", "Temperature (°C)"]


def test_page_index_counts_skipped_metrics(exporter, series):
    images = {n: b"png" for n in list(series)[2:]}
    doc = exporter.paginate(series, images)
    # the first two metrics are gone but still occupy page 1's slots
    assert [len(p.blocks) for p in doc.pages] == [0, 2, 1]


def test_torn_down_artifact_is_skipped(exporter, recording, series):
    artifacts = _artifacts(series)
    artifacts["Respiration"].closed = True
    exporter.export_all(series, artifacts)
    assert b"png:Respiration" not in [op[1] for op in recording.ops("image")]
    assert len(recording.ops("image")) == 4


def test_layout_coordinates(exporter, series):
    doc = exporter.paginate(series, {n: b"png" for n in series}, page_width=210.0)
    first, second = doc.pages[0].blocks
    assert first.image.x == pytest.approx(10.5)
    assert first.image.y == pytest.approx(50.0)
    assert first.image.width == pytest.approx(189.0)
    assert first.image.height == pytest.approx(113.4)
    assert first.caption_y == pytest.approx(50.0 + 113.4 + 15.0)
    assert first.table_y == pytest.approx(first.caption_y + 10.0)
    # table: header + 7 rows of 8mm, then the gap
    assert second.image.y == pytest.approx(first.table_y + 8 * 8.0 + 10.0)

    third = doc.pages[1].blocks[0]
    assert third.image.y == pytest.approx(30.0)

def _block_bottom(block, layout):
    return block.table_y + (len(block.rows) + 1) * layout.row_height


def test_default_layout_second_block_overflows_a4(exporter, series):
    doc = exporter.paginate(series, {n: b"png" for n in series}, page_width=210.0)
    second = doc.pages[0].blocks[1]
    assert second.image.y == pytest.approx(262.4)
    assert second.image.y + second.image.height > 297.0


def test_one_metric_per_page_layout_fits_a4(recording, series):
    layout = ExportLayout(metrics_per_page=1)
    exporter = DocumentExporter(surface_factory=lambda: recording, clock=lambda: NOW, layout=layout)
    doc = exporter.paginate(series, {n: b"png" for n in series}, page_width=210.0)

    assert doc.page_count == len(series)
    for page in doc.pages:
        (block,) = page.blocks
        assert _block_bottom(block, layout) <= 297.0



def test_title_block_and_table_styling(exporter, recording, series):
    exporter.export_all(series, _artifacts(series))
    page1 = recording.pages[0]

    title, subtitle = page1[0], page1[1]
    assert title[:4] == ("text", "Scanning Reports", 105.0, 20.0)
    assert title[-1] == "center"
    assert subtitle[1] == "Generated on: 2024-05-01 09:30:00"

    rects = recording.ops("rect", page=0)
    header = [r for r in rects if r[-1] == HEADER_FILL]
    striped = [r for r in rects if r[-1] == ROW_FILL]
    assert len(header) == 2 * 2  # two header cells per table, two tables
    assert len(striped) == 4 * 2  # rows 0, 2, 4, 6
    assert striped[0][3] == pytest.approx(210.0 / 3 * 2)

    texts = [op[1] for op in recording.ops("text", page=0)]
    assert texts.count("Date") == 2
    assert texts.count("Value") == 2
    assert fmt_value(series["Heart Rate"].values[0], "BPM") in texts


def test_custom_capacity(recording, series):
    exporter = DocumentExporter(
        surface_factory=lambda: recording,
        layout=ExportLayout(metrics_per_page=3),
        clock=lambda: NOW,
    )
    exporter.export_all(series, _artifacts(series))
    assert len(recording.pages) == 2


def test_exported_name(exporter, series):
    exported = exporter.export_all(series, _artifacts(series))
    assert exported.filename == "Scanning_Reports_2024-05-01.pdf"
    assert exported.media_type == "application/pdf"
    assert report_filename(TODAY) == exported.filename


def test_missing_document_surface_fails_before_drawing(series):
    artifacts = _artifacts(series)
    with pytest.raises(DocumentSurfaceUnavailable):
        DocumentExporter(surface_factory=None).export_all(series, artifacts)
    with pytest.raises(DocumentSurfaceUnavailable):
        DocumentExporter(surface_factory=lambda: None).export_all(series, artifacts)


def test_reentrant_export_is_ignored(series):
    inner_results = []

    class ReentrantSurface(RecordingSurface):
        def finalize(self):
            inner_results.append(exporter.export_all(series, artifacts))
            return super().finalize()

    artifacts = _artifacts(series)
    exporter = DocumentExporter(surface_factory=ReentrantSurface, clock=lambda: NOW)
    outer = exporter.export_all(series, artifacts)

    assert inner_results == [None]
    assert outer is not None
    assert not exporter.busy


def test_busy_flag_resets_after_failure(series):
    class BrokenSurface(RecordingSurface):
        def finalize(self):
            raise RuntimeError("disk full")

    exporter = DocumentExporter(surface_factory=BrokenSurface)
    with pytest.raises(RuntimeError):
        exporter.export_all(series, _artifacts(series))
    assert not exporter.busy


def test_export_one(exporter):
    artifacts = _artifacts(["Heart Rate"])
    exported = exporter.export_one("Heart Rate", artifacts)
    assert exported.filename == "Heart_Rate_2024-05-01.png"
    assert exported.content == b"png:Heart Rate"
    assert exported.media_type == "image/png"
    assert exporter.export_one("Oxygen Level", artifacts) is None


def test_table_rows(series):
    rows = table_rows(series["Respiration"])
    assert len(rows) == 7
    assert rows[0][0] == "2024-04-25"
    assert rows[0][1].endswith(" breaths/min")


def test_exported_file_write(tmp_path):
    path = ExportedFile("a.pdf", b"data").write(tmp_path / "out")
    assert path.read_bytes() == b"data"


def _png(width=100, height=60):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (255, 107, 129)).save(buf, format="PNG")
    return buf.getvalue()


def test_reportlab_surface_writes_a_pdf(series):
    artifacts = {n: FakeArtifact(n, png=_png()) for n in series}
    exporter = DocumentExporter(clock=lambda: NOW)
    exported = exporter.export_all(series, artifacts)

    assert exported.content.startswith(b"%PDF")
    assert b"/Count 3" in exported.content


def test_reportlab_surface_dimensions_in_mm():
    surface = ReportLabSurface()
    assert surface.page_width == pytest.approx(210.0, abs=0.1)
    assert surface.page_height == pytest.approx(297.0, abs=0.1)
    surface.place_filled_rect(15, 20, 50, 8, HEADER_FILL)
    surface.place_text("x", 105, 20, size=12, color=(0, 0, 0), align="center")
    surface.place_text("y", 195, 20, size=12, color=(0, 0, 0), align="right")
    surface.add_page()
    assert surface.finalize().startswith(b"%PDF")
