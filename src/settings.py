"""Named constants for the BioHealth dashboard widgets."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# ---------------------------------------------------------------------------
# Paths (repo-relative, no local machine paths)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
OUTPUT_DIR = PROJECT_ROOT / "reports"

# ---------------------------------------------------------------------------
# Simulated latency (seconds)
# ---------------------------------------------------------------------------
REPLY_DELAY_S: float = 1.0
LOAD_DELAY_S: float = 0.5
WELCOME_DELAY_S: float = 0.5
WELCOME_STEP_DELAYS_S: tuple[float, ...] = (0.0, 0.5, 1.0)

# ---------------------------------------------------------------------------
# Generation window
# ---------------------------------------------------------------------------
DEFAULT_DAYS: int = 7

# ---------------------------------------------------------------------------
# Chart rendering
# ---------------------------------------------------------------------------
CHART_FIGSIZE: tuple[float, float] = (10, 6)
CHART_DPI: int = 100
CHART_FILL_ALPHA: float = 0.1
CHART_AXIS_COLOR = "#94a3b8"

# ---------------------------------------------------------------------------
# PDF layout (millimetres, A4 portrait)
# ---------------------------------------------------------------------------
REPORT_TITLE = "Scanning Reports"
METRICS_PER_PAGE: int = 2
IMAGE_WIDTH_FRACTION: float = 0.9
IMAGE_ASPECT: float = 0.6


@dataclass(frozen=True)
class ExportLayout:
    """Placement constants for the multi-chart report, in mm from the top-left.

    The defaults do not fit two blocks on an A4 page (297 mm tall). With a
    seven-day table the first block ends at 252.4 mm, so the second image
    starts at 262.4 mm and runs off the bottom edge. Nothing is clipped or
    reflowed. Callers that need every block on the page should pass
    ``metrics_per_page=1``, or shrink ``image_width_fraction`` and
    ``image_aspect`` and shorten the date window.
    """

    metrics_per_page: int = METRICS_PER_PAGE
    image_width_fraction: float = IMAGE_WIDTH_FRACTION
    image_aspect: float = IMAGE_ASPECT
    title_y: float = 20.0
    subtitle_y: float = 30.0
    first_page_top: float = 50.0
    page_top: float = 30.0
    image_gap: float = 15.0
    caption_gap: float = 10.0
    table_gap: float = 10.0
    left_margin: float = 15.0
    cell_padding: float = 5.0
    row_height: float = 8.0
    title_size: float = 22.0
    subtitle_size: float = 12.0
    caption_size: float = 14.0
    table_size: float = 10.0


TITLE_COLOR = (44, 62, 80)
SUBTITLE_COLOR = (100, 100, 100)
HEADER_FILL = (44, 62, 80)
HEADER_TEXT = (255, 255, 255)
ROW_FILL = (240, 240, 240)
BODY_TEXT = (0, 0, 0)
