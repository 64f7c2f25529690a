# src/charts.py
from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Mapping, Protocol

from matplotlib.figure import Figure

from generate_data import MetricSeries
from metrics import color_for, hex_to_rgba
from settings import CHART_AXIS_COLOR, CHART_DPI, CHART_FIGSIZE, CHART_FILL_ALPHA

logger = logging.getLogger(__name__)


class ReportError(Exception):
    """Base for failures local to the reporting panel."""


class TargetUnavailable(ReportError):
    """The chart surface for a metric is missing or already torn down."""


@dataclass(frozen=True)
class ChartSpec:
    """What the rendering surface consumes for one metric."""

    title: str
    labels: tuple[str, ...]
    values: tuple[float, ...]
    color: str
    unit: str

    @classmethod
    def from_series(cls, series: MetricSeries) -> "ChartSpec":
        return cls(
            title=series.name,
            labels=tuple(series.labels),
            values=tuple(series.values),
            color=color_for(series.name),
            unit=series.unit,
        )

    def point_label(self, value: float) -> str:
        return f"{value} {self.unit}".strip()


class ChartSurface(Protocol):
    def draw(self, spec: ChartSpec) -> Any: ...

    def snapshot(self, handle: Any) -> bytes: ...

    def close(self, handle: Any) -> None: ...


class MatplotlibSurface:
    """Draws line charts on standalone Agg figures (no pyplot registry)."""

    def __init__(self, figsize=CHART_FIGSIZE, dpi: int = CHART_DPI) -> None:
        self.figsize = figsize
        self.dpi = dpi
        self._open = True

    @property
    def available(self) -> bool:
        return self._open

    def shutdown(self) -> None:
        self._open = False

    def draw(self, spec: ChartSpec) -> Figure:
        if not self.available:
            raise TargetUnavailable(f"chart surface closed, cannot draw {spec.title!r}")

        fig = Figure(figsize=self.figsize, dpi=self.dpi)
        ax = fig.add_subplot(1, 1, 1)
        x = list(range(len(spec.values)))

        ax.plot(x, spec.values, color=spec.color, linewidth=2, marker="o")
        ax.fill_between(
            x, spec.values, min(spec.values, default=0),
            color=hex_to_rgba(spec.color, CHART_FILL_ALPHA),
        )
        for xi, v in zip(x, spec.values):
            ax.annotate(
                spec.point_label(v),
                (xi, v),
                textcoords="offset points",
                xytext=(0, 7),
                ha="center",
                fontsize=8,
                color=CHART_AXIS_COLOR,
            )

        ax.set_title(f"{spec.title} ({spec.unit})" if spec.unit else spec.title, fontsize=11)
        ax.set_xticks(x)
        ax.set_xticklabels(spec.labels, rotation=25, ha="right")
        ax.set_ylabel(spec.unit or "value")
        ax.tick_params(colors=CHART_AXIS_COLOR)
        ax.grid(axis="y", alpha=0.3)
        ax.grid(axis="x", visible=False)
        fig.tight_layout()
        return fig

    def snapshot(self, handle: Figure) -> bytes:
        buf = io.BytesIO()
        handle.savefig(buf, format="png", dpi=self.dpi)
        return buf.getvalue()

    def close(self, handle: Figure) -> None:
        handle.clear()


@dataclass
class ChartArtifact:
    metric: str
    spec: ChartSpec
    handle: Any
    surface: ChartSurface = field(repr=False)
    closed: bool = False

    def snapshot(self) -> bytes:
        """PNG bytes at the surface's fixed resolution; no data re-query."""
        if self.closed:
            raise TargetUnavailable(f"chart for {self.metric!r} was torn down")
        return self.surface.snapshot(self.handle)

    def close(self) -> None:
        if not self.closed:
            self.surface.close(self.handle)
            self.closed = True


def chart_filename(metric_name: str, day: date | None = None) -> str:
    """'Heart Rate' -> 'Heart_Rate_2024-05-01.png'"""
    day = day or date.today()
    stem = re.sub(r"\s+", "_", metric_name)
    return f"{stem}_{day.isoformat()}.png"


class ChartRenderer:
    """Owns one ChartArtifact per metric name."""

    def __init__(self, surface: ChartSurface | None = None) -> None:
        self.surface = surface
        self._artifacts: dict[str, ChartArtifact] = {}

    @property
    def artifacts(self) -> Mapping[str, ChartArtifact]:
        return MappingProxyType(self._artifacts)

    def render(self, series: MetricSeries) -> ChartArtifact:
        if self.surface is None:
            self.discard(series.name)
            raise TargetUnavailable(f"no chart surface for {series.name!r}")

        spec = ChartSpec.from_series(series)
        try:
            handle = self.surface.draw(spec)
        except Exception:
            self.discard(series.name)
            raise
        artifact = ChartArtifact(series.name, spec, handle, self.surface)

        previous = self._artifacts.pop(series.name, None)
        if previous is not None:
            previous.close()
        self._artifacts[series.name] = artifact
        logger.debug("Rendered chart for %s (%d points)", series.name, len(spec.values))
        return artifact

    def render_all(self, series_map: Mapping[str, MetricSeries]) -> dict[str, ChartArtifact]:
        rendered = {}
        for name, series in series_map.items():
            try:
                rendered[name] = self.render(series)
            except TargetUnavailable as exc:
                logger.warning("Skipping chart for %s: %s", name, exc)
            except Exception:
                logger.exception("Chart for %s failed to render; skipping", name)
        return rendered

    def discard(self, metric: str) -> None:
        artifact = self._artifacts.pop(metric, None)
        if artifact is not None:
            artifact.close()

    def teardown(self) -> None:
        for artifact in self._artifacts.values():
            artifact.close()
        self._artifacts.clear()
