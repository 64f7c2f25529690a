# src/metrics.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from generate_data import MetricSeries


@dataclass(frozen=True)
class MetricSpec:
    name: str
    unit: str
    low: float
    high: float
    color: str


DEFAULT_UNIT = ""
DEFAULT_RANGE = (0.0, 100.0)
DEFAULT_COLOR = "#3498db"

# Insertion order is the report order.
METRIC_CATALOG: dict[str, MetricSpec] = {
    m.name: m
    for m in (
        MetricSpec("Heart Rate", "BPM", 60, 100, "#ff6b81"),
        MetricSpec("Blood Pressure", "mmHg", 90, 140, "#9c6bff"),
        MetricSpec("Oxygen Level", "%", 95, 100, "#4ecdc4"),
        MetricSpec("Temperature", "°C", 36, 38, "#ff9f43"),
        MetricSpec("Respiration", "breaths/min", 12, 20, "#1dd1a1"),
    )
}

DEFAULT_METRICS: tuple[str, ...] = tuple(METRIC_CATALOG)


def unit_for(metric: str) -> str:
    spec = METRIC_CATALOG.get(metric)
    return spec.unit if spec else DEFAULT_UNIT


def range_for(metric: str) -> tuple[float, float]:
    spec = METRIC_CATALOG.get(metric)
    if spec is None:
        return DEFAULT_RANGE
    return float(spec.low), float(spec.high)


def color_for(metric: str) -> str:
    spec = METRIC_CATALOG.get(metric)
    return spec.color if spec else DEFAULT_COLOR


def hex_to_rgba(hex_color: str, alpha: float) -> tuple[float, float, float, float]:
    """'#ff6b81', 0.1 -> (1.0, 0.42, 0.506, 0.1) in matplotlib's 0..1 scale."""
    h = hex_color.lstrip("#")
    r, g, b = (int(h[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    return (r, g, b, float(alpha))


def compute_summary(series_map: Mapping[str, MetricSeries]) -> list[dict]:
    """
    Per-metric summary over the generated window.
    Output rows: {metric, unit, days, min, max, mean, latest}
    """
    rows = []
    for name, series in series_map.items():
        df = series.to_frame()
        if df.empty:
            continue
        df = df.sort_values("date")
        rows.append(
            {
                "metric": name,
                "unit": series.unit,
                "days": int(len(df)),
                "min": float(df["value"].min()),
                "max": float(df["value"].max()),
                "mean": float(df["value"].mean()),
                "latest": float(df["value"].iloc[-1]),
            }
        )
    return rows
