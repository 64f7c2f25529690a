from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

import numpy as np
import pandas as pd

from metrics import DEFAULT_METRICS, range_for, unit_for
from settings import DEFAULT_DAYS


@dataclass(frozen=True)
class SeriesPoint:
    date: date
    value: float


@dataclass(frozen=True)
class MetricSeries:
    name: str
    unit: str
    points: tuple[SeriesPoint, ...]

    @property
    def labels(self) -> list[str]:
        return [p.date.isoformat() for p in self.points]

    @property
    def values(self) -> list[float]:
        return [p.value for p in self.points]

    def __len__(self) -> int:
        return len(self.points)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"date": [p.date for p in self.points], "value": self.values},
            columns=["date", "value"],
        )


def date_window(days: int, today: date | None = None) -> list[date]:
    """`days` consecutive calendar dates ending at `today` (inclusive), oldest first."""
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")
    end_date = today or date.today()
    start_date = end_date - timedelta(days=days - 1)
    return [start_date + timedelta(days=i) for i in range(days)]


def generate(
    metrics: Iterable[str] = DEFAULT_METRICS,
    days: int = DEFAULT_DAYS,
    *,
    today: date | None = None,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
) -> dict[str, MetricSeries]:
    """
    Synthesizes one daily series per metric.

    Values are drawn uniformly from the metric's plausible range and rounded
    to one decimal; unknown metrics get an empty unit and a 0-100 range.
    Randomness is per call unless `rng` or `seed` is given; the date window
    only depends on `today`.
    """
    dates = date_window(days, today)
    if rng is None:
        rng = np.random.default_rng(seed)

    out: dict[str, MetricSeries] = {}
    for metric in metrics:
        low, high = range_for(metric)
        values = rng.uniform(low, high, size=days)
        out[metric] = MetricSeries(
            name=metric,
            unit=unit_for(metric),
            points=tuple(
                SeriesPoint(d, min(max(round(float(v), 1), low), high))
                for d, v in zip(dates, values)
            ),
        )
    return out
