from collections.abc import Sequence

import numpy as np

from .common.models import METRIC_NAMES, MetricStats, SensorReading, StatsCollection


def metric_stats(readings: Sequence[SensorReading], metric: str) -> MetricStats:
    """Summarize one metric over a series; all-zero when no value is present."""
    values = np.array([v for v in (r.value_of(metric) for r in readings) if v is not None], dtype=float)
    if values.size == 0:
        return MetricStats()

    lo = float(values.min())
    hi = float(values.max())
    # Rounding in the sum can push the mean an ulp outside [lo, hi]
    avg = float(np.clip(values.mean(), lo, hi))
    change = float(values[-1] - values[-2]) if values.size > 1 else 0.0
    return MetricStats(
        current=float(values[-1]),
        min=lo,
        max=hi,
        avg=avg,
        change=change,
        anomalies=sum(1 for r in readings if r.is_flagged(metric)),
    )


def aggregate(readings: Sequence[SensorReading]) -> StatsCollection:
    """Compute the per-metric summary for a fully assembled series."""
    return StatsCollection(**{metric: metric_stats(readings, metric) for metric in METRIC_NAMES})
