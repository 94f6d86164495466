"""Temporal regularity metrics over a device's sighting timestamps."""

from collections.abc import Sequence
from datetime import datetime, timedelta

from loiter.analysis.models import TemporalMetrics


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / 3600


def compute_temporal_metrics(timestamps: Sequence[datetime]) -> TemporalMetrics:
    """Time span, mean interval and interval regularity of ascending timestamps.

    Regularity is 1 / (1 + variance / mean_interval^2), so evenly spaced
    sightings score close to 1. When the mean interval is zero (every sighting
    shares one timestamp) the ratio is undefined; that case scores 1.0 if the
    variance is also zero and 0.0 otherwise.
    """
    if len(timestamps) < 2:
        return TemporalMetrics()

    time_span_hours = _hours(max(timestamps) - min(timestamps))

    intervals = [_hours(b - a) for a, b in zip(timestamps, timestamps[1:])]
    avg_interval = sum(intervals) / len(intervals)
    variance = sum((i - avg_interval) ** 2 for i in intervals) / len(intervals)

    if avg_interval == 0:
        regularity = 1.0 if variance == 0 else 0.0
    else:
        regularity = 1 / (1 + variance / (avg_interval * avg_interval))

    return TemporalMetrics(
        time_span_hours=time_span_hours,
        avg_interval_hours=avg_interval,
        regularity_score=regularity,
    )


def time_window_overlaps(timestamps: Sequence[datetime], window_hours: float) -> int:
    """Count timestamp pairs that fall within window_hours of each other."""
    window = timedelta(hours=window_hours)
    overlaps = 0
    for i, first in enumerate(timestamps):
        for second in timestamps[i + 1 :]:
            if abs(second - first) <= window:
                overlaps += 1
    return overlaps
