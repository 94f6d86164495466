"""Persistence scoring."""

from loiter.analysis.models import TemporalMetrics
from loiter.config import AnalysisConfig

# Factor saturation points
MAX_LOCATIONS = 5
MAX_SIGHTINGS = 20
TIME_WINDOW_MULTIPLIER = 3

WEIGHTS = {
    "location": 0.30,
    "frequency": 0.25,
    "time": 0.25,
    "regularity": 0.20,
}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(value, high))


def persistence_score(
    cluster_count: int,
    metrics: TemporalMetrics,
    sighting_count: int,
    config: AnalysisConfig,
) -> float:
    """Weighted blend of location, frequency, time span and regularity, in [0, 1]."""
    location_factor = _clamp(cluster_count / MAX_LOCATIONS)
    frequency_factor = _clamp(sighting_count / MAX_SIGHTINGS)
    time_factor = _clamp(
        metrics.time_span_hours / (config.time_window_hours * TIME_WINDOW_MULTIPLIER)
    )
    regularity_factor = _clamp(metrics.regularity_score)

    score = (
        location_factor * WEIGHTS["location"]
        + frequency_factor * WEIGHTS["frequency"]
        + time_factor * WEIGHTS["time"]
        + regularity_factor * WEIGHTS["regularity"]
    )
    return _clamp(score)
