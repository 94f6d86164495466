"""Analysis result table and the value types produced during a run."""

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from loiter.registry.models import Sighting


class AnalysisResult(SQLModel, table=True):
    """One device's persistence score from one run. Rows are only ever appended."""

    __table_args__ = (UniqueConstraint("device_id", "analysis_timestamp"),)

    id: int | None = Field(default=None, primary_key=True)
    device_id: int = Field(index=True, foreign_key="device.id")
    persistence_score: float = Field(index=True)
    location_count: int
    time_window_hours: float
    total_sightings: int = 0
    analysis_timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)


class RunStatus(enum.StrEnum):
    idle = "idle"
    running = "running"
    completed = "completed"
    completed_with_errors = "completed_with_errors"
    failed = "failed"


@dataclass
class LocationCluster:
    """Sightings grouped around a running mean coordinate."""

    centroid_lat: float
    centroid_lon: float
    sightings: list[Sighting] = field(default_factory=list)

    def add(self, sighting: Sighting) -> None:
        self.sightings.append(sighting)
        n = len(self.sightings)
        self.centroid_lat = sum(s.latitude for s in self.sightings) / n
        self.centroid_lon = sum(s.longitude for s in self.sightings) / n


@dataclass(frozen=True)
class TemporalMetrics:
    time_span_hours: float = 0.0
    avg_interval_hours: float = 0.0
    regularity_score: float = 0.0


@dataclass(frozen=True)
class DeviceAnalysis:
    device_id: int
    persistence_score: float
    location_count: int
    time_window_hours: float  # config snapshot, not the observed span
    total_sightings: int
    analysis_timestamp: datetime

    def to_result(self) -> AnalysisResult:
        return AnalysisResult(
            device_id=self.device_id,
            persistence_score=self.persistence_score,
            location_count=self.location_count,
            time_window_hours=self.time_window_hours,
            total_sightings=self.total_sightings,
            analysis_timestamp=self.analysis_timestamp,
        )


@dataclass(frozen=True)
class AnalysisSummary:
    processed_count: int
    duration_seconds: float
    error_count: int  # failed pages
    failed_device_count: int
    status: RunStatus
