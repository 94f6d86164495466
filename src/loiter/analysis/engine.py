"""Persistence analysis engine.

Runs per device: fetch sightings -> cluster -> temporal metrics -> score.
``analyze_all_devices`` drives that over the whole population in pages and
writes one batch of results per page. Failures are contained:

- the initial device count is the only fatal step (AnalysisAbortedError);
- a page whose fetch or write fails is counted in ``error_count`` and skipped,
  never retried within the run;
- a device whose analysis raises is logged and left out of its page's batch.

The device count is snapshotted once at start. Devices added mid-run may be
missed, or seen twice if inserted behind the current offset. Concurrent runs
are not coordinated; the result table's duplicate skip is the only guard.
"""

import logging
import time
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from sqlmodel import Session

from loiter.analysis.clustering import cluster_sightings
from loiter.analysis.geo import is_valid_coordinate
from loiter.analysis.models import (
    AnalysisResult,
    AnalysisSummary,
    DeviceAnalysis,
    LocationCluster,
    RunStatus,
)
from loiter.analysis.scoring import persistence_score
from loiter.analysis.stores import (
    DeviceStore,
    ResultStore,
    SightingStore,
    SQLDeviceStore,
    SQLResultStore,
    SQLSightingStore,
)
from loiter.analysis.temporal import compute_temporal_metrics
from loiter.config import AnalysisConfig, build_analysis_config
from loiter.errors import AnalysisAbortedError, DeviceAnalysisError
from loiter.registry.models import Device, Sighting

logger = logging.getLogger(__name__)


def has_cross_cluster_proximity(clusters: Sequence[LocationCluster], window_hours: float) -> bool:
    """True if two different clusters hold sightings within window_hours of each other."""
    window = timedelta(hours=window_hours)
    for i, first in enumerate(clusters):
        for second in clusters[i + 1 :]:
            for a in first.sightings:
                for b in second.sightings:
                    if abs(b.timestamp - a.timestamp) <= window:
                        return True
    return False


class PersistenceAnalyzer:
    """Scores how persistently each device has been observed."""

    def __init__(
        self,
        devices: DeviceStore,
        sightings: SightingStore,
        results: ResultStore,
        config: AnalysisConfig | None = None,
    ):
        self.devices = devices
        self.sightings = sightings
        self.results = results
        self.config = config or build_analysis_config()
        self.status = RunStatus.idle

    @classmethod
    def for_session(
        cls, session: Session, config: AnalysisConfig | None = None
    ) -> "PersistenceAnalyzer":
        """Build an analyzer backed by the SQL stores on one session."""
        return cls(
            SQLDeviceStore(session),
            SQLSightingStore(session),
            SQLResultStore(session),
            config=config,
        )

    # --- Single device ---

    def _checked_sightings(self, device_id: int | None) -> list[Sighting]:
        if device_id is None:
            raise DeviceAnalysisError(device_id, "device has no id")
        sightings = self.sightings.by_device(device_id)
        for s in sightings:
            if not is_valid_coordinate(s.latitude, s.longitude):
                raise DeviceAnalysisError(
                    device_id, f"invalid coordinates ({s.latitude}, {s.longitude})"
                )
        return sightings

    def analyze_device(self, device: Device) -> DeviceAnalysis | None:
        """Score one device. Returns None below the minimum sighting count.

        Raises:
            DeviceAnalysisError: If the device's sightings are unusable.
            StorageError: If its sightings cannot be fetched.
        """
        sightings = self._checked_sightings(device.id)
        if len(sightings) < self.config.min_sightings_threshold:
            return None

        clusters = cluster_sightings(sightings, self.config.proximity_radius_meters)
        metrics = compute_temporal_metrics([s.timestamp for s in sightings])
        score = persistence_score(len(clusters), metrics, len(sightings), self.config)

        return DeviceAnalysis(
            device_id=device.id,  # type: ignore[arg-type]
            persistence_score=score,
            location_count=len(clusters),
            time_window_hours=self.config.time_window_hours,
            total_sightings=len(sightings),
            analysis_timestamp=datetime.now(UTC),
        )

    # --- Whole population ---

    def _process_page(self, devices: Sequence[Device]) -> int:
        """Analyze a page and write its results. Returns the number of failed devices."""
        batch: list[AnalysisResult] = []
        failed = 0

        for device in devices:
            try:
                analysis = self.analyze_device(device)
            except Exception:
                logger.exception("Error analyzing device %s", device.id)
                failed += 1
                continue
            if analysis is not None:
                batch.append(analysis.to_result())

        if batch:
            inserted = self.results.batch_insert(batch)
            logger.debug("Stored %d/%d results", inserted, len(batch))
        return failed

    def analyze_all_devices(self) -> AnalysisSummary:
        """Analyze every device, page by page.

        Raises:
            AnalysisAbortedError: If the device count cannot be read.
        """
        start = time.monotonic()
        self.status = RunStatus.running

        try:
            total = self.devices.count()
        except Exception as e:
            self.status = RunStatus.failed
            logger.exception("Analysis aborted: could not count devices")
            raise AnalysisAbortedError("Could not count devices") from e

        logger.info("Starting analysis of %d devices", total)

        batch_size = self.config.batch_size
        progress_step = max(total // 10, 1)
        next_progress = progress_step
        processed = 0
        page_errors = 0
        device_errors = 0

        for offset in range(0, total, batch_size):
            try:
                devices = self.devices.page(offset, batch_size)
                device_errors += self._process_page(devices)
            except Exception:
                logger.exception("Batch at offset %d failed, skipping", offset)
                page_errors += 1
                continue

            processed += len(devices)
            if processed >= next_progress:
                logger.info("Analyzed %d/%d devices...", processed, total)
                next_progress = (processed // progress_step + 1) * progress_step

        duration = time.monotonic() - start
        if page_errors or device_errors:
            self.status = RunStatus.completed_with_errors
        else:
            self.status = RunStatus.completed

        logger.info(
            "Completed analysis: %d devices in %.2fs (%d failed batches, %d failed devices)",
            processed,
            duration,
            page_errors,
            device_errors,
        )
        return AnalysisSummary(
            processed_count=processed,
            duration_seconds=duration,
            error_count=page_errors,
            failed_device_count=device_errors,
            status=self.status,
        )

    # --- Multi-location detection ---

    def identify_multi_location_devices(self) -> set[int]:
        """Devices seen at two or more locations within the time window.

        Pair checks are quadratic in a device's sightings, so this is only
        suited to bounded per-device volumes. Storage errors propagate.
        """
        flagged: set[int] = set()
        total = self.devices.count()
        batch_size = self.config.batch_size

        for offset in range(0, total, batch_size):
            for device in self.devices.page(offset, batch_size):
                try:
                    sightings = self._checked_sightings(device.id)
                except DeviceAnalysisError as e:
                    logger.warning("Skipping multi-location check: %s", e)
                    continue

                clusters = cluster_sightings(sightings, self.config.proximity_radius_meters)
                if len(clusters) > 1 and has_cross_cluster_proximity(
                    clusters, self.config.time_window_hours
                ):
                    flagged.add(device.id)  # type: ignore[arg-type]

        logger.info("Found %d multi-location devices", len(flagged))
        return flagged
