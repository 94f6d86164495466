"""REST API endpoints."""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlmodel import Session

import loiter.database as db_module
from loiter.analysis.engine import PersistenceAnalyzer
from loiter.analysis.models import DeviceAnalysis
from loiter.analysis.results import (
    count_results,
    get_latest_analysis_timestamp,
    get_latest_result,
    get_results,
    get_results_with_devices,
)
from loiter.analysis.temporal import time_window_overlaps
from loiter.database import get_session
from loiter.registry.models import Device, Sighting
from loiter.registry.store import as_utc, get_device, get_devices_page, get_sightings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def run_analysis_job() -> None:
    """Background task: run a full analysis on its own session."""
    try:
        with Session(db_module.engine) as session:
            summary = PersistenceAnalyzer.for_session(session).analyze_all_devices()
        logger.info(
            "Analysis completed. Processed: %d devices in %.2fs, Errors: %d",
            summary.processed_count,
            summary.duration_seconds,
            summary.error_count,
        )
    except Exception:
        logger.exception("Analysis failed")


def _check_min_score(min_score: float | None) -> None:
    if min_score is not None and not 0.0 <= min_score <= 1.0:
        logger.warning("Invalid min_persistence_score value: %s", min_score)
        raise HTTPException(
            status_code=400,
            detail="Invalid min_persistence_score. Must be a number between 0.0 and 1.0",
        )


def _distinct_locations(sightings: list[Sighting]) -> list[dict[str, Any]]:
    """First sighting at each distinct lat/lon pair, in time order."""
    locations: dict[tuple[float, float], dict[str, Any]] = {}
    for s in sightings:
        key = (s.latitude, s.longitude)
        if key not in locations:
            locations[key] = {
                "latitude": s.latitude,
                "longitude": s.longitude,
                "timestamp": as_utc(s.timestamp).isoformat(),
                "signal_strength": s.signal_strength,
            }
    return list(locations.values())


# --- Devices ---


@router.get("/devices")
def list_devices(
    offset: int = 0,
    limit: int = 100,
    session: Session = Depends(get_session),
) -> list[Device]:
    if offset < 0 or limit <= 0:
        raise HTTPException(status_code=400, detail="offset must be >= 0 and limit > 0")
    return get_devices_page(session, offset, limit)


@router.get("/devices/{device_id}/sightings")
def device_sightings(
    device_id: int,
    session: Session = Depends(get_session),
) -> list[Sighting]:
    if get_device(session, device_id) is None:
        raise HTTPException(status_code=404, detail="Device not found")
    return get_sightings(session, device_id)


# --- Analysis ---


@router.post("/analysis/trigger", status_code=202)
def trigger_analysis(background_tasks: BackgroundTasks) -> dict[str, str]:
    logger.info("Starting persistence analysis")
    background_tasks.add_task(run_analysis_job)
    return {
        "message": "Analysis process started",
        "start_time": datetime.now(UTC).isoformat(),
    }


@router.get("/analysis/results")
def analysis_results(
    min_persistence_score: float | None = None,
    session: Session = Depends(get_session),
) -> list[dict[str, Any]]:
    _check_min_score(min_persistence_score)
    rows = get_results_with_devices(session, min_score=min_persistence_score)
    response = []
    for result, device in rows:
        response.append(
            {
                "device_id": result.device_id,
                "mac_address": device.mac_address,
                "persistence_score": result.persistence_score,
                "first_seen": as_utc(device.first_seen).isoformat(),
                "last_seen": as_utc(device.last_seen).isoformat(),
                "location_count": result.location_count,
                "time_window_hours": result.time_window_hours,
                "total_sightings": result.total_sightings,
                "analysis_timestamp": as_utc(result.analysis_timestamp).isoformat(),
                "sightings": _distinct_locations(get_sightings(session, result.device_id)),
            }
        )
    logger.info("Retrieved %d analysis results", len(response))
    return response


@router.get("/analysis/multi-location")
def multi_location_devices(
    session: Session = Depends(get_session),
) -> dict[str, int | list[int]]:
    flagged = PersistenceAnalyzer.for_session(session).identify_multi_location_devices()
    return {"count": len(flagged), "device_ids": sorted(flagged)}


@router.get("/analysis/devices/{device_id}")
def analyze_single_device(
    device_id: int,
    session: Session = Depends(get_session),
) -> DeviceAnalysis | None:
    device = get_device(session, device_id)
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")
    return PersistenceAnalyzer.for_session(session).analyze_device(device)


@router.get("/analysis/devices/{device_id}/latest")
def latest_device_result(
    device_id: int,
    session: Session = Depends(get_session),
) -> dict[str, Any] | None:
    """Most recent stored result for a device, or null if never analyzed."""
    if get_device(session, device_id) is None:
        raise HTTPException(status_code=404, detail="Device not found")
    result = get_latest_result(session, device_id)
    if result is None:
        return None
    timestamps = [s.timestamp for s in get_sightings(session, device_id)]
    return {
        "device_id": result.device_id,
        "persistence_score": result.persistence_score,
        "location_count": result.location_count,
        "time_window_hours": result.time_window_hours,
        "total_sightings": result.total_sightings,
        "analysis_timestamp": as_utc(result.analysis_timestamp).isoformat(),
        "time_window_overlaps": time_window_overlaps(timestamps, result.time_window_hours),
    }


@router.get("/analysis/status")
def analysis_status(
    min_persistence_score: float | None = None,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    _check_min_score(min_persistence_score)
    latest = get_latest_analysis_timestamp(session)
    top = get_results(session, limit=1)
    return {
        "latest_analysis_timestamp": as_utc(latest).isoformat() if latest else None,
        "result_count": count_results(session, min_score=min_persistence_score),
        "top_device_id": top[0].device_id if top else None,
        "top_persistence_score": top[0].persistence_score if top else None,
    }
