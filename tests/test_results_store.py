"""Tests for analysis result persistence and queries."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlmodel import select

from loiter.analysis.models import AnalysisResult
from loiter.analysis.results import (
    count_results,
    get_latest_analysis_timestamp,
    get_latest_result,
    get_results,
    get_results_with_devices,
    insert_results,
)
from loiter.analysis.stores import SQLResultStore
from loiter.registry.models import Device
from loiter.registry.store import as_utc

RUN_AT = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def devices(session) -> list[Device]:
    created = [Device(mac_address=f"AA:BB:CC:DD:EE:0{i}") for i in range(1, 4)]
    for d in created:
        session.add(d)
    session.commit()
    for d in created:
        session.refresh(d)
    return created


def _result(device: Device, score: float, at: datetime = RUN_AT) -> AnalysisResult:
    return AnalysisResult(
        device_id=device.id,
        persistence_score=score,
        location_count=2,
        time_window_hours=24,
        total_sightings=10,
        analysis_timestamp=at,
    )


def test_insert_empty_batch(session):
    assert insert_results(session, []) == 0


def test_insert_batch(session, devices):
    insert_results(session, [_result(d, 0.5) for d in devices])
    assert len(session.exec(select(AnalysisResult)).all()) == 3


def test_duplicates_are_skipped_silently(session, devices):
    insert_results(session, [_result(devices[0], 0.5)])
    insert_results(session, [_result(devices[0], 0.5), _result(devices[1], 0.7)])
    rows = session.exec(select(AnalysisResult)).all()
    assert len(rows) == 2


def test_new_run_appends_rather_than_updates(session, devices):
    insert_results(session, [_result(devices[0], 0.5)])
    insert_results(session, [_result(devices[0], 0.9, RUN_AT + timedelta(hours=1))])
    scores = sorted(r.persistence_score for r in session.exec(select(AnalysisResult)).all())
    assert scores == [0.5, 0.9]


def test_sql_result_store_delegates(session, devices):
    SQLResultStore(session).batch_insert([_result(d, 0.4) for d in devices[:2]])
    assert count_results(session) == 2


def test_get_results_ordered_by_score(session, devices):
    insert_results(session, [_result(devices[0], 0.2), _result(devices[1], 0.9), _result(devices[2], 0.5)])
    scores = [r.persistence_score for r in get_results(session)]
    assert scores == [0.9, 0.5, 0.2]


def test_get_results_min_score(session, devices):
    insert_results(session, [_result(devices[0], 0.2), _result(devices[1], 0.9), _result(devices[2], 0.5)])
    scores = [r.persistence_score for r in get_results(session, min_score=0.5)]
    assert scores == [0.9, 0.5]


def test_get_results_limit(session, devices):
    insert_results(session, [_result(devices[0], 0.2), _result(devices[1], 0.9), _result(devices[2], 0.5)])
    assert [r.persistence_score for r in get_results(session, limit=1)] == [0.9]


def test_get_results_with_devices(session, devices):
    insert_results(session, [_result(devices[0], 0.2), _result(devices[1], 0.9)])
    rows = get_results_with_devices(session, min_score=0.5)
    assert len(rows) == 1
    result, device = rows[0]
    assert device.mac_address == "AA:BB:CC:DD:EE:02"
    assert result.device_id == device.id


def test_latest_result_per_device(session, devices):
    insert_results(
        session,
        [
            _result(devices[0], 0.3, RUN_AT),
            _result(devices[0], 0.6, RUN_AT + timedelta(days=1)),
        ],
    )
    latest = get_latest_result(session, devices[0].id)
    assert latest is not None
    assert latest.persistence_score == 0.6
    assert get_latest_result(session, devices[1].id) is None


def test_latest_analysis_timestamp(session, devices):
    assert get_latest_analysis_timestamp(session) is None
    insert_results(
        session,
        [_result(devices[0], 0.3, RUN_AT), _result(devices[1], 0.3, RUN_AT + timedelta(hours=2))],
    )
    assert as_utc(get_latest_analysis_timestamp(session)) == RUN_AT + timedelta(hours=2)


def test_count_with_min_score(session, devices):
    insert_results(session, [_result(devices[0], 0.2), _result(devices[1], 0.9), _result(devices[2], 0.7)])
    assert count_results(session) == 3
    assert count_results(session, min_score=0.7) == 2
