"""Shared test fixtures."""

from collections.abc import Callable, Generator
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import loiter.analysis.models  # noqa: F401
import loiter.database as db_module
from loiter.database import get_session
from loiter.main import app
from loiter.registry.models import Device
from loiter.registry.store import add_sighting, upsert_device

# (latitude, longitude, timestamp)
Point = tuple[float, float, datetime]


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created.

    StaticPool ensures every session uses the same connection,
    so the in-memory database is shared across the test.
    """
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def seed_device(session) -> Callable[[str, list[Point]], Device]:
    """Insert a device with the given sightings."""

    def _seed(mac: str, points: list[Point]) -> Device:
        first = points[0][2] if points else datetime(2024, 1, 1, tzinfo=UTC)
        device = upsert_device(session, mac, first)
        for lat, lon, ts in points:
            upsert_device(session, mac, ts)
            add_sighting(session, device.id, ts, lat, lon, signal_strength=-60)
        session.refresh(device)
        return device

    return _seed


@pytest.fixture
def client(engine) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with overridden DB engine and session."""
    # Patch the module-level engine so lifespan's init_db() and
    # background analysis jobs both use the test engine.
    original_engine = db_module.engine
    db_module.engine = engine

    def _override_session() -> Generator[Session, None, None]:
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _override_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    db_module.engine = original_engine
