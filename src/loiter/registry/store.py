"""Device and sighting CRUD operations."""

import logging
from datetime import UTC, datetime

from sqlalchemy import func
from sqlmodel import Session, select

from loiter.registry.models import Device, Sighting

logger = logging.getLogger(__name__)


def normalize_mac(mac: str) -> str:
    """Normalize a MAC address to uppercase colon-separated format."""
    cleaned = mac.strip().upper().replace("-", ":").replace(".", "")
    # Handle bare hex (e.g. "AABBCCDDEEFF")
    if ":" not in cleaned and len(cleaned) == 12:
        cleaned = ":".join(cleaned[i : i + 2] for i in range(0, 12, 2))
    return cleaned


def as_utc(ts: datetime) -> datetime:
    """Read SQLite's naive timestamps back as UTC."""
    return ts.replace(tzinfo=UTC) if ts.tzinfo is None else ts


def upsert_device(session: Session, mac_address: str, seen_at: datetime) -> Device:
    """Create a device or widen its first/last seen range."""
    mac = normalize_mac(mac_address)
    device = session.exec(select(Device).where(Device.mac_address == mac)).first()

    if device is None:
        device = Device(mac_address=mac, first_seen=seen_at, last_seen=seen_at)
        session.add(device)
        logger.debug("New device %s", mac)
    else:
        if as_utc(seen_at) < as_utc(device.first_seen):
            device.first_seen = seen_at
        if as_utc(seen_at) > as_utc(device.last_seen):
            device.last_seen = seen_at

    session.commit()
    session.refresh(device)
    return device


def add_sighting(
    session: Session,
    device_id: int,
    timestamp: datetime,
    latitude: float,
    longitude: float,
    signal_strength: int = -100,
) -> Sighting | None:
    """Record a sighting. Returns None if the identical sighting already exists."""
    existing = session.exec(
        select(Sighting).where(
            Sighting.device_id == device_id,
            Sighting.timestamp == timestamp,
            Sighting.latitude == latitude,
            Sighting.longitude == longitude,
        )
    ).first()
    if existing is not None:
        return None

    sighting = Sighting(
        device_id=device_id,
        timestamp=timestamp,
        latitude=latitude,
        longitude=longitude,
        signal_strength=signal_strength,
    )
    session.add(sighting)
    session.commit()
    session.refresh(sighting)
    return sighting


def count_devices(session: Session) -> int:
    return session.exec(select(func.count()).select_from(Device)).one()


def get_devices_page(session: Session, offset: int, limit: int) -> list[Device]:
    """Get one page of devices in stable id order."""
    stmt = select(Device).order_by(Device.id).offset(offset).limit(limit)  # type: ignore[arg-type]
    return list(session.exec(stmt).all())


def get_device(session: Session, device_id: int) -> Device | None:
    return session.get(Device, device_id)


def get_sightings(session: Session, device_id: int) -> list[Sighting]:
    """Get all sightings of a device, oldest first."""
    stmt = (
        select(Sighting)
        .where(Sighting.device_id == device_id)
        .order_by(Sighting.timestamp.asc(), Sighting.id)  # type: ignore[attr-defined,arg-type]
    )
    return list(session.exec(stmt).all())
