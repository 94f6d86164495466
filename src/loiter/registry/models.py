"""Device and sighting models."""

from datetime import UTC, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Device(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    mac_address: str = Field(index=True, unique=True)
    first_seen: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_seen: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Sighting(SQLModel, table=True):
    """One timestamped GPS fix of a device. Never modified after insert."""

    __table_args__ = (
        UniqueConstraint("device_id", "timestamp", "latitude", "longitude"),
    )

    id: int | None = Field(default=None, primary_key=True)
    device_id: int = Field(index=True, foreign_key="device.id")
    timestamp: datetime = Field(index=True)
    latitude: float
    longitude: float
    signal_strength: int = -100  # dBm
