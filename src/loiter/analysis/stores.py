"""Storage interfaces consumed by the analysis engine, with SQL-backed implementations."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from loiter.analysis import results as result_queries
from loiter.analysis.models import AnalysisResult
from loiter.errors import StorageError
from loiter.registry import store as registry
from loiter.registry.models import Device, Sighting


class DeviceStore(ABC):
    @abstractmethod
    def count(self) -> int:
        """Total number of devices."""

    @abstractmethod
    def page(self, offset: int, limit: int) -> list[Device]:
        """Devices in a stable order, starting at offset."""


class SightingStore(ABC):
    @abstractmethod
    def by_device(self, device_id: int) -> list[Sighting]:
        """A device's sightings, oldest first."""


class ResultStore(ABC):
    @abstractmethod
    def batch_insert(self, results: Sequence[AnalysisResult]) -> int:
        """Append results, skipping exact duplicates. Returns rows inserted."""


class _SQLStore:
    def __init__(self, session: Session):
        self.session = session

    def _fail(self, action: str, exc: SQLAlchemyError) -> StorageError:
        self.session.rollback()
        return StorageError(f"{action} failed: {exc}")


class SQLDeviceStore(_SQLStore, DeviceStore):
    def count(self) -> int:
        try:
            return registry.count_devices(self.session)
        except SQLAlchemyError as e:
            raise self._fail("Device count", e) from e

    def page(self, offset: int, limit: int) -> list[Device]:
        try:
            return registry.get_devices_page(self.session, offset, limit)
        except SQLAlchemyError as e:
            raise self._fail(f"Device page at offset {offset}", e) from e


class SQLSightingStore(_SQLStore, SightingStore):
    def by_device(self, device_id: int) -> list[Sighting]:
        try:
            return registry.get_sightings(self.session, device_id)
        except SQLAlchemyError as e:
            raise self._fail(f"Sighting fetch for device {device_id}", e) from e


class SQLResultStore(_SQLStore, ResultStore):
    def batch_insert(self, results: Sequence[AnalysisResult]) -> int:
        try:
            return result_queries.insert_results(self.session, results)
        except SQLAlchemyError as e:
            raise self._fail("Result batch insert", e) from e
