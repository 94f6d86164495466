"""Exception hierarchy for the analysis engine."""


class LoiterError(Exception):
    """Base class for all loiter errors."""


class ConfigError(LoiterError, ValueError):
    """An analysis threshold, radius or window is out of range."""


class StorageError(LoiterError):
    """A device, sighting or result store call failed."""


class DeviceAnalysisError(LoiterError):
    """A single device's data could not be analyzed."""

    def __init__(self, device_id: int | None, message: str):
        super().__init__(f"device {device_id}: {message}")
        self.device_id = device_id


class AnalysisAbortedError(LoiterError):
    """The run could not start because the device population was unreadable."""
