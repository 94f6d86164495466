"""Application configuration via environment variables and .env file."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from loiter.errors import ConfigError


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "LOITER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # Database
    db_path: Path = Path("./data/loiter.db")

    # Logging
    log_level: str = "info"

    # Persistence analysis
    analysis_batch_size: int = Field(default=100, gt=0)
    analysis_time_window_hours: float = Field(default=24.0, gt=0)
    analysis_proximity_radius_meters: float = Field(default=100.0, gt=0)
    analysis_min_sightings_threshold: int = Field(default=3, ge=0)

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e


class AnalysisConfig(BaseModel):
    """Tunables for a single analysis run. Immutable once built.

    Out-of-range values raise ConfigError, however the config is built.
    """

    model_config = {"frozen": True}

    batch_size: int = Field(default=100, gt=0)
    time_window_hours: float = Field(default=24.0, gt=0, allow_inf_nan=False)
    proximity_radius_meters: float = Field(default=100.0, gt=0, allow_inf_nan=False)
    min_sightings_threshold: int = Field(default=3, ge=0)

    def __init__(self, **data: Any) -> None:
        # ConfigError is a ValueError, so raising it from a validator would
        # be re-wrapped by pydantic.
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid analysis configuration: {e}") from e


def build_analysis_config(cfg: Settings | None = None, **overrides: object) -> AnalysisConfig:
    """Build an AnalysisConfig from settings, applying per-call overrides.

    Without explicit settings the environment and .env are read afresh, so
    each analysis run sees the current values.

    Raises:
        ConfigError: If any value is out of range or an option is unknown.
    """
    cfg = cfg or Settings()
    values: dict[str, object] = {
        "batch_size": cfg.analysis_batch_size,
        "time_window_hours": cfg.analysis_time_window_hours,
        "proximity_radius_meters": cfg.analysis_proximity_radius_meters,
        "min_sightings_threshold": cfg.analysis_min_sightings_threshold,
    }
    unknown = set(overrides) - set(AnalysisConfig.model_fields)
    if unknown:
        raise ConfigError(f"Unknown analysis options: {', '.join(sorted(unknown))}")
    values.update({k: v for k, v in overrides.items() if v is not None})
    return AnalysisConfig(**values)


settings = Settings()
