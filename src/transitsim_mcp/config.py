"""Runtime settings for the simulation server."""

import math
import os
from typing import Mapping, Optional

import pytz
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "TRANSITSIM_"


class Settings(BaseModel):
    # Schedule defaults, overridable per route
    headway_minutes: float = Field(default=10.0, gt=0)
    trip_duration_minutes: float = Field(default=60.0, gt=0)
    inbound_phase_offset_minutes: float = 0.0

    # Generation loop
    refresh_interval_seconds: float = Field(default=15.0, gt=0)

    # Marker animation
    animation_duration_ms: float = Field(default=2000.0, gt=0)
    snap_threshold_m: float = Field(default=500.0, gt=0)
    frame_interval_seconds: float = Field(default=1 / 60, gt=0)

    timezone: str = "Europe/Dublin"

    gtfs_static_url: Optional[str] = None
    live_feed_url: Optional[str] = None
    cache_dir: str = "cache"

    @field_validator(
        "headway_minutes",
        "trip_duration_minutes",
        "inbound_phase_offset_minutes",
        "refresh_interval_seconds",
        "animation_duration_ms",
        "snap_threshold_m",
        "frame_interval_seconds",
    )
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        return value

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"unknown timezone: {value}")
        return value

    @field_validator("gtfs_static_url", "live_feed_url")
    @classmethod
    def _blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from ``TRANSITSIM_*`` environment variables.

    Unset variables keep their defaults. Invalid values raise
    ``pydantic.ValidationError``.
    """
    if environ is None:
        environ = os.environ

    values = {}
    for name in Settings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            values[name] = environ[key]
    return Settings(**values)
