"""Headway-based schedule model for evenly spaced vehicles."""

import math
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

OUTBOUND = 0
INBOUND = 1
DIRECTIONS = (OUTBOUND, INBOUND)


class ScheduleParameters(BaseModel):
    """Per-route service pattern."""

    headway_minutes: float = Field(gt=0)
    trip_duration_minutes: float = Field(gt=0)
    # Extra delay applied to every inbound slot so the two directions do not
    # sit on top of each other at the same progress value.
    inbound_phase_offset_minutes: float = 0.0

    model_config = {"frozen": True}

    @field_validator("headway_minutes", "trip_duration_minutes", "inbound_phase_offset_minutes")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        return value

    @property
    def vehicles_per_direction(self) -> int:
        return vehicles_per_direction(self.headway_minutes, self.trip_duration_minutes)


def vehicles_per_direction(headway_minutes: float, trip_duration_minutes: float) -> int:
    return max(1, math.ceil(trip_duration_minutes / headway_minutes))


def minutes_since_midnight(moment: datetime) -> float:
    """Clock minutes of ``moment`` in its own timezone, keeping fractional seconds."""
    seconds = moment.second + moment.microsecond / 1_000_000
    return moment.hour * 60 + moment.minute + seconds / 60


def slot_offset_minutes(params: ScheduleParameters, direction: int, slot: int) -> float:
    offset = slot * params.headway_minutes
    if direction == INBOUND:
        offset += params.inbound_phase_offset_minutes
    return offset


def raw_progress(params: ScheduleParameters, direction: int, slot: int, clock_minutes: float) -> float:
    """Unwrapped trip progress of a slot; increases by 1 every trip duration."""
    return (clock_minutes - slot_offset_minutes(params, direction, slot)) / params.trip_duration_minutes


def path_fraction(
    params: ScheduleParameters,
    direction: int,
    slot: int,
    clock_minutes: float,
    shared_path: bool = True,
) -> float:
    """
    Fraction of the sampled path at which a slot currently sits.

    Outbound vehicles run start to end. On a path shared by both directions
    inbound progress is inverted so those vehicles run end to start; an
    inbound-only path is already ordered in travel direction. The result is
    not wrapped; the path sampler wraps it into [0, 1).
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be 0 or 1, got {direction!r}")
    progress = raw_progress(params, direction, slot, clock_minutes)
    if direction == INBOUND and shared_path:
        return 1 - progress
    return progress


def schedule_for(
    headway_minutes: Optional[float],
    trip_duration_minutes: Optional[float],
    defaults: ScheduleParameters,
) -> ScheduleParameters:
    """Apply optional per-route overrides on top of default parameters."""
    if headway_minutes is None and trip_duration_minutes is None:
        return defaults
    return ScheduleParameters(
        headway_minutes=headway_minutes if headway_minutes is not None else defaults.headway_minutes,
        trip_duration_minutes=(
            trip_duration_minutes if trip_duration_minutes is not None else defaults.trip_duration_minutes
        ),
        inbound_phase_offset_minutes=defaults.inbound_phase_offset_minutes,
    )
