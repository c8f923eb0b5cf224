"""Tests for the headway schedule model."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from transitsim_mcp.sim.schedule import (
    ScheduleParameters,
    minutes_since_midnight,
    path_fraction,
    raw_progress,
    schedule_for,
    vehicles_per_direction,
)


@pytest.mark.parametrize("headway, duration, expected", [
    (10, 60, 6),
    (15, 45, 3),
    (10, 45, 5),
    (60, 10, 1),
    (7.5, 45, 6),
])
def test_vehicles_per_direction(headway, duration, expected):
    assert vehicles_per_direction(headway, duration) == expected
    assert ScheduleParameters(headway_minutes=headway, trip_duration_minutes=duration).vehicles_per_direction == expected


def test_minutes_since_midnight_keeps_fractional_seconds():
    assert minutes_since_midnight(datetime(2024, 1, 1, 0, 0, 0)) == 0.0
    assert minutes_since_midnight(datetime(2024, 1, 1, 8, 15, 30)) == pytest.approx(495.5)
    assert minutes_since_midnight(datetime(2024, 1, 1, 0, 0, 0, 500000)) == pytest.approx(0.5 / 60)


def test_slots_are_staggered_by_headway():
    params = ScheduleParameters(headway_minutes=10, trip_duration_minutes=60)

    first = raw_progress(params, 0, 0, 120.0)
    second = raw_progress(params, 0, 1, 120.0)

    assert first - second == pytest.approx(10 / 60)


def test_inbound_is_inverted_on_shared_path(one_per_direction):
    assert path_fraction(one_per_direction, 0, 0, 2.5) == pytest.approx(0.25)
    assert path_fraction(one_per_direction, 1, 0, 2.5) == pytest.approx(0.75)
    assert path_fraction(one_per_direction, 1, 0, 2.5, shared_path=False) == pytest.approx(0.25)


def test_inbound_phase_offset_applies_only_to_inbound():
    params = ScheduleParameters(headway_minutes=10, trip_duration_minutes=10, inbound_phase_offset_minutes=5)

    assert raw_progress(params, 0, 0, 5.0) == pytest.approx(0.5)
    assert raw_progress(params, 1, 0, 5.0) == pytest.approx(0.0)


def test_unknown_direction_rejected(one_per_direction):
    with pytest.raises(ValueError):
        path_fraction(one_per_direction, 2, 0, 0.0)


@pytest.mark.parametrize("headway, duration", [
    (0, 60),
    (10, 0),
    (-5, 60),
    (float("inf"), 60),
    (10, float("nan")),
])
def test_invalid_parameters_rejected(headway, duration):
    with pytest.raises(ValidationError):
        ScheduleParameters(headway_minutes=headway, trip_duration_minutes=duration)


def test_schedule_for_applies_overrides():
    defaults = ScheduleParameters(headway_minutes=10, trip_duration_minutes=60, inbound_phase_offset_minutes=2)

    assert schedule_for(None, None, defaults) is defaults

    merged = schedule_for(5, None, defaults)
    assert merged.headway_minutes == 5
    assert merged.trip_duration_minutes == 60
    assert merged.inbound_phase_offset_minutes == 2
