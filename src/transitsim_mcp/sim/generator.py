"""Simulated vehicle positions for routes with no live feed."""

import logging
import math
from datetime import datetime, timezone, tzinfo
from numbers import Real
from typing import Iterable, List, NamedTuple, Optional, Protocol, Sequence, Union

from pydantic import BaseModel

from .path_sampler import RoutePath, normalize_fraction
from .schedule import (
    DIRECTIONS,
    INBOUND,
    OUTBOUND,
    ScheduleParameters,
    minutes_since_midnight,
    path_fraction,
    raw_progress,
)

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE = ScheduleParameters(headway_minutes=10, trip_duration_minutes=60)

PathLike = Union[RoutePath, Sequence[Sequence[float]]]
ReferenceTime = Union[datetime, float, int, None]


class RouteRef(Protocol):
    route_id: str
    route_short_name: str


class SimulatedVehicle(BaseModel):
    vehicle_id: str
    trip_id: str
    route_id: str
    route_short_name: str
    direction_id: int
    slot_index: int
    latitude: float
    longitude: float
    bearing: float
    speed_mps: float
    progress: float  # trip progress in [0, 1), 0 = departure
    timestamp: datetime
    simulated: bool = True


def vehicle_id_for(route_id: str, direction: int, slot: int) -> str:
    """Identifier shared by every snapshot of the same simulated vehicle."""
    return f"SIM-{route_id}-{direction}-{slot}"


def resolve_reference_time(reference_time: ReferenceTime = None, tz: Optional[tzinfo] = None) -> datetime:
    """
    Turn a caller-supplied instant into the datetime the schedule is read from.

    ``None`` means now. Numbers are POSIX timestamps in seconds. Aware
    datetimes are converted to ``tz`` when one is given; naive datetimes are
    taken as already being local clock time.

    Raises:
        TypeError: for anything that is not a datetime or a real number.
        ValueError: for NaN or infinite timestamps.
    """
    if reference_time is None:
        return datetime.now(tz or timezone.utc)

    if isinstance(reference_time, datetime):
        if tz is not None and reference_time.tzinfo is not None:
            return reference_time.astimezone(tz)
        return reference_time

    if isinstance(reference_time, bool) or not isinstance(reference_time, Real):
        raise TypeError(
            f"reference time must be a datetime or a timestamp, got {type(reference_time).__name__}"
        )

    seconds = float(reference_time)
    if not math.isfinite(seconds):
        raise ValueError(f"reference time must be finite, got {seconds}")
    return datetime.fromtimestamp(seconds, tz or timezone.utc)


def as_route_path(path: Optional[PathLike]) -> Optional[RoutePath]:
    if path is None or isinstance(path, RoutePath):
        return path
    return RoutePath.from_points(path)


def _place_vehicle(
    route: RouteRef,
    path: RoutePath,
    params: ScheduleParameters,
    direction: int,
    slot: int,
    clock_minutes: float,
    shared_path: bool,
    moment: datetime,
) -> SimulatedVehicle:
    fraction = path_fraction(params, direction, slot, clock_minutes, shared_path)
    sample = path.sample(fraction)

    bearing = path.segment_bearing(sample.segment_index)
    if direction == INBOUND and shared_path:
        bearing = (bearing + 180.0) % 360.0

    route_id = route.route_id
    return SimulatedVehicle(
        vehicle_id=vehicle_id_for(route_id, direction, slot),
        trip_id=f"TRIP-{route_id}-{direction}-{slot}",
        route_id=route_id,
        route_short_name=route.route_short_name,
        direction_id=direction,
        slot_index=slot,
        latitude=sample.latitude,
        longitude=sample.longitude,
        bearing=bearing,
        speed_mps=path.total_length_km * 1000.0 / (params.trip_duration_minutes * 60.0),
        progress=normalize_fraction(raw_progress(params, direction, slot, clock_minutes)),
        timestamp=moment,
    )


def generate_vehicles(
    route: RouteRef,
    path: Optional[PathLike],
    reference_time: ReferenceTime = None,
    schedule: Optional[ScheduleParameters] = None,
    inbound_path: Optional[PathLike] = None,
    tz: Optional[tzinfo] = None,
) -> List[SimulatedVehicle]:
    """
    Compute every simulated vehicle of a route at one instant.

    Args:
        route: Anything with ``route_id`` and ``route_short_name``.
        path: The route's outbound path, as a ``RoutePath`` or (lat, lon) points.
        reference_time: Instant to evaluate, see ``resolve_reference_time``.
        schedule: Headway and trip duration; ``DEFAULT_SCHEDULE`` when omitted.
        inbound_path: Distinct path for direction 1 in travel order. When
            omitted, inbound vehicles run the outbound path in reverse.
        tz: Timezone whose wall clock drives the schedule.

    Returns:
        ``2 * schedule.vehicles_per_direction`` vehicles, or an empty list
        when the path has fewer than two points.
    """
    moment = resolve_reference_time(reference_time, tz)
    params = schedule or DEFAULT_SCHEDULE

    outbound = as_route_path(path)
    if outbound is None or not outbound.is_sampleable:
        logger.debug(f"Route {route.route_id} has no usable path, no vehicles simulated")
        return []

    inbound = as_route_path(inbound_path)
    shared = inbound is None or not inbound.is_sampleable
    paths = {OUTBOUND: outbound, INBOUND: outbound if shared else inbound}

    clock_minutes = minutes_since_midnight(moment)
    vehicles = []
    for direction in DIRECTIONS:
        for slot in range(params.vehicles_per_direction):
            vehicles.append(
                _place_vehicle(
                    route,
                    paths[direction],
                    params,
                    direction,
                    slot,
                    clock_minutes,
                    shared_path=shared,
                    moment=moment,
                )
            )
    return vehicles


class RouteSimulation(NamedTuple):
    """Everything needed to simulate one route."""

    route: RouteRef
    path: Optional[PathLike]
    inbound_path: Optional[PathLike] = None
    schedule: Optional[ScheduleParameters] = None


def generate_all_vehicles(
    routes: Iterable[RouteSimulation],
    reference_time: ReferenceTime = None,
    tz: Optional[tzinfo] = None,
) -> List[SimulatedVehicle]:
    """
    Simulate several routes from one shared reference instant and concatenate them.

    Each item is a ``RouteSimulation`` or a plain
    ``(route, path, inbound_path, schedule)`` tuple.
    """
    moment = resolve_reference_time(reference_time, tz)
    vehicles: List[SimulatedVehicle] = []
    for route, path, inbound_path, schedule in routes:
        vehicles.extend(
            generate_vehicles(route, path, moment, schedule=schedule, inbound_path=inbound_path, tz=tz)
        )
    return vehicles
