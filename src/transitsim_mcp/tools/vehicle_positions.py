"""MCP tool for getting vehicle positions."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from ..ingest.vehicle_feed import Vehicle, VehicleFeed


def vehicle_to_dict(vehicle: Vehicle) -> Dict[str, Any]:
    return {
        "vehicle_id": vehicle.vehicle_id,
        "trip_id": vehicle.trip_id,
        "route_id": vehicle.route_id,
        "direction_id": vehicle.direction_id,
        "lat": vehicle.latitude,
        "lon": vehicle.longitude,
        "bearing": vehicle.bearing,
        "speed_mps": vehicle.speed_mps,
        "timestamp": vehicle.timestamp.isoformat(),
        "simulated": vehicle.simulated,
    }


async def vehicle_positions(
    feed: VehicleFeed,
    route_id: Optional[str] = None,
    at_time: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Get current positions of vehicles, optionally on one route.

    Args:
        feed: The vehicle feed.
        route_id: The route ID to filter by; all routes when omitted.
        at_time: ISO-8601 instant to simulate instead of now.

    Returns:
        List of vehicle positions with ID, coordinates, bearing, and speed.

    Raises:
        ValueError: If ``at_time`` is not a valid ISO-8601 timestamp.
    """
    reference_time = datetime.fromisoformat(at_time) if at_time else None
    vehicles = await feed.snapshot(route_id, reference_time)
    return [vehicle_to_dict(v) for v in vehicles]
