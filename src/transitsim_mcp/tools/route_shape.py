"""MCP tool for a route's path geometry."""

from typing import Any, Dict

from ..ingest.static_loader import TransitData
from ..sim.path_sampler import RoutePath


async def route_shape(data: TransitData, route_id: str, direction_id: int = 0) -> Dict[str, Any]:
    """
    Path of a route in one direction.

    Direction 1 falls back to the outbound path reversed when the route has
    no shape of its own for it.
    """
    if direction_id not in (0, 1):
        raise ValueError(f"direction_id must be 0 or 1, got {direction_id}")

    points = data.get_route_shape(route_id, direction_id)
    reversed_outbound = points is None
    if reversed_outbound:
        points = list(reversed(data.get_route_shape(route_id, 0) or []))

    path = RoutePath.from_points(points)
    return {
        "route_id": route_id,
        "direction_id": direction_id,
        "points": path.as_list(),
        "length_km": round(path.total_length_km, 3),
        "reversed_outbound": reversed_outbound,
    }
