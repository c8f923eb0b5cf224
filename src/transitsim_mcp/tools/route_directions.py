"""MCP tool for the two travel directions of a route."""

from typing import Any, Dict, List

from ..ingest.static_loader import TransitData, route_directions


async def route_directions_for(data: TransitData, route_id: str) -> List[Dict[str, Any]]:
    """Direction 0 and 1 labels for a route, empty for an unknown route."""
    route = data.routes.get(route_id)
    if route is None:
        return []
    return route_directions(route)
