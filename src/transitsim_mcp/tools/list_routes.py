"""MCP tool for listing all routes."""

from typing import Any, Dict, List

from ..ingest.static_loader import TransitData, route_directions


async def list_routes(data: TransitData) -> List[Dict[str, Any]]:
    """
    List all available routes.

    Returns:
        List of route information with id, names, color and direction labels.
    """
    routes = []
    for route_id, route in data.routes.items():
        routes.append({
            "route_id": route.route_id,
            "short_name": route.route_short_name,
            "long_name": route.route_long_name,
            "route_type": route.route_type,
            "color": f"#{route.route_color}" if route.route_color else None,
            "text_color": f"#{route.route_text_color}" if route.route_text_color else None,
            "directions": [d["direction_label"] for d in route_directions(route)],
        })

    # Sort by short name for consistency
    routes.sort(key=lambda x: x["short_name"])
    return routes
