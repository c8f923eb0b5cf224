"""FastMCP server for simulated transit vehicle positions."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from . import __version__
from .config import load_settings
from .ingest.live_feed import LiveFeedPoller
from .ingest.static_loader import StaticFeedLoader, TransitData, sample_network
from .ingest.vehicle_feed import VehicleFeed
from .sim.interpolator import MarkerRegistry
from .tools.list_routes import list_routes
from .tools.route_directions import route_directions_for
from .tools.route_shape import route_shape
from .tools.track_route import RouteTracker
from .tools.vehicle_positions import vehicle_positions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

mcp = FastMCP("transitsim-mcp", version=__version__)

settings = load_settings()
static_loader = StaticFeedLoader(settings.gtfs_static_url, settings.cache_dir)
live_feed = LiveFeedPoller(settings.live_feed_url)
registry = MarkerRegistry(
    duration_ms=settings.animation_duration_ms,
    snap_threshold_m=settings.snap_threshold_m,
    frame_interval=settings.frame_interval_seconds,
)
vehicle_feed = VehicleFeed(TransitData(), settings, live_feed)
tracker = RouteTracker(vehicle_feed, registry)
transit_data: Optional[TransitData] = None
initialized = False


async def ensure_initialized():
    """Lazy loading of the route directory, falling back to the sample network."""
    global transit_data, initialized
    if initialized:
        return

    logger.info("Starting route data initialization...")
    try:
        transit_data = await asyncio.wait_for(
            static_loader.load_feed(force_refresh=False, timeout_seconds=10),
            timeout=15.0
        )
    except asyncio.TimeoutError:
        logger.warning("Route data loading timed out - using sample network")
        transit_data = sample_network()

    vehicle_feed.set_data(transit_data)
    initialized = True
    logger.info(f"Server initialization completed: {len(transit_data.routes)} routes")


@mcp.tool
async def list_routes_tool() -> List[Dict[str, Any]]:
    """List all available routes.

    Returns a list of routes with their ID, short name, long name, color and direction labels.
    """
    await ensure_initialized()
    return await list_routes(transit_data)


@mcp.tool
async def route_directions_tool(route_id: str) -> List[Dict[str, Any]]:
    """Get the two travel directions of a route.

    Args:
        route_id: The route ID (e.g., "46A")
    """
    await ensure_initialized()
    return await route_directions_for(transit_data, route_id)


@mcp.tool
async def route_shape_tool(route_id: str, direction_id: int = 0) -> Dict[str, Any]:
    """Get the path a route follows in one direction.

    Args:
        route_id: The route ID
        direction_id: 0 for outbound, 1 for inbound
    """
    await ensure_initialized()
    return await route_shape(transit_data, route_id, direction_id)


@mcp.tool
async def vehicle_positions_tool(
    route_id: Optional[str] = None,
    at_time: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Get positions of vehicles, live when a feed is available and simulated otherwise.

    Args:
        route_id: Optional route ID to filter by (if None, returns all routes)
        at_time: Optional ISO-8601 timestamp to simulate instead of now

    Returns:
        List of vehicle positions with ID, coordinates, bearing, and speed
    """
    await ensure_initialized()
    return await vehicle_positions(vehicle_feed, route_id, at_time)


@mcp.tool
async def track_route_tool(route_id: str) -> Dict[str, Any]:
    """Start refreshing one route's vehicles and animating their displayed markers.

    Args:
        route_id: The route ID to follow
    """
    await ensure_initialized()
    return await tracker.track(route_id)


@mcp.tool
async def untrack_route_tool() -> Dict[str, Any]:
    """Stop refreshing the tracked route and release its markers."""
    return await tracker.untrack()


@mcp.tool
async def displayed_positions_tool() -> List[Dict[str, Any]]:
    """Current interpolated marker positions of the tracked route."""
    return tracker.displayed_positions()


@mcp.tool
async def health_check() -> Dict[str, Any]:
    """Server status without triggering data loading."""
    return {
        "status": "healthy",
        "server": "transitsim-mcp",
        "version": __version__,
        "initialized": initialized,
        "routes_loaded": len(transit_data.routes) if transit_data else 0,
        "data_source": transit_data.source if transit_data else None,
        "live_feed_enabled": live_feed.enabled,
        "tracked_route": tracker.route_id,
        "markers": len(registry),
        "last_static_update": transit_data.last_updated.isoformat() if transit_data and transit_data.last_updated else None,
        "last_vehicle_update": vehicle_feed.last_update.isoformat() if vehicle_feed.last_update else None,
        "server_time": datetime.now(timezone.utc).isoformat(),
    }


# FastMCP Cloud entry point
server = mcp


def main():
    """Entry point for CLI usage via pyproject.toml scripts."""
    mcp.run()


if __name__ == "__main__":
    mcp.run()
