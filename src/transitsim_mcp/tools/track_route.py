"""MCP tools for following one route with smoothly animated markers."""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..ingest.vehicle_feed import Vehicle, VehicleFeed
from ..sim.interpolator import MarkerRegistry

logger = logging.getLogger(__name__)


class RouteTracker:
    """Keeps a marker registry in step with the vehicle feed for one selected route."""

    def __init__(self, feed: VehicleFeed, registry: MarkerRegistry):
        self.feed = feed
        self.registry = registry
        self.route_id: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def _on_snapshot(self, vehicles: List[Vehicle]) -> None:
        self.registry.sync(vehicles)

    async def track(self, route_id: str) -> Dict[str, Any]:
        if route_id not in self.feed.data.routes:
            raise ValueError(f"unknown route: {route_id}")

        await self.untrack()
        self.route_id = route_id
        self._unsubscribe = self.feed.subscribe(self._on_snapshot, route_id)
        self.feed.start()
        logger.info(f"Tracking route {route_id}")
        return {"route_id": route_id, "tracking": True}

    async def untrack(self) -> Dict[str, Any]:
        previous = self.route_id
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.route_id = None
        self.registry.clear()
        if self.feed.subscriber_count == 0:
            await self.feed.stop()
        if previous is not None:
            logger.info(f"Stopped tracking route {previous}")
        return {"route_id": previous, "tracking": False}

    def displayed_positions(self) -> List[Dict[str, Any]]:
        return [
            {"vehicle_id": vehicle_id, "lat": lat, "lon": lon}
            for vehicle_id, (lat, lon) in sorted(self.registry.positions().items())
        ]
