"""Periodic vehicle snapshots: live feed when available, simulation otherwise."""

import asyncio
import inspect
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..config import Settings
from ..sim.generator import (
    ReferenceTime,
    RouteSimulation,
    SimulatedVehicle,
    generate_all_vehicles,
    resolve_reference_time,
)
from ..sim.path_sampler import RoutePath
from ..sim.schedule import ScheduleParameters, schedule_for
from .live_feed import LiveFeedPoller, LiveVehicle
from .static_loader import Route, TransitData

logger = logging.getLogger(__name__)

Vehicle = Union[SimulatedVehicle, LiveVehicle]
Subscriber = Callable[[List[Vehicle]], object]


class VehicleFeed:
    def __init__(
        self,
        data: TransitData,
        settings: Optional[Settings] = None,
        live_feed: Optional[LiveFeedPoller] = None,
    ):
        self.settings = settings or Settings()
        self.data = data
        self.live_feed = live_feed
        self.defaults = ScheduleParameters(
            headway_minutes=self.settings.headway_minutes,
            trip_duration_minutes=self.settings.trip_duration_minutes,
            inbound_phase_offset_minutes=self.settings.inbound_phase_offset_minutes,
        )
        self.last_snapshot: List[Vehicle] = []
        self.last_update: Optional[datetime] = None
        self._paths: Dict[str, Tuple[RoutePath, Optional[RoutePath]]] = {}
        self._subscribers: Dict[int, Tuple[Subscriber, Optional[str]]] = {}
        self._next_token = 0
        self._task: Optional[asyncio.Task] = None

    # Route geometry

    def set_data(self, data: TransitData) -> None:
        self.data = data
        self.reset_paths()

    def reset_paths(self) -> None:
        self._paths.clear()

    def route_paths(self, route_id: str) -> Tuple[RoutePath, Optional[RoutePath]]:
        """Outbound path and, when the route has one, its own inbound path."""
        if route_id not in self._paths:
            outbound = RoutePath.from_points(self.data.get_route_shape(route_id, 0) or [])
            inbound_points = self.data.get_route_shape(route_id, 1)
            inbound = RoutePath.from_points(inbound_points) if inbound_points else None
            self._paths[route_id] = (outbound, inbound)
        return self._paths[route_id]

    def schedule_for_route(self, route: Route) -> ScheduleParameters:
        return schedule_for(route.headway_minutes, route.trip_duration_minutes, self.defaults)

    def _routes(self, route_id: Optional[str]) -> List[Route]:
        if route_id is None:
            return list(self.data.routes.values())
        route = self.data.routes.get(route_id)
        return [route] if route else []

    # Snapshots

    def simulate(self, route_id: Optional[str] = None, reference_time: ReferenceTime = None) -> List[SimulatedVehicle]:
        """Simulated vehicles for one route, or every route, at a single instant."""
        simulations = [
            RouteSimulation(route, *self.route_paths(route.route_id), schedule=self.schedule_for_route(route))
            for route in self._routes(route_id)
        ]
        return generate_all_vehicles(simulations, reference_time, tz=self.settings.tz)

    async def snapshot(self, route_id: Optional[str] = None, reference_time: ReferenceTime = None) -> List[Vehicle]:
        """
        One generation cycle.

        Live vehicles replace the simulation for each route that has any.
        An explicit ``reference_time`` always simulates, since the live feed
        only knows about now.
        """
        moment = resolve_reference_time(reference_time, self.settings.tz)
        if reference_time is not None:
            return list(self.simulate(route_id, moment))
        return await self._snapshot_at(route_id, moment)

    # Generation loop

    def subscribe(self, callback: Subscriber, route_id: Optional[str] = None) -> Callable[[], None]:
        """Register a snapshot callback; returns a function that unregisters it."""
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = (callback, route_id)

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start publishing snapshots every ``refresh_interval_seconds``."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Vehicle feed started, refreshing every {self.settings.refresh_interval_seconds}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Vehicle feed stopped")

    async def publish(self) -> None:
        """Compute one snapshot per subscribed route and hand it to subscribers."""
        moment = resolve_reference_time(None, self.settings.tz)
        snapshots: Dict[Optional[str], List[Vehicle]] = {}

        for token, (callback, route_id) in list(self._subscribers.items()):
            if route_id not in snapshots:
                snapshots[route_id] = await self._snapshot_at(route_id, moment)
            try:
                result = callback(snapshots[route_id])
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Vehicle subscriber {token} failed: {e}", exc_info=True)

        self.last_update = moment
        self.last_snapshot = snapshots.get(None) or [v for s in snapshots.values() for v in s]
        logger.debug(f"Published {len(self.last_snapshot)} vehicles to {len(self._subscribers)} subscribers")

    async def _snapshot_at(self, route_id: Optional[str], moment: datetime) -> List[Vehicle]:
        live: List[LiveVehicle] = []
        if self.live_feed is not None and self.live_feed.enabled:
            live = await self.live_feed.fetch_vehicles(route_id)

        vehicles: List[Vehicle] = []
        for route in self._routes(route_id):
            route_live = [v for v in live if v.route_id == route.route_id]
            vehicles.extend(route_live or self.simulate(route.route_id, moment))
        return vehicles

    async def _run(self) -> None:
        while True:
            try:
                await self.publish()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error generating vehicle snapshot: {e}", exc_info=True)
            await asyncio.sleep(self.settings.refresh_interval_seconds)
