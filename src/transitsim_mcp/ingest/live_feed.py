"""Optional JSON live vehicle feed."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

import aiohttp
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 10  # seconds


class LiveVehicle(BaseModel):
    vehicle_id: str
    trip_id: Optional[str] = None
    route_id: Optional[str] = None
    latitude: float
    longitude: float
    bearing: Optional[float] = None
    speed_mps: Optional[float] = None
    direction_id: Optional[int] = None
    timestamp: datetime
    simulated: bool = False


class LiveFeedPoller:
    """
    Fetches ``{"vehicles": [...]}`` documents from a live feed URL.

    An unset URL means there is no live feed and every fetch is empty.
    """

    def __init__(self, feed_url: Optional[str] = None, session: Optional[aiohttp.ClientSession] = None):
        self.feed_url = feed_url
        self._session = session
        self._owns_session = session is None
        self.last_update: Optional[datetime] = None

    @property
    def enabled(self) -> bool:
        return bool(self.feed_url)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    async def fetch_vehicles(self, route_id: Optional[str] = None) -> List[LiveVehicle]:
        """Current live vehicles, optionally for one route. Empty on any failure."""
        if not self.enabled:
            return []

        try:
            session = await self._get_session()
            async with session.get(self.feed_url, timeout=aiohttp.ClientTimeout(total=FETCH_TIMEOUT)) as response:
                response.raise_for_status()
                payload = await response.json()
            vehicles = [LiveVehicle(**item) for item in payload.get("vehicles", [])]
        except (aiohttp.ClientError, asyncio.TimeoutError, ValidationError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Error fetching live vehicles from {self.feed_url}: {e}")
            return []

        self.last_update = datetime.now(timezone.utc)
        if route_id is not None:
            vehicles = [v for v in vehicles if v.route_id == route_id]
        logger.debug(f"Fetched {len(vehicles)} live vehicles")
        return vehicles
