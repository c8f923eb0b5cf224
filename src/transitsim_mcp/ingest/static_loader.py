"""Static route directory and route shapes."""

import asyncio
import csv
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiofiles
import aiohttp

logger = logging.getLogger(__name__)

CACHE_MAX_AGE = 86400  # 24 hours
CACHE_FILE_NAME = "gtfs_static.zip"


@dataclass
class Route:
    route_id: str
    route_short_name: str
    route_long_name: str
    route_type: int
    route_color: Optional[str] = None
    route_text_color: Optional[str] = None
    agency_id: Optional[str] = None
    direction_names: Optional[List[str]] = None
    headway_minutes: Optional[float] = None
    trip_duration_minutes: Optional[float] = None


@dataclass
class Trip:
    trip_id: str
    route_id: str
    service_id: str
    trip_headsign: Optional[str] = None
    direction_id: Optional[int] = None
    shape_id: Optional[str] = None


@dataclass
class TransitData:
    routes: Dict[str, Route] = field(default_factory=dict)
    trips: Dict[str, Trip] = field(default_factory=dict)
    shapes: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    last_updated: Optional[datetime] = None
    source: str = "empty"

    def _shape_id_for(self, route_id: str, direction_id: int) -> Optional[str]:
        # First trip with a shape wins; trips without a direction count as outbound
        for trip in self.trips.values():
            if trip.route_id != route_id or not trip.shape_id:
                continue
            if (trip.direction_id or 0) == direction_id and trip.shape_id in self.shapes:
                return trip.shape_id
        return None

    def get_route_shape(self, route_id: str, direction_id: int = 0) -> Optional[List[Tuple[float, float]]]:
        """
        Ordered (lat, lon) points of a route's path in one direction.

        Unknown routes give an empty list. Direction 1 gives ``None`` when
        the route has no shape of its own for that direction, meaning the
        outbound path is shared and run in reverse.
        """
        if route_id not in self.routes:
            return []

        shape_id = self._shape_id_for(route_id, direction_id)
        if shape_id is None:
            if direction_id == 1:
                return None
            shape_id = route_id if route_id in self.shapes else None
        if shape_id is None:
            return []

        points = sorted(self.shapes[shape_id], key=lambda p: p["sequence"])
        return [(p["lat"], p["lon"]) for p in points]


def derive_route_endpoints(long_name: str) -> Tuple[str, str]:
    """Split a long name such as "Clongriffin - Ballycullen Rd" into (from, to)."""
    if not long_name:
        return "A", "B"

    cleaned = re.sub(r"\s+", " ", long_name).strip()
    for separator in (" - ", " – ", " — ", " to "):
        parts = cleaned.split(separator)
        if len(parts) >= 2:
            return parts[0].strip(), parts[-1].strip()
    return cleaned, cleaned


def route_directions(route: Route) -> List[Dict[str, Any]]:
    origin, destination = derive_route_endpoints(route.route_long_name)
    labels = route.direction_names or [f"{origin} → {destination}", f"{destination} → {origin}"]
    return [
        {
            "route_id": route.route_id,
            "route_short_name": route.route_short_name,
            "direction_id": index,
            "direction_label": label,
        }
        for index, label in enumerate(labels[:2])
    ]


SAMPLE_ROUTES = [
    Route(
        route_id="15",
        route_short_name="15",
        route_long_name="Clongriffin - Ballycullen Rd",
        route_type=3,
        route_color="FFC72C",
        agency_id="DUB",
        direction_names=["To Ballycullen", "To Clongriffin"],
    ),
    Route(
        route_id="46A",
        route_short_name="46A",
        route_long_name="Phoenix Park - Dún Laoghaire",
        route_type=3,
        route_color="FFC72C",
        agency_id="DUB",
        direction_names=["To Dún Laoghaire", "To Phoenix Park"],
    ),
    Route(
        route_id="GRN",
        route_short_name="Green",
        route_long_name="Luas Green Line",
        route_type=0,
        route_color="B3007D",
        agency_id="LUAS",
        direction_names=["Southbound", "Northbound"],
        headway_minutes=5,
        trip_duration_minutes=40,
    ),
]

SAMPLE_SHAPES = {
    "15": [
        (53.4031, -6.1583),  # Clongriffin
        (53.3950, -6.1750),
        (53.3892, -6.2001),  # Malahide Rd
        (53.3750, -6.2150),
        (53.3635, -6.2300),  # Fairview
        (53.3580, -6.2450),
        (53.3522, -6.2500),  # Connolly
        (53.3498, -6.2603),  # O'Connell St
        (53.3449, -6.2595),  # Trinity
        (53.3430, -6.2620),
        (53.3400, -6.2640),
        (53.3318, -6.2668),  # Rathmines
        (53.3200, -6.2700),
        (53.3112, -6.2799),  # Terenure
        (53.3000, -6.3000),
        (53.2900, -6.3150),
        (53.2833, -6.3245),  # Ballycullen
    ],
    "46A": [
        (53.3589, -6.2998),  # Phoenix Park
        (53.3550, -6.2800),
        (53.3488, -6.2603),  # O'Connell St
        (53.3449, -6.2595),
        (53.3398, -6.2534),  # Merrion Sq
        (53.3340, -6.2560),
        (53.3230, -6.2380),  # Donnybrook
        (53.3077, -6.1998),  # Stillorgan
        (53.2950, -6.1800),
        (53.2889, -6.1567),
        (53.2945, -6.1345),  # Dún Laoghaire
    ],
    "GRN": [
        (53.3501, -6.2601),  # Parnell
        (53.3449, -6.2595),
        (53.3391, -6.2613),  # St Stephen's Green
        (53.3310, -6.2590),
        (53.3211, -6.2588),  # Ranelagh
        (53.3080, -6.2500),
        (53.2902, -6.2331),  # Dundrum
        (53.2701, -6.2021),  # Sandyford
        (53.2500, -6.1800),
        (53.2231, -6.1455),  # Brides Glen
    ],
}


def sample_network() -> TransitData:
    """Built-in Dublin network used when no static feed is configured."""
    data = TransitData(source="sample")
    for route in SAMPLE_ROUTES:
        data.routes[route.route_id] = route
        data.trips[f"{route.route_id}-0"] = Trip(
            trip_id=f"{route.route_id}-0",
            route_id=route.route_id,
            service_id="DAILY",
            direction_id=0,
            shape_id=route.route_id,
        )
    for shape_id, points in SAMPLE_SHAPES.items():
        data.shapes[shape_id] = [
            {"lat": lat, "lon": lon, "sequence": index} for index, (lat, lon) in enumerate(points)
        ]
    data.last_updated = datetime.now()
    return data


class StaticFeedLoader:
    def __init__(self, feed_url: Optional[str] = None, cache_dir: str = "cache"):
        self.feed_url = feed_url
        self.cache_dir = Path(cache_dir)
        self.data = TransitData()

    async def download_feed(self, timeout_seconds: float = 30) -> bytes:
        """Download the static GTFS feed."""
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(self.feed_url) as response:
                response.raise_for_status()
                return await response.read()

    def parse_csv(self, content: str) -> List[Dict[str, str]]:
        """Parse CSV content into list of dictionaries."""
        reader = csv.DictReader(io.StringIO(content))
        return list(reader)

    async def _read_feed_bytes(self, force_refresh: bool, timeout_seconds: float) -> bytes:
        cache_file = self.cache_dir / CACHE_FILE_NAME

        if not force_refresh and cache_file.exists():
            age = datetime.now().timestamp() - cache_file.stat().st_mtime
            if age < CACHE_MAX_AGE:
                logger.info("Using cached GTFS feed")
                async with aiofiles.open(cache_file, "rb") as f:
                    return await f.read()
            logger.info("Cache expired, downloading fresh feed")
        else:
            logger.info("Downloading GTFS feed")

        feed_data = await self.download_feed(timeout_seconds)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(cache_file, "wb") as f:
            await f.write(feed_data)
        return feed_data

    def parse_feed(self, feed_data: bytes) -> TransitData:
        """Parse routes, trips and shapes out of a GTFS zip archive."""
        data = TransitData(source="gtfs")
        with zipfile.ZipFile(io.BytesIO(feed_data)) as zf:
            names = zf.namelist()

            if "routes.txt" in names:
                content = zf.read("routes.txt").decode("utf-8-sig")
                for row in self.parse_csv(content):
                    route = Route(
                        route_id=row["route_id"],
                        route_short_name=row.get("route_short_name", ""),
                        route_long_name=row.get("route_long_name", ""),
                        route_type=int(row.get("route_type") or 3),
                        route_color=row.get("route_color") or None,
                        route_text_color=row.get("route_text_color") or None,
                        agency_id=row.get("agency_id") or None,
                    )
                    data.routes[route.route_id] = route

            if "trips.txt" in names:
                content = zf.read("trips.txt").decode("utf-8-sig")
                for row in self.parse_csv(content):
                    trip = Trip(
                        trip_id=row["trip_id"],
                        route_id=row["route_id"],
                        service_id=row["service_id"],
                        trip_headsign=row.get("trip_headsign"),
                        direction_id=int(row["direction_id"]) if row.get("direction_id") else None,
                        shape_id=row.get("shape_id") or None,
                    )
                    data.trips[trip.trip_id] = trip

            if "shapes.txt" in names:
                content = zf.read("shapes.txt").decode("utf-8-sig")
                for row in self.parse_csv(content):
                    data.shapes.setdefault(row["shape_id"], []).append({
                        "lat": float(row["shape_pt_lat"]),
                        "lon": float(row["shape_pt_lon"]),
                        "sequence": int(row["shape_pt_sequence"]),
                    })

        data.last_updated = datetime.now()
        return data

    async def load_feed(self, force_refresh: bool = False, timeout_seconds: float = 30) -> TransitData:
        """
        Load the route directory.

        Without a configured feed URL the built-in sample network is used.
        Download or parse failures also fall back to the sample network.
        """
        if not self.feed_url:
            self.data = sample_network()
        else:
            try:
                feed_data = await self._read_feed_bytes(force_refresh, timeout_seconds)
                self.data = self.parse_feed(feed_data)
            except (aiohttp.ClientError, asyncio.TimeoutError, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
                logger.error(f"Error loading GTFS feed from {self.feed_url}: {e} - using sample network")
                self.data = sample_network()

        logger.info(f"Loaded {len(self.data.routes)} routes, {len(self.data.trips)} trips, "
                    f"{len(self.data.shapes)} shapes ({self.data.source})")
        return self.data
