"""Tests for MCP tools."""

import asyncio

import pytest

from transitsim_mcp.config import Settings
from transitsim_mcp.ingest.static_loader import Route, TransitData
from transitsim_mcp.ingest.vehicle_feed import VehicleFeed
from transitsim_mcp.sim.interpolator import MarkerRegistry
from transitsim_mcp.tools.list_routes import list_routes
from transitsim_mcp.tools.route_directions import route_directions_for
from transitsim_mcp.tools.route_shape import route_shape
from transitsim_mcp.tools.track_route import RouteTracker
from transitsim_mcp.tools.vehicle_positions import vehicle_positions


@pytest.mark.asyncio
async def test_list_routes(sample_data):
    """Test listing routes."""
    routes = await list_routes(sample_data)

    assert [r["route_id"] for r in routes] == ["15", "46A", "GRN"]
    assert routes[0]["long_name"] == "Clongriffin - Ballycullen Rd"
    assert routes[0]["color"] == "#FFC72C"
    assert routes[2]["directions"] == ["Southbound", "Northbound"]


@pytest.mark.asyncio
async def test_list_routes_empty():
    assert await list_routes(TransitData()) == []


@pytest.mark.asyncio
async def test_route_directions(sample_data):
    directions = await route_directions_for(sample_data, "46A")

    assert [d["direction_label"] for d in directions] == ["To Dún Laoghaire", "To Phoenix Park"]
    assert await route_directions_for(sample_data, "missing") == []


@pytest.mark.asyncio
async def test_route_shape(sample_data):
    outbound = await route_shape(sample_data, "GRN", 0)
    inbound = await route_shape(sample_data, "GRN", 1)

    assert outbound["points"][0] == [53.3501, -6.2601]
    assert inbound["points"] == list(reversed(outbound["points"]))
    assert inbound["reversed_outbound"] is True
    assert outbound["length_km"] == pytest.approx(inbound["length_km"])
    assert outbound["length_km"] > 10


@pytest.mark.asyncio
async def test_route_shape_rejects_bad_direction(sample_data):
    with pytest.raises(ValueError):
        await route_shape(sample_data, "GRN", 2)


@pytest.mark.asyncio
async def test_vehicle_positions_at_time(sample_data):
    """Test getting simulated vehicle positions for a fixed instant."""
    feed = VehicleFeed(sample_data)

    vehicles = await vehicle_positions(feed, "15", "2024-05-01T08:00:00")
    again = await vehicle_positions(feed, "15", "2024-05-01T08:00:00")

    assert len(vehicles) == 12
    assert vehicles == again
    assert vehicles[0]["vehicle_id"] == "SIM-15-0-0"
    assert vehicles[0]["simulated"] is True
    assert vehicles[0]["timestamp"] == "2024-05-01T08:00:00"


@pytest.mark.asyncio
async def test_vehicle_positions_invalid_time(sample_data):
    with pytest.raises(ValueError):
        await vehicle_positions(VehicleFeed(sample_data), "15", "yesterday-ish")


@pytest.mark.asyncio
async def test_vehicle_positions_unserved_route():
    data = TransitData(routes={"X": Route("X", "X", "Nowhere", 3)})

    assert await vehicle_positions(VehicleFeed(data), "X") == []


@pytest.mark.asyncio
async def test_track_and_untrack_route(sample_data):
    feed = VehicleFeed(sample_data, Settings(refresh_interval_seconds=0.01))
    tracker = RouteTracker(feed, MarkerRegistry(frame_interval=0.001))

    result = await tracker.track("46A")
    await asyncio.sleep(0.05)

    assert result == {"route_id": "46A", "tracking": True}
    assert feed.running
    displayed = tracker.displayed_positions()
    assert len(displayed) == 12
    assert all(d["vehicle_id"].startswith("SIM-46A-") for d in displayed)

    result = await tracker.untrack()

    assert result == {"route_id": "46A", "tracking": False}
    assert not feed.running
    assert tracker.displayed_positions() == []


@pytest.mark.asyncio
async def test_track_unknown_route(sample_data):
    tracker = RouteTracker(VehicleFeed(sample_data), MarkerRegistry())

    with pytest.raises(ValueError):
        await tracker.track("missing")


@pytest.mark.asyncio
async def test_untrack_keeps_feed_running_for_other_subscribers(sample_data):
    feed = VehicleFeed(sample_data, Settings(refresh_interval_seconds=0.01))
    tracker = RouteTracker(feed, MarkerRegistry(frame_interval=0.001))
    received = []
    unsubscribe = feed.subscribe(received.append, "GRN")

    await tracker.track("15")
    await tracker.untrack()
    await asyncio.sleep(0.05)

    assert feed.running
    assert feed.subscriber_count == 1
    assert received

    unsubscribe()
    await feed.stop()
