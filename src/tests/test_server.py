"""FastMCP server tests through an in-memory client."""

import json

import pytest
from fastmcp import Client

from transitsim_mcp.server import mcp


def extract_result(result):
    """Extract actual data from FastMCP CallToolResult."""
    data = getattr(result, "data", None)
    if data is not None:
        return data

    content = getattr(result, "content", result)
    if isinstance(content, list) and content and hasattr(content[0], "text"):
        try:
            return json.loads(content[0].text)
        except json.JSONDecodeError:
            return content[0].text
    return content


@pytest.mark.asyncio
async def test_server_lists_tools():
    async with Client(mcp) as client:
        tools = await client.list_tools()
        names = {tool.name for tool in tools}

    expected = {
        "list_routes_tool",
        "route_directions_tool",
        "route_shape_tool",
        "vehicle_positions_tool",
        "track_route_tool",
        "untrack_route_tool",
        "displayed_positions_tool",
        "health_check",
    }
    assert expected <= names


@pytest.mark.asyncio
async def test_list_routes_tool():
    async with Client(mcp) as client:
        routes = extract_result(await client.call_tool("list_routes_tool", {}))

    assert [r["route_id"] for r in routes] == ["15", "46A", "GRN"]


@pytest.mark.asyncio
async def test_vehicle_positions_tool_is_deterministic():
    args = {"route_id": "GRN", "at_time": "2024-05-01T08:00:00"}
    async with Client(mcp) as client:
        first = extract_result(await client.call_tool("vehicle_positions_tool", args))
        second = extract_result(await client.call_tool("vehicle_positions_tool", args))

    assert len(first) == 16
    assert [(v["lat"], v["lon"]) for v in first] == [(v["lat"], v["lon"]) for v in second]


@pytest.mark.asyncio
async def test_route_shape_tool():
    async with Client(mcp) as client:
        shape = extract_result(await client.call_tool("route_shape_tool", {"route_id": "15", "direction_id": 1}))

    assert shape["reversed_outbound"] is True
    assert shape["points"][0] == [53.2833, -6.3245]


@pytest.mark.asyncio
async def test_health_check():
    async with Client(mcp) as client:
        await client.call_tool("list_routes_tool", {})
        health = extract_result(await client.call_tool("health_check", {}))

    assert health["status"] == "healthy"
    assert health["routes_loaded"] == 3
    assert health["data_source"] == "sample"
    assert health["live_feed_enabled"] is False


@pytest.mark.asyncio
async def test_missing_required_param():
    async with Client(mcp) as client:
        with pytest.raises(Exception):
            await client.call_tool("route_directions_tool", {})


@pytest.mark.asyncio
async def test_track_then_untrack():
    async with Client(mcp) as client:
        tracked = extract_result(await client.call_tool("track_route_tool", {"route_id": "15"}))
        untracked = extract_result(await client.call_tool("untrack_route_tool", {}))
        displayed = extract_result(await client.call_tool("displayed_positions_tool", {}))

    assert tracked == {"route_id": "15", "tracking": True}
    assert untracked == {"route_id": "15", "tracking": False}
    assert displayed == []
