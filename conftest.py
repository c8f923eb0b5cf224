"""Pytest configuration for transitsim MCP tests."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from transitsim_mcp.ingest.static_loader import sample_network
from transitsim_mcp.sim.schedule import ScheduleParameters


@pytest.fixture
def sample_data():
    """Built-in Dublin network (routes 15, 46A, GRN)."""
    return sample_network()


@pytest.fixture
def straight_path():
    """Two points one degree apart along the equator."""
    return [(0.0, 0.0), (0.0, 1.0)]


@pytest.fixture
def one_per_direction():
    return ScheduleParameters(headway_minutes=10, trip_duration_minutes=10)


@pytest.fixture
def morning():
    return datetime(2024, 5, 1, 8, 0, 0)


@pytest.fixture
def mock_aiohttp_session():
    """Mock aiohttp session whose ``get`` yields a response returning ``payload``."""

    def build(payload=None, error=None):
        response = Mock()
        response.raise_for_status = Mock(side_effect=error)
        response.json = AsyncMock(return_value=payload)

        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)

        session = Mock()
        session.closed = False
        session.get = Mock(return_value=context)
        session.close = AsyncMock()
        return session

    return build
