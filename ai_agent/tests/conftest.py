"""
Pytest fixtures for agent tests.

Provides a mocked backend client and small supply chain fixtures.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from supplychain_agent.mcp.client import BackendClient

# =============================================================================
# BACKEND CLIENT
# =============================================================================


@pytest.fixture
def mock_client():
    """BackendClient double whose network calls all succeed."""
    client = MagicMock(spec=BackendClient)
    client.get = AsyncMock(return_value=[])
    client.health = AsyncMock(return_value={"status": "ok"})
    client.send_to_backend = AsyncMock(return_value={"success": True})
    client.get_from_backend = AsyncMock(return_value={})
    client.update_backend = AsyncMock(return_value={})
    client.register_agent = AsyncMock(return_value={"success": True})
    client.execute_agent_action = AsyncMock(return_value={})
    return client


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


@pytest.fixture
def sample_locations() -> list:
    return [
        {"id": "port_shanghai", "name": "Shanghai", "type": "port", "country": "China", "region": "Asia"},
        {"id": "port_singapore", "name": "Singapore", "type": "port", "country": "Singapore", "region": "Asia"},
        {"id": "port_rotterdam", "name": "Rotterdam", "type": "port", "country": "Netherlands", "region": "Europe"},
        {"id": "port_los_angeles", "name": "Los Angeles", "type": "port", "country": "USA", "region": "North America"},
        {"id": "supplier_shenzhen", "name": "Shenzhen Components", "type": "supplier", "country": "China", "region": "Asia"},
        {"id": "supplier_munich", "name": "Munich Precision", "type": "supplier", "country": "Germany", "region": "Europe"},
        {"id": "supplier_austin", "name": "Austin Devices", "type": "supplier", "country": "USA", "region": "North America"},
    ]


@pytest.fixture
def sample_shipment() -> dict:
    return {
        "id": "SHP-001",
        "origin": "port_shanghai",
        "destination": "port_los_angeles",
        "supplier": "supplier_shenzhen",
        "status": "in_transit",
        "cargo": {"type": "General", "weight": 5000, "value": 250000, "priority": "medium"},
        "route": ["port_shanghai", "port_los_angeles"],
        "vessel": {"name": "Ever Given", "type": "ship", "capacity": 20000},
    }
