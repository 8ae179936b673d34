"""
Tests for the Data Collector Agent.
"""
import asyncio
import random
from datetime import timedelta

import pytest

from supplychain_agent.agents.data_collector_agent import EPOCH, DataCollectorAgent
from supplychain_agent.config import settings
from supplychain_agent.mcp.client import BackendError
from supplychain_agent.mcp.context import SourceType, create_context
from supplychain_agent.schemas import utc_now

BACKEND_DATA = {
    "/port-hubs": [
        {"id": "port_shanghai", "name": "Shanghai", "country": "China", "capacity": 47000000},
        {"id": "port_rotterdam", "name": "Rotterdam", "country": "Netherlands", "capacity": 15000000},
    ],
    "/warehouses": {"data": [{"id": "wh_reno", "name": "Reno DC", "country": "USA"}]},
    "/disruptions": [
        {
            "id": 7,
            "type": "geopolitical",
            "severity": "critical",
            "description": "Strait closure",
            "location": "port_singapore",
            "locationType": "port",
            "startTime": "2024-03-01T00:00:00Z",
        },
        {"id": 8, "type": "weather", "severity": "medium", "location": "port_rotterdam"},
    ],
    "/port-hubs/status/congested": [
        {"id": "port_los_angeles", "name": "Los Angeles", "country": "USA", "capacity": 9000000},
    ],
    "/suppliers": [{"id": "supplier_shenzhen"}],
    "/shipments": [{"id": "SHP-001"}],
    "/inventory/low-stock": [],
}


def backend_get(failing=()):
    async def _get(path):
        if path in failing:
            raise BackendError("GET", f"http://backend.test/api{path}", "unavailable", status=503)
        return BACKEND_DATA[path]
    return _get


@pytest.fixture
def collector(mock_client):
    mock_client.get.side_effect = backend_get()
    return DataCollectorAgent(mock_client, rng=random.Random(42), freshness_seconds=300)


class TestCapabilities:

    def test_capability_ids(self, collector):
        assert [c.id for c in collector.get_capabilities()] == [
            "weather_collection",
            "news_monitoring",
            "congestion_monitoring",
            "backend_integration",
        ]

    def test_initial_collection_time_is_epoch(self, collector):
        assert collector.last_collection_time == EPOCH


class TestCollectors:

    @pytest.mark.asyncio
    async def test_weather_covers_ports_and_warehouses(self, collector):
        weather = await collector.collect_weather_data()

        assert [w["location"] for w in weather] == ["port_shanghai", "port_rotterdam", "wh_reno"]
        for reading in weather:
            assert reading["riskLevel"] in ("low", "medium", "high")
            assert reading["conditions"] in ("sunny", "cloudy", "rainy", "stormy", "foggy")
            assert 1 <= reading["visibility"] <= 10
        assert weather[2]["locationInfo"] == {"name": "Reno DC", "country": "USA", "type": "warehouse"}

    @pytest.mark.asyncio
    async def test_weather_risk_follows_conditions(self, collector):
        weather = await collector.collect_weather_data()
        expected = {"sunny": "low", "cloudy": "low", "rainy": "medium", "foggy": "medium", "stormy": "high"}
        for reading in weather:
            assert reading["riskLevel"] == expected[reading["conditions"]]

    @pytest.mark.asyncio
    async def test_news_from_disruptions(self, collector):
        news = await collector.collect_news_data()

        critical, medium = news
        assert critical["id"] == "7"
        assert critical["riskLevel"] == "high"
        assert critical["relevanceScore"] == 0.9
        assert critical["sentiment"] == "negative"
        assert critical["geopoliticalRisk"] == "high"
        assert critical["location"] == "port_singapore"
        assert critical["tags"] == ["geopolitical", "port", "critical"]

        assert medium["riskLevel"] == "medium"
        assert medium["relevanceScore"] == 0.6
        assert medium["sentiment"] == "neutral"
        assert medium["geopoliticalRisk"] == "low"

    @pytest.mark.asyncio
    async def test_congestion_from_congested_ports(self, collector):
        congestion = await collector.collect_congestion_data()

        assert len(congestion) == 1
        entry = congestion[0]
        assert entry["portId"] == "port_los_angeles"
        assert entry["congestionLevel"] == "high"
        assert 1 <= entry["waitingTime"] <= 48
        assert 5 <= entry["vesselCount"] <= 55
        assert 0.6 <= entry["utilizationRate"] <= 1.0

    @pytest.mark.asyncio
    async def test_supply_chain_snapshot(self, collector):
        snapshot = await collector.collect_supply_chain_data()

        assert snapshot["suppliers"] == [{"id": "supplier_shenzhen"}]
        assert snapshot["shipments"] == [{"id": "SHP-001"}]
        assert snapshot["lowStockItems"] == []
        assert "error" not in snapshot

    @pytest.mark.asyncio
    async def test_supply_chain_partial_failure(self, collector, mock_client):
        mock_client.get.side_effect = backend_get(failing={"/shipments"})
        degraded = []

        snapshot = await collector.collect_supply_chain_data(degraded)

        assert snapshot["suppliers"] == [{"id": "supplier_shenzhen"}]
        assert snapshot["shipments"] == []
        assert snapshot["error"] == "Backend connection failed"
        assert snapshot["failedSources"] == ["shipments"]
        assert degraded == ["supply_chain"]

    @pytest.mark.asyncio
    async def test_failed_source_degrades_to_empty(self, collector, mock_client):
        mock_client.get.side_effect = backend_get(failing={"/warehouses"})
        degraded = []

        assert await collector.collect_weather_data(degraded) == []
        assert degraded == ["weather"]


class TestCollectAll:

    @pytest.mark.asyncio
    async def test_envelope(self, collector):
        collected = await collector.collect_all_data()

        assert set(collected) == {
            "weather",
            "news",
            "congestion",
            "supplyChain",
            "collectionTime",
            "lastCollectionTime",
            "degradedSources",
        }
        assert collected["degradedSources"] == []
        assert collected["lastCollectionTime"] == EPOCH.isoformat()
        assert collector.last_collection_time.isoformat() == collected["collectionTime"]

    @pytest.mark.asyncio
    async def test_collection_time_advances(self, collector):
        first = await collector.collect_all_data()
        second = await collector.collect_all_data()

        assert second["lastCollectionTime"] == first["collectionTime"]

    @pytest.mark.asyncio
    async def test_one_failing_source_does_not_cancel_others(self, collector, mock_client):
        mock_client.get.side_effect = backend_get(failing={"/disruptions"})

        collected = await collector.collect_all_data()

        assert collected["news"] == []
        assert len(collected["weather"]) == 3
        assert len(collected["congestion"]) == 1
        assert collected["degradedSources"] == ["news"]

    @pytest.mark.asyncio
    async def test_overlapping_passes_are_serialized(self, collector):
        first, second = await asyncio.gather(
            collector.collect_all_data(),
            collector.collect_all_data(),
        )

        times = sorted([first, second], key=lambda c: c["collectionTime"])
        assert times[1]["lastCollectionTime"] == times[0]["collectionTime"]


class TestProcess:

    @pytest.mark.asyncio
    async def test_healthy_pass(self, collector):
        response = await collector.process({})

        assert response.agent_type == "DataCollector"
        assert response.confidence == 0.9
        assert len(response.data["weather"]) == 3

    @pytest.mark.asyncio
    async def test_partially_degraded_pass(self, collector, mock_client):
        mock_client.get.side_effect = backend_get(failing={"/disruptions"})

        response = await collector.process({})

        assert response.confidence == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_fully_degraded_pass(self, collector, mock_client):
        mock_client.get.side_effect = BackendError("GET", "http://backend.test/api", "down")

        response = await collector.process({})

        assert response.confidence == pytest.approx(0.1)
        assert response.data["weather"] == []
        assert response.data["news"] == []
        assert response.data["congestion"] == []
        assert response.data["supplyChain"]["error"] == "Backend connection failed"
        assert sorted(response.data["degradedSources"]) == ["congestion", "news", "supply_chain", "weather"]


class TestProcessMcp:

    @staticmethod
    def _context(context_type):
        return create_context(context_type, {}, "orchestrator", SourceType.SYSTEM, "dispatch")

    @pytest.mark.asyncio
    async def test_weather_request(self, collector, mock_client):
        response = await collector.process_mcp(self._context("weather_request"))

        assert response.success is True
        assert response.context.type == "weather_request_result"
        assert len(response.context.payload) == 3
        mock_client.send_to_backend.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_type_collects_everything(self, collector):
        response = await collector.process_mcp(self._context("refresh"))

        assert response.success is True
        assert "supplyChain" in response.context.payload


class TestDataQualityMetrics:

    @pytest.mark.asyncio
    async def test_never_collected_is_stale(self, collector):
        metrics = await collector.get_data_quality_metrics()

        assert metrics["dataFreshness"] == "stale"
        assert metrics["backendStatus"] == "connected"
        assert metrics["lastCollectionTime"] == EPOCH.isoformat()

    @pytest.mark.asyncio
    async def test_recent_collection_is_fresh(self, collector):
        collector.last_collection_time = utc_now() - timedelta(seconds=10)

        metrics = await collector.get_data_quality_metrics()

        assert metrics["dataFreshness"] == "fresh"
        assert metrics["timeSinceLastCollection"] >= 10000

    @pytest.mark.asyncio
    async def test_zero_freshness_window_is_always_stale(self, mock_client):
        mock_client.get.side_effect = backend_get()
        collector = DataCollectorAgent(mock_client, rng=random.Random(1), freshness_seconds=0)
        assert collector.freshness_threshold == timedelta(0)

        await collector.collect_all_data()
        metrics = await collector.get_data_quality_metrics()

        assert metrics["dataFreshness"] == "stale"

    def test_default_freshness_window_from_settings(self, mock_client):
        collector = DataCollectorAgent(mock_client)

        assert collector.freshness_threshold == timedelta(seconds=settings.data_freshness_seconds)

    @pytest.mark.asyncio
    async def test_backend_down(self, collector, mock_client):
        collector.last_collection_time = utc_now()
        mock_client.health.side_effect = BackendError("GET", "http://backend.test/api/health", "down")

        metrics = await collector.get_data_quality_metrics()

        assert metrics["dataFreshness"] == "stale"
        assert metrics["backendStatus"] == "disconnected"
        assert metrics["error"] == "Backend health check failed"

    @pytest.mark.asyncio
    async def test_api_keys_reported(self, mock_client):
        collector = DataCollectorAgent(mock_client, weather_api_key="w-key")

        metrics = await collector.get_data_quality_metrics()

        assert metrics["apiKeysConfigured"]["weather"] is True
