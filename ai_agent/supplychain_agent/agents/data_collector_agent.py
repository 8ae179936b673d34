"""
Data Collector Agent

Collects a best-effort snapshot of weather, news, port congestion and
supply chain data from the backend. Sources are collected concurrently
and each one degrades to an empty result on failure, so a collection
pass always produces an envelope.
"""
from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta, timezone
import asyncio
import random
import structlog

from supplychain_agent.agents.base import AgentLifecycle
from supplychain_agent.config import settings
from supplychain_agent.mcp.client import BackendClient, BackendError
from supplychain_agent.mcp.context import CapabilityDescriptor, Context, MCPResponse
from supplychain_agent.schemas import AgentResponse, NewsData, WeatherData, utc_now

logger = structlog.get_logger()

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

WEATHER_CONDITIONS = ["sunny", "cloudy", "rainy", "stormy", "foggy"]

CONDITION_RISK = {
    "sunny": "low",
    "cloudy": "low",
    "rainy": "medium",
    "foggy": "medium",
    "stormy": "high",
}

SEVERITY_RELEVANCE = {
    "critical": 0.9,
    "high": 0.9,
    "medium": 0.6,
}


def _as_list(body: Any) -> List[Dict[str, Any]]:
    """Unwrap list endpoints that may answer ``{"data": [...]}``."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return body["data"]
    return []


def _mark_degraded(degraded: Optional[List[str]], source: str):
    if degraded is not None and source not in degraded:
        degraded.append(source)


class DataCollectorAgent:
    """
    Data Collector Agent - First hop of the risk pipeline.

    Responsibilities:
    - Stub weather readings for every port hub and warehouse
    - Turn backend disruptions into news/risk items
    - Report congested ports
    - Snapshot suppliers, shipments and low-stock inventory
    """

    MCP_ERROR_CODE = "DATA_COLLECTION_FAILED"

    def __init__(
        self,
        client: BackendClient,
        agent_id: str = "data_collector_001",
        weather_api_key: Optional[str] = None,
        news_api_key: Optional[str] = None,
        freshness_seconds: Optional[int] = None,
        rng: Optional[random.Random] = None
    ):
        self.lifecycle = AgentLifecycle(agent_id, "DataCollector", client)
        self.client = client
        self.weather_api_key = weather_api_key or settings.weather_api_key
        self.news_api_key = news_api_key or settings.news_api_key
        if freshness_seconds is None:
            freshness_seconds = settings.data_freshness_seconds
        self.freshness_threshold = timedelta(seconds=freshness_seconds)
        self.last_collection_time: datetime = EPOCH
        self._random = rng or random.Random()
        # One collection pass at a time per instance
        self._collection_lock = asyncio.Lock()

    # ==================== Lifecycle ====================

    async def start(self):
        await self.lifecycle.start(self.get_capabilities())

    def stop(self):
        self.lifecycle.stop()

    def get_agent_info(self):
        return self.lifecycle.get_agent_info(self.get_capabilities())

    def get_capabilities(self) -> List[CapabilityDescriptor]:
        return [
            CapabilityDescriptor(
                id="weather_collection",
                name="Weather Data Collection",
                description="Collect weather data for supply chain locations",
                input_types=["location_ids"],
                output_types=["weather_data"],
            ),
            CapabilityDescriptor(
                id="news_monitoring",
                name="News and Geopolitical Risk Monitoring",
                description="Monitor news for supply chain risks",
                input_types=["keywords", "regions"],
                output_types=["news_data", "risk_alerts"],
            ),
            CapabilityDescriptor(
                id="congestion_monitoring",
                name="Port Congestion Data",
                description="Collect real-time port congestion information",
                input_types=["port_ids"],
                output_types=["congestion_data"],
            ),
            CapabilityDescriptor(
                id="backend_integration",
                name="Backend API Integration",
                description="Integrate with backend supply chain data",
                input_types=["api_endpoints"],
                output_types=["supply_chain_data"],
            ),
        ]

    # ==================== Entry points ====================

    async def process(self, data: Dict[str, Any] = None) -> AgentResponse:
        """Run a full collection pass. Never raises."""
        async with self.lifecycle.activity():
            try:
                collected = await self.collect_all_data()
                degraded = len(collected["degradedSources"])
                return self.lifecycle.create_response(
                    collected,
                    max(0.1, round(0.9 - 0.2 * degraded, 2))
                )
            except Exception as e:
                logger.error("Data collection error", agent_id=self.lifecycle.agent_id, error=str(e))
                return self.lifecycle.create_response(
                    {"error": "Data collection failed", "details": str(e)},
                    0.1
                )

    async def process_mcp(self, context: Context) -> MCPResponse:
        async with self.lifecycle.activity():
            return await self.lifecycle.run_mcp(
                context,
                "data_collection",
                self._handle_context,
                self.MCP_ERROR_CODE
            )

    async def _handle_context(self, context: Context) -> Any:
        if context.type == "weather_request":
            return await self.collect_weather_data()
        if context.type == "news_request":
            return await self.collect_news_data()
        if context.type == "congestion_request":
            return await self.collect_congestion_data()
        if context.type == "supply_chain_request":
            return await self.collect_supply_chain_data()
        return await self.collect_all_data()

    async def collect_all_data(self) -> Dict[str, Any]:
        """
        Collect all four sources concurrently and join on all of them.

        A failing source never cancels its siblings; it contributes its
        empty default instead and is listed in ``degradedSources``.
        """
        async with self._collection_lock:
            collection_time = utc_now()
            degraded: List[str] = []

            weather, news, congestion, supply_chain = await asyncio.gather(
                self.collect_weather_data(degraded),
                self.collect_news_data(degraded),
                self.collect_congestion_data(degraded),
                self.collect_supply_chain_data(degraded),
                return_exceptions=True
            )

            collected = {
                "weather": self._or_default(weather, [], "weather", degraded),
                "news": self._or_default(news, [], "news", degraded),
                "congestion": self._or_default(congestion, [], "congestion", degraded),
                "supplyChain": self._or_default(
                    supply_chain,
                    self._empty_supply_chain(),
                    "supply_chain",
                    degraded
                ),
                "collectionTime": collection_time.isoformat(),
                "lastCollectionTime": self.last_collection_time.isoformat(),
                "degradedSources": degraded,
            }

            self.last_collection_time = collection_time

            logger.info(
                "Data collection completed",
                agent_id=self.lifecycle.agent_id,
                weather=len(collected["weather"]),
                news=len(collected["news"]),
                congestion=len(collected["congestion"]),
                degraded_sources=degraded
            )
            return collected

    def _or_default(
        self,
        result: Any,
        default: Any,
        source: str,
        degraded: List[str]
    ) -> Any:
        if isinstance(result, BaseException):
            logger.error("Collector raised unexpectedly", source=source, error=str(result))
            _mark_degraded(degraded, source)
            return default
        return result

    # ==================== Collectors ====================

    async def _get_list(self, path: str) -> List[Dict[str, Any]]:
        return _as_list(await self.client.get(path))

    async def collect_weather_data(
        self,
        degraded: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        """Stub a weather reading for every port hub and warehouse."""
        try:
            ports, warehouses = await asyncio.gather(
                self._get_list("/port-hubs"),
                self._get_list("/warehouses")
            )
        except Exception as e:
            logger.error("Failed to collect weather data from backend", error=str(e))
            _mark_degraded(degraded, "weather")
            return []

        locations = [
            {"id": p.get("id"), "name": p.get("name"), "country": p.get("country"), "type": "port"}
            for p in ports
        ] + [
            {"id": w.get("id"), "name": w.get("name"), "country": w.get("country"), "type": "warehouse"}
            for w in warehouses
        ]

        weather_data = []
        for location in locations:
            if not location["id"]:
                logger.warning("Skipping location without id", location=location.get("name"))
                continue
            conditions = self._random.choice(WEATHER_CONDITIONS)
            reading = WeatherData(
                location=str(location["id"]),
                temperature=self._random.randint(-10, 29),
                humidity=self._random.randint(0, 99),
                wind_speed=self._random.randint(0, 49),
                conditions=conditions,
                visibility=self._random.randint(1, 10),
                risk_level=CONDITION_RISK[conditions],
                timestamp=utc_now()
            ).to_wire()
            reading["locationInfo"] = {
                "name": location["name"],
                "country": location["country"],
                "type": location["type"],
            }
            weather_data.append(reading)

        return weather_data

    async def collect_news_data(
        self,
        degraded: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        """Derive news/risk items from backend disruptions."""
        try:
            disruptions = await self._get_list("/disruptions")
        except Exception as e:
            logger.error("Failed to collect news data from backend", error=str(e))
            _mark_degraded(degraded, "news")
            return []

        news_data = []
        for disruption in disruptions:
            severity = str(disruption.get("severity", "low")).lower()
            disruption_type = disruption.get("type", "unknown")
            news_data.append(NewsData(
                id=str(disruption["id"]) if disruption.get("id") is not None else None,
                title=f"{disruption_type} disruption in {disruption.get('locationType', 'unknown')}",
                summary=disruption.get("description"),
                source="Supply Chain Monitor",
                location=disruption.get("location"),
                category=disruption_type,
                risk_level="high" if severity == "critical" else severity,
                published_at=disruption.get("startTime"),
                relevance_score=SEVERITY_RELEVANCE.get(severity, 0.3),
                sentiment="negative" if severity in ("high", "critical") else "neutral",
                tags=[
                    str(tag) for tag in (disruption_type, disruption.get("locationType"), severity)
                    if tag
                ],
                geopolitical_risk="high" if disruption_type == "geopolitical" else "low"
            ).to_wire())

        return news_data

    async def collect_congestion_data(
        self,
        degraded: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        try:
            ports = await self._get_list("/port-hubs/status/congested")
        except Exception as e:
            logger.error("Failed to collect congestion data from backend", error=str(e))
            _mark_degraded(degraded, "congestion")
            return []

        return [
            {
                "portId": port.get("id"),
                "portName": port.get("name"),
                "country": port.get("country"),
                "congestionLevel": "high",
                "waitingTime": self._random.randint(1, 48),  # hours
                "vesselCount": self._random.randint(5, 55),
                "capacity": port.get("capacity"),
                "utilizationRate": round(self._random.uniform(0.6, 1.0), 3),
                "timestamp": utc_now().isoformat(),
            }
            for port in ports
        ]

    def _empty_supply_chain(self) -> Dict[str, Any]:
        return {
            "suppliers": [],
            "shipments": [],
            "lowStockItems": [],
            "collectionTime": utc_now().isoformat(),
            "error": "Backend connection failed",
        }

    async def collect_supply_chain_data(
        self,
        degraded: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Snapshot suppliers, shipments and low-stock items.

        Endpoints that fail contribute an empty list and the result is
        tagged with ``error`` and the names of the failed sources.
        """
        sources = {
            "suppliers": "/suppliers",
            "shipments": "/shipments",
            "lowStockItems": "/inventory/low-stock",
        }
        results = await asyncio.gather(
            *(self._get_list(path) for path in sources.values()),
            return_exceptions=True
        )

        snapshot: Dict[str, Any] = {}
        failed = []
        for name, result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Failed to collect supply chain data from backend",
                    source=name,
                    error=str(result)
                )
                failed.append(name)
                snapshot[name] = []
            else:
                snapshot[name] = result

        snapshot["collectionTime"] = utc_now().isoformat()
        if failed:
            snapshot["error"] = "Backend connection failed"
            snapshot["failedSources"] = failed
            _mark_degraded(degraded, "supply_chain")
        return snapshot

    # ==================== Diagnostics ====================

    async def get_data_quality_metrics(self) -> Dict[str, Any]:
        """Report freshness of the last collection and backend reachability."""
        since_last = utc_now() - self.last_collection_time
        metrics = {
            "lastCollectionTime": self.last_collection_time.isoformat(),
            "timeSinceLastCollection": int(since_last.total_seconds() * 1000),
            "apiKeysConfigured": {
                "weather": bool(self.weather_api_key),
                "news": bool(self.news_api_key),
            },
        }

        try:
            await self.client.health()
        except BackendError as e:
            logger.warning("Backend health check failed", error=str(e))
            metrics.update({
                "dataFreshness": "stale",
                "backendStatus": "disconnected",
                "error": "Backend health check failed",
            })
            return metrics

        metrics.update({
            "dataFreshness": "fresh" if since_last < self.freshness_threshold else "stale",
            "backendStatus": "connected",
        })
        return metrics
