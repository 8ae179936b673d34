"""
Risk Assessment Agent

Scores every shipment on five independent risk factors, combines them
into a weighted overall risk and attaches advisories plus alternative
routes and suppliers.
"""
from typing import Dict, Any, Iterable, List, Mapping, Optional
import structlog

from supplychain_agent.agents.base import AgentLifecycle
from supplychain_agent.mcp.client import BackendClient
from supplychain_agent.mcp.context import CapabilityDescriptor, Context, MCPResponse
from supplychain_agent.schemas import (
    AgentResponse,
    Disruption,
    Location,
    NewsData,
    RiskAssessment,
    RiskFactors,
    RiskLevelEnum,
    RiskSummary,
    Shipment,
    WeatherData,
    parse_shipments,
    utc_now,
)

logger = structlog.get_logger()


WEATHER_RISK_VALUES = {"low": 0.1, "medium": 0.4, "high": 0.8}
DEFAULT_WEATHER_RISK = 0.3

NEWS_RISK_INCREMENTS = {"high": 0.3, "medium": 0.15}

CONGESTION_SEVERITY_INCREMENTS = {
    "low": 0.2,
    "medium": 0.4,
    "high": 0.6,
    "critical": 0.8,
}

CARGO_PRIORITY_INCREMENTS = {"critical": 0.1, "high": 0.05}

HIGH_SCRUTINY_CARGO = {"Electronics", "Machinery"}

FACTOR_WEIGHTS = {
    "weather": 0.25,
    "geopolitical": 0.30,
    "technical": 0.20,
    "congestion": 0.15,
    "customs": 0.10,
}

# (factor, threshold, advisory) - emitted when factor > threshold
ADVISORY_RULES = [
    ("weather", 0.6, "Consider rerouting to avoid adverse weather conditions"),
    ("geopolitical", 0.7, "Monitor geopolitical developments closely and prepare alternative routes"),
    ("congestion", 0.5, "Schedule arrival during off-peak hours to avoid port congestion"),
    ("technical", 0.6, "Review vessel capacity and route optimization"),
    ("customs", 0.6, "Ensure all documentation is complete and accurate for customs clearance"),
]
ACCEPTABLE_RISK_ADVISORY = "Current risk levels are acceptable. Continue monitoring."

RISK_THRESHOLDS = {"low": 0.3, "medium": 0.6, "high": 0.8}

# Placeholder substitution table, not a route search.
ROUTE_SUBSTITUTIONS = {
    "port_singapore": ["port_shanghai", "port_los_angeles"],
    "port_rotterdam": ["port_shanghai", "port_los_angeles"],
}


def clamp(value: float) -> float:
    return max(0.0, min(value, 1.0))


def region_of(location_id: str, locations: Mapping[str, Location]) -> str:
    """Region of a location; unknown ids stand for themselves."""
    location = locations.get(location_id)
    if location and location.region:
        return location.region
    return location_id


def shipment_regions(shipment: Shipment, locations: Mapping[str, Location]) -> List[str]:
    regions = []
    for location_id in shipment.route:
        region = region_of(location_id, locations)
        if region not in regions:
            regions.append(region)
    return regions


def calculate_weather_risk(shipment: Shipment, weather_data: Iterable[WeatherData]) -> float:
    readings: Dict[str, WeatherData] = {}
    for reading in weather_data:
        readings.setdefault(reading.location, reading)

    total_risk = 0.0
    location_count = 0
    for location_id in shipment.route:
        reading = readings.get(location_id)
        if reading is not None:
            location_count += 1
            total_risk += WEATHER_RISK_VALUES.get(reading.risk_level.lower(), 0.0)

    if location_count == 0:
        return DEFAULT_WEATHER_RISK
    return clamp(total_risk / location_count)


def calculate_geopolitical_risk(
    shipment: Shipment,
    news_data: Iterable[NewsData],
    locations: Mapping[str, Location]
) -> float:
    risk = 0.2
    regions = set(shipment_regions(shipment, locations))

    for news in news_data:
        news_region = news.region or (region_of(news.location, locations) if news.location else None)
        if news_region in regions:
            risk += NEWS_RISK_INCREMENTS.get(news.risk_level.lower(), 0.0)

    return clamp(risk)


def calculate_technical_risk(shipment: Shipment) -> float:
    risk = 0.1

    capacity = shipment.vessel.capacity
    if capacity is not None and capacity < shipment.cargo.weight:
        risk += 0.3  # overcapacity

    if len(shipment.route) > 3:
        risk += 0.2  # complex route

    risk += CARGO_PRIORITY_INCREMENTS.get(shipment.cargo.priority.lower(), 0.0)
    return clamp(risk)


def calculate_congestion_risk(shipment: Shipment, disruptions: Iterable[Disruption]) -> float:
    risk = 0.1
    route = set(shipment.route)

    for disruption in disruptions:
        if disruption.type == "congestion" and disruption.location in route:
            risk += CONGESTION_SEVERITY_INCREMENTS.get(disruption.severity.lower(), 0.0)

    return clamp(risk)


def calculate_customs_risk(shipment: Shipment) -> float:
    risk = 0.15

    if shipment.cargo.type in HIGH_SCRUTINY_CARGO:
        risk += 0.2

    if len(shipment.route) > 2:
        risk += 0.1  # multiple border crossings

    return clamp(risk)


def calculate_overall_risk(factors: Mapping[str, float]) -> float:
    """Weighted mean over the factors present, normalized by their weights."""
    weighted_sum = 0.0
    total_weight = 0.0
    for factor, value in factors.items():
        weight = FACTOR_WEIGHTS.get(factor)
        if weight and value is not None:
            weighted_sum += value * weight
            total_weight += weight

    if total_weight == 0:
        return 0.0
    return clamp(weighted_sum / total_weight)


def generate_recommendations(factors: Mapping[str, float]) -> List[str]:
    recommendations = [
        advisory
        for factor, threshold, advisory in ADVISORY_RULES
        if factors.get(factor, 0.0) > threshold
    ]
    return recommendations or [ACCEPTABLE_RISK_ADVISORY]


def classify_risk_level(average_risk: float) -> RiskLevelEnum:
    if average_risk < RISK_THRESHOLDS["low"]:
        return RiskLevelEnum.LOW
    if average_risk < RISK_THRESHOLDS["medium"]:
        return RiskLevelEnum.MEDIUM
    if average_risk < RISK_THRESHOLDS["high"]:
        return RiskLevelEnum.HIGH
    return RiskLevelEnum.CRITICAL


def summarize_assessments(assessments: List[RiskAssessment]) -> RiskSummary:
    total = len(assessments)
    average_risk = sum(a.overall_risk for a in assessments) / total if total else 0.0
    return RiskSummary(
        average_risk=average_risk,
        risk_level=classify_risk_level(average_risk),
        high_risk_shipments=len([a for a in assessments if a.overall_risk > RISK_THRESHOLDS["high"]]),
        total_shipments=total
    )


class RiskAssessmentAgent:
    """
    Risk Assessment Agent - Scores shipments against collected signals.

    Responsibilities:
    - Weather, geopolitical, technical, congestion and customs scoring
    - Weighted overall risk and batch risk level
    - Advisory text per triggered factor
    - Alternative route/supplier suggestions
    """

    MCP_ERROR_CODE = "RISK_ASSESSMENT_FAILED"

    def __init__(
        self,
        client: BackendClient,
        agent_id: str = "risk_assessor_001",
        locations: Optional[Iterable[Location]] = None
    ):
        self.lifecycle = AgentLifecycle(agent_id, "RiskAssessment", client)
        self.locations: Dict[str, Location] = {loc.id: loc for loc in (locations or [])}

    async def start(self):
        await self.lifecycle.start(self.get_capabilities())

    def stop(self):
        self.lifecycle.stop()

    def get_agent_info(self):
        return self.lifecycle.get_agent_info(self.get_capabilities())

    def get_capabilities(self) -> List[CapabilityDescriptor]:
        return [
            CapabilityDescriptor(
                id="multi_factor_risk_analysis",
                name="Multi-factor Risk Analysis",
                description="Score shipments on weather, geopolitical, technical, congestion and customs risk",
                input_types=["shipments", "weather_data", "news_data", "disruptions"],
                output_types=["risk_assessments", "risk_summary"],
            ),
            CapabilityDescriptor(
                id="risk_categorization",
                name="Risk Scoring and Categorization",
                description="Classify batch risk as low, medium, high or critical",
                input_types=["risk_assessments"],
                output_types=["risk_level"],
            ),
            CapabilityDescriptor(
                id="alternative_suggestions",
                name="Alternative Route and Supplier Suggestions",
                description="Suggest alternative routes and suppliers for risky shipments",
                input_types=["shipments", "locations"],
                output_types=["alternative_routes", "alternative_suppliers"],
            ),
        ]

    # ==================== Entry points ====================

    async def process(self, data: Dict[str, Any]) -> AgentResponse:
        async with self.lifecycle.activity():
            try:
                result = self.assess_batch(data or {})
                return self.lifecycle.create_response(result, 0.85)
            except Exception as e:
                logger.error("Risk assessment error", agent_id=self.lifecycle.agent_id, error=str(e))
                return self.lifecycle.create_response(
                    {"error": "Risk assessment failed", "details": str(e)},
                    0.1
                )

    async def process_mcp(self, context: Context) -> MCPResponse:
        async with self.lifecycle.activity():
            return await self.lifecycle.run_mcp(
                context,
                "risk_assessment",
                self._handle_context,
                self.MCP_ERROR_CODE,
                confidence=0.85
            )

    async def _handle_context(self, context: Context) -> Dict[str, Any]:
        payload = context.payload or {}
        if context.type == "shipment_risk_request":
            signals = self._parse_signals(payload)
            assessment = self.assess_shipment_risk(
                Shipment.model_validate(payload["shipment"]),
                signals["weather"],
                signals["news"],
                signals["disruptions"],
                signals["locations"]
            )
            return assessment.to_wire()
        return self.assess_batch(payload)

    # ==================== Scoring ====================

    def _parse_signals(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        locations = dict(self.locations)
        for raw in data.get("locations") or []:
            location = Location.model_validate(raw)
            locations[location.id] = location

        return {
            "weather": [WeatherData.model_validate(w) for w in data.get("weatherData") or []],
            "news": [NewsData.model_validate(n) for n in data.get("newsData") or []],
            "disruptions": [Disruption.model_validate(d) for d in data.get("disruptions") or []],
            "locations": locations,
        }

    def assess_batch(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Assess every shipment in ``data`` and summarize the batch.

        Shipments that fail validation are skipped and listed under
        ``invalidShipments`` by position.
        """
        signals = self._parse_signals(data)
        shipments, invalid = parse_shipments(data.get("shipments") or [])
        for entry in invalid:
            logger.warning("Skipping invalid shipment", index=entry["index"], error=entry["error"])

        assessments = [
            self.assess_shipment_risk(
                shipment,
                signals["weather"],
                signals["news"],
                signals["disruptions"],
                signals["locations"]
            )
            for shipment in shipments
        ]
        summary = summarize_assessments(assessments)

        logger.info(
            "Risk assessment completed",
            shipments=summary.total_shipments,
            average_risk=round(summary.average_risk, 4),
            risk_level=summary.risk_level.value,
            high_risk_shipments=summary.high_risk_shipments,
            invalid_shipments=len(invalid)
        )

        result = {
            "assessments": [a.to_wire() for a in assessments],
            "summary": summary.to_wire(),
            "timestamp": utc_now().isoformat(),
        }
        if invalid:
            result["invalidShipments"] = invalid
        return result

    def assess_shipment_risk(
        self,
        shipment: Shipment,
        weather_data: List[WeatherData],
        news_data: List[NewsData],
        disruptions: List[Disruption],
        locations: Mapping[str, Location] = None
    ) -> RiskAssessment:
        locations = self.locations if locations is None else locations

        factors = {
            "weather": calculate_weather_risk(shipment, weather_data),
            "geopolitical": calculate_geopolitical_risk(shipment, news_data, locations),
            "technical": calculate_technical_risk(shipment),
            "congestion": calculate_congestion_risk(shipment, disruptions),
            "customs": calculate_customs_risk(shipment),
        }

        return RiskAssessment(
            shipment_id=shipment.id,
            overall_risk=calculate_overall_risk(factors),
            factors=RiskFactors(**factors),
            recommendations=generate_recommendations(factors),
            alternative_routes=self.find_alternative_routes(shipment),
            alternative_suppliers=self.find_alternative_suppliers(shipment, locations)
        )

    def find_alternative_routes(self, shipment: Shipment) -> List[List[str]]:
        """Fixed substitution lookup; a placeholder for real route search."""
        return [
            list(ROUTE_SUBSTITUTIONS[location_id])
            for location_id in ROUTE_SUBSTITUTIONS
            if location_id in shipment.route
        ]

    def find_alternative_suppliers(
        self,
        shipment: Shipment,
        locations: Mapping[str, Location] = None
    ) -> List[str]:
        """Suppliers located in a different region from the current one."""
        locations = self.locations if locations is None else locations
        current = locations.get(shipment.supplier)
        if current is None:
            return []

        return [
            location.id
            for location in locations.values()
            if location.type == "supplier"
            and location.id != shipment.supplier
            and location.region != current.region
        ]
