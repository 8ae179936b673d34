"""
Pydantic Schemas for Agent Inputs and Outputs

Field names are snake_case in Python; the camelCase aliases are what the
backend and orchestrator exchange on the wire.
"""
from pydantic import BaseModel, Field, ValidationError
from typing import Optional, List, Dict, Any, Iterable, Tuple
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base for models serialized with camelCase aliases.

    The backend issues numeric ids; string fields accept them as text.
    """

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ==================== Enums ====================

class RiskLevelEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ActionPriorityEnum(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ==================== Supply Chain Inputs ====================

class Location(WireModel):
    id: str
    name: str = ""
    type: str = "port"  # port | supplier | customer | warehouse
    country: str = ""
    region: str = ""


class Cargo(WireModel):
    type: str = "General"
    weight: float = 0
    value: float = 0
    priority: str = "medium"


class Vessel(WireModel):
    name: str = ""
    type: str = "ship"
    capacity: Optional[float] = None


class Shipment(WireModel):
    id: str
    origin: str = ""
    destination: str = ""
    supplier: str = ""
    status: str = "in_transit"
    cargo: Cargo = Field(default_factory=Cargo)
    route: List[str] = Field(default_factory=list)
    vessel: Vessel = Field(default_factory=Vessel)
    risk_score: Optional[float] = Field(default=None, alias="riskScore")


def parse_shipments(raw_shipments: Iterable[Any]) -> Tuple[List[Shipment], List[Dict[str, Any]]]:
    """Validate shipments one by one; failures come back as ``{index, error}``."""
    shipments: List[Shipment] = []
    invalid: List[Dict[str, Any]] = []
    for index, raw in enumerate(raw_shipments):
        try:
            shipments.append(Shipment.model_validate(raw))
        except ValidationError as e:
            invalid.append({"index": index, "error": str(e)})
    return shipments, invalid


class WeatherData(WireModel):
    location: str
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = Field(default=None, alias="windSpeed")
    conditions: str = ""
    visibility: Optional[float] = None
    risk_level: str = Field(default="low", alias="riskLevel")
    timestamp: Optional[datetime] = None


class NewsData(WireModel):
    id: Optional[str] = None
    title: str = ""
    summary: Optional[str] = None
    source: Optional[str] = None
    location: Optional[str] = None
    region: Optional[str] = None
    category: Optional[str] = None
    risk_level: str = Field(default="low", alias="riskLevel")
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    relevance_score: Optional[float] = Field(default=None, alias="relevanceScore")
    sentiment: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    geopolitical_risk: Optional[str] = Field(default=None, alias="geopoliticalRisk")


class Disruption(WireModel):
    id: Optional[str] = None
    type: str
    severity: str = "low"
    description: str = ""
    location: str = ""
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")


# ==================== Risk Assessment ====================

class RiskFactors(WireModel):
    weather: float = Field(ge=0, le=1)
    geopolitical: float = Field(ge=0, le=1)
    technical: float = Field(ge=0, le=1)
    congestion: float = Field(ge=0, le=1)
    customs: float = Field(ge=0, le=1)


class RiskAssessment(WireModel):
    shipment_id: str = Field(alias="shipmentId")
    overall_risk: float = Field(ge=0, le=1, alias="overallRisk")
    factors: RiskFactors
    recommendations: List[str] = Field(default_factory=list)
    alternative_routes: List[List[str]] = Field(default_factory=list, alias="alternativeRoutes")
    alternative_suppliers: List[str] = Field(default_factory=list, alias="alternativeSuppliers")


class RiskSummary(WireModel):
    average_risk: float = Field(alias="averageRisk")
    risk_level: RiskLevelEnum = Field(alias="riskLevel")
    high_risk_shipments: int = Field(alias="highRiskShipments")
    total_shipments: int = Field(alias="totalShipments")


# ==================== Recommendations ====================

class Action(WireModel):
    type: str
    priority: ActionPriorityEnum
    action: str
    description: str
    timeframe: str
    responsible: str
    estimated_cost: float = Field(alias="estimatedCost")
    expected_savings: Optional[float] = Field(default=None, alias="expectedSavings")
    shipment_id: Optional[str] = Field(default=None, alias="shipmentId")
    roi: Optional[str] = None
    expected_benefits: Optional[List[str]] = Field(default=None, alias="expectedBenefits")


class RecommendationBuckets(WireModel):
    immediate: List[Action] = Field(default_factory=list)
    short_term: List[Action] = Field(default_factory=list, alias="shortTerm")
    long_term: List[Action] = Field(default_factory=list, alias="longTerm")
    strategic: List[Action] = Field(default_factory=list)

    def all_actions(self) -> List[Action]:
        return [*self.immediate, *self.short_term, *self.long_term, *self.strategic]


class ImplementationPhase(WireModel):
    name: str
    actions: List[Action]
    resources: List[str]
    success_metrics: List[str] = Field(alias="successMetrics")


class ImplementationPlan(WireModel):
    phase1: ImplementationPhase
    phase2: ImplementationPhase
    phase3: ImplementationPhase


class CostBuckets(WireModel):
    low_cost: List[Action] = Field(default_factory=list, alias="lowCost")
    medium_cost: List[Action] = Field(default_factory=list, alias="mediumCost")
    high_cost: List[Action] = Field(default_factory=list, alias="highCost")


class PriorityMatrix(WireModel):
    high_impact: CostBuckets = Field(default_factory=CostBuckets, alias="highImpact")
    medium_impact: CostBuckets = Field(default_factory=CostBuckets, alias="mediumImpact")
    low_impact: CostBuckets = Field(default_factory=CostBuckets, alias="lowImpact")


class RecommendationSummary(WireModel):
    total_recommendations: int = Field(alias="totalRecommendations")
    total_cost: float = Field(alias="totalCost")
    total_savings: float = Field(alias="totalSavings")
    net_benefit: float = Field(alias="netBenefit")
    roi: str = "N/A"  # "x.x%" or "N/A" when nothing is spent
    roi_percent: Optional[float] = Field(default=None, alias="roiPercent")
    priority_breakdown: Dict[str, int] = Field(alias="priorityBreakdown")
    priority_totals: Dict[str, int] = Field(default_factory=dict, alias="priorityTotals")


class RecommendationSet(WireModel):
    recommendations: RecommendationBuckets
    implementation: ImplementationPlan
    summary: RecommendationSummary
    priority_matrix: PriorityMatrix = Field(alias="priorityMatrix")
    expected_outcomes: Dict[str, str] = Field(alias="expectedOutcomes")
    timestamp: datetime = Field(default_factory=utc_now)


# ==================== Agent Envelopes ====================

class AgentResponse(WireModel):
    """Legacy, schema-free agent output envelope."""
    agent_id: str = Field(alias="agentId")
    agent_type: str = Field(alias="agentType")
    timestamp: datetime = Field(default_factory=utc_now)
    data: Any = None
    confidence: float = Field(ge=0, le=1)
