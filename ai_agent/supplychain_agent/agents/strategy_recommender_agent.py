"""
Strategy Recommender Agent

Turns risk assessments into prioritized, costed action plans bucketed by
time horizon, with an implementation plan, a 3x3 impact/cost priority
matrix and a cost/benefit summary.
"""
from typing import Dict, Any, List, Mapping, Optional
from collections import Counter
import copy
import structlog

from supplychain_agent.agents.base import AgentLifecycle
from supplychain_agent.mcp.client import BackendClient
from supplychain_agent.mcp.context import CapabilityDescriptor, Context, MCPResponse
from supplychain_agent.schemas import (
    Action,
    ActionPriorityEnum,
    AgentResponse,
    CostBuckets,
    ImplementationPhase,
    ImplementationPlan,
    Location,
    PriorityMatrix,
    RecommendationBuckets,
    RecommendationSet,
    RecommendationSummary,
    RiskAssessment,
    Shipment,
    parse_shipments,
)

logger = structlog.get_logger()


CRITICAL_RISK_THRESHOLD = 0.7
WEATHER_REROUTE_THRESHOLD = 0.6
SUPPLIER_DEPENDENCY_THRESHOLD = 2  # shipments per supplier

LOW_COST_LIMIT = 10000
MEDIUM_COST_LIMIT = 50000

STRATEGY_CATALOG: Dict[str, Dict[str, Any]] = {
    "route_optimization": {
        "name": "Route Optimization",
        "description": "Optimize shipping routes for cost, time, and risk reduction",
        "priority": "high",
        "implementationTime": "2-4 weeks",
        "expectedBenefits": ["15-25% cost reduction", "10-20% time savings", "Risk reduction"],
    },
    "supplier_diversification": {
        "name": "Supplier Diversification",
        "description": "Reduce dependency on single suppliers and regions",
        "priority": "high",
        "implementationTime": "3-6 months",
        "expectedBenefits": ["Risk mitigation", "Better pricing", "Improved reliability"],
    },
    "inventory_optimization": {
        "name": "Inventory Optimization",
        "description": "Optimize inventory levels based on demand and supply chain risks",
        "priority": "medium",
        "implementationTime": "1-3 months",
        "expectedBenefits": ["Reduced holding costs", "Improved cash flow", "Better responsiveness"],
    },
    "technology_adoption": {
        "name": "Technology Adoption",
        "description": "Implement advanced tracking and analytics technologies",
        "priority": "medium",
        "implementationTime": "6-12 months",
        "expectedBenefits": ["Real-time visibility", "Better decision making", "Automated alerts"],
    },
}

LONG_TERM_CATALOG = [
    Action(
        type="technology_investment",
        priority=ActionPriorityEnum.MEDIUM,
        action="Implement advanced tracking system",
        description="Deploy real-time shipment tracking and predictive analytics platform.",
        timeframe="6-12 months",
        responsible="IT Director",
        estimated_cost=50000,
        expected_savings=15000,
        roi="30%",
    ),
    Action(
        type="infrastructure_improvement",
        priority=ActionPriorityEnum.LOW,
        action="Port partnership development",
        description="Establish strategic partnerships with alternative ports to reduce dependency.",
        timeframe="6-12 months",
        responsible="Business Development",
        estimated_cost=10000,
        expected_savings=8000,
        roi="80%",
    ),
    Action(
        type="process_improvement",
        priority=ActionPriorityEnum.MEDIUM,
        action="Standardize risk assessment procedures",
        description="Develop standardized risk assessment and mitigation procedures across all shipments.",
        timeframe="3-6 months",
        responsible="Process Manager",
        estimated_cost=15000,
        expected_savings=12000,
        roi="80%",
    ),
]

STRATEGIC_CATALOG = [
    Action(
        type="strategic_initiative",
        priority=ActionPriorityEnum.LOW,
        action="Geographic market expansion",
        description="Explore opportunities in new geographic markets to reduce regional concentration risk.",
        timeframe="12-24 months",
        responsible="Strategic Planning",
        estimated_cost=100000,
        expected_benefits=["Risk diversification", "Market growth", "Competitive advantage"],
        roi="25%",
    ),
    Action(
        type="strategic_initiative",
        priority=ActionPriorityEnum.MEDIUM,
        action="Strategic partnership development",
        description="Develop strategic partnerships with logistics providers and technology companies.",
        timeframe="6-18 months",
        responsible="Partnership Manager",
        estimated_cost=25000,
        expected_benefits=["Cost reduction", "Technology access", "Market expansion"],
        roi="40%",
    ),
]

EXPECTED_OUTCOMES = {
    "riskReduction": "15-25%",
    "costSavings": "20-30%",
    "timeSavings": "10-20%",
    "reliabilityImprovement": "25-35%",
    "competitiveAdvantage": "Significant",
    "marketExpansion": "2-3 new regions",
}


def impact_bucket(action: Action) -> str:
    if action.priority in (ActionPriorityEnum.CRITICAL, ActionPriorityEnum.HIGH):
        return "high_impact"
    if action.priority == ActionPriorityEnum.MEDIUM:
        return "medium_impact"
    return "low_impact"


def cost_bucket(cost: float) -> str:
    if cost < LOW_COST_LIMIT:
        return "low_cost"
    if cost < MEDIUM_COST_LIMIT:
        return "medium_cost"
    return "high_cost"


def create_priority_matrix(buckets: RecommendationBuckets) -> PriorityMatrix:
    matrix = PriorityMatrix(
        high_impact=CostBuckets(),
        medium_impact=CostBuckets(),
        low_impact=CostBuckets()
    )
    for action in buckets.all_actions():
        row: CostBuckets = getattr(matrix, impact_bucket(action))
        getattr(row, cost_bucket(action.estimated_cost)).append(action)
    return matrix


def summarize_recommendations(buckets: RecommendationBuckets) -> RecommendationSummary:
    """
    Cost/benefit summary.

    ``priorityBreakdown`` counts each priority in its home horizon
    (critical/high in immediate, medium in short term, low in long term);
    ``priorityTotals`` counts every action regardless of bucket.
    """
    actions = buckets.all_actions()
    total_cost = sum(a.estimated_cost for a in actions)
    total_savings = sum(a.expected_savings or 0 for a in actions)
    net_benefit = total_savings - total_cost
    roi_percent = round(net_benefit / total_cost * 100, 1) if total_cost > 0 else None

    def count(bucket: List[Action], priority: ActionPriorityEnum) -> int:
        return len([a for a in bucket if a.priority == priority])

    totals = Counter(a.priority.value for a in actions)

    return RecommendationSummary(
        total_recommendations=len(actions),
        total_cost=total_cost,
        total_savings=total_savings,
        net_benefit=net_benefit,
        roi=f"{roi_percent:.1f}%" if roi_percent is not None else "N/A",
        roi_percent=roi_percent,
        priority_breakdown={
            "critical": count(buckets.immediate, ActionPriorityEnum.CRITICAL),
            "high": count(buckets.immediate, ActionPriorityEnum.HIGH),
            "medium": count(buckets.short_term, ActionPriorityEnum.MEDIUM),
            "low": count(buckets.long_term, ActionPriorityEnum.LOW),
        },
        priority_totals={p.value: totals.get(p.value, 0) for p in ActionPriorityEnum}
    )


def create_implementation_plan(buckets: RecommendationBuckets) -> ImplementationPlan:
    return ImplementationPlan(
        phase1=ImplementationPhase(
            name="Immediate Actions (0-30 days)",
            actions=buckets.immediate,
            resources=["Emergency response team", "Contingency budget"],
            success_metrics=["Risk reduction", "Incident response time"]
        ),
        phase2=ImplementationPhase(
            name="Short-term Improvements (1-6 months)",
            actions=buckets.short_term,
            resources=["Project teams", "Implementation budget"],
            success_metrics=["Cost savings", "Process efficiency"]
        ),
        phase3=ImplementationPhase(
            name="Long-term Strategic (6-24 months)",
            actions=[*buckets.long_term, *buckets.strategic],
            resources=["Strategic planning team", "Capital investment"],
            success_metrics=["ROI", "Market position", "Risk diversification"]
        ),
    )


class StrategyRecommenderAgent:
    """
    Strategy Recommender Agent - Last hop of the risk pipeline.

    Responsibilities:
    - Immediate contingency and reroute actions for risky shipments
    - Short-term route, supplier and inventory actions
    - Long-term and strategic catalog items
    - Implementation plan, priority matrix and cost/benefit summary
    """

    MCP_ERROR_CODE = "STRATEGY_RECOMMENDATION_FAILED"

    def __init__(
        self,
        client: BackendClient,
        agent_id: str = "strategy_recommender_001",
        locations: Optional[List[Location]] = None
    ):
        self.lifecycle = AgentLifecycle(agent_id, "StrategyRecommender", client)
        self.locations: Dict[str, Location] = {loc.id: loc for loc in (locations or [])}
        self.strategies = copy.deepcopy(STRATEGY_CATALOG)

    async def start(self):
        await self.lifecycle.start(self.get_capabilities())

    def stop(self):
        self.lifecycle.stop()

    def get_agent_info(self):
        return self.lifecycle.get_agent_info(self.get_capabilities())

    def get_capabilities(self) -> List[CapabilityDescriptor]:
        return [
            CapabilityDescriptor(
                id="mitigation_planning",
                name="Risk Mitigation Planning",
                description="Generate horizon-bucketed mitigation actions from risk assessments",
                input_types=["risk_assessments", "shipments"],
                output_types=["recommendations"],
            ),
            CapabilityDescriptor(
                id="implementation_planning",
                name="Implementation Planning",
                description="Group recommendations into phased implementation plans",
                input_types=["recommendations"],
                output_types=["implementation_plan"],
            ),
            CapabilityDescriptor(
                id="cost_benefit_prioritization",
                name="Cost/Benefit Prioritization",
                description="Build impact/cost priority matrix and ROI summary",
                input_types=["recommendations"],
                output_types=["priority_matrix", "recommendation_summary"],
            ),
        ]

    def get_available_strategies(self) -> List[str]:
        return list(self.strategies.keys())

    def get_strategy_details(self, strategy_id: str) -> Optional[Dict[str, Any]]:
        details = self.strategies.get(strategy_id)
        return copy.deepcopy(details) if details is not None else None

    # ==================== Entry points ====================

    async def process(self, data: Dict[str, Any]) -> AgentResponse:
        async with self.lifecycle.activity():
            try:
                recommendation_set = self.generate_recommendations(data or {})
                return self.lifecycle.create_response(recommendation_set.to_wire(), 0.9)
            except Exception as e:
                logger.error(
                    "Strategy recommendation error",
                    agent_id=self.lifecycle.agent_id,
                    error=str(e)
                )
                return self.lifecycle.create_response(
                    {"error": "Strategy recommendation failed", "details": str(e)},
                    0.1
                )

    async def process_mcp(self, context: Context) -> MCPResponse:
        async with self.lifecycle.activity():
            return await self.lifecycle.run_mcp(
                context,
                "strategy_recommendation",
                self._handle_context,
                self.MCP_ERROR_CODE,
                confidence=0.9
            )

    async def _handle_context(self, context: Context) -> Dict[str, Any]:
        recommendation_set = self.generate_recommendations(context.payload or {})
        if context.type == "implementation_plan_request":
            return recommendation_set.implementation.to_wire()
        return recommendation_set.to_wire()

    # ==================== Synthesis ====================

    def generate_recommendations(self, data: Mapping[str, Any]) -> RecommendationSet:
        """
        Build the full recommendation set.

        ``data`` carries ``shipments``, ``riskAssessments`` and optionally
        ``simulationResults``, ``currentPerformance``, ``optimizationGoals``
        and ``locations``.
        """
        shipments, invalid = parse_shipments(data.get("shipments") or [])
        for entry in invalid:
            logger.warning("Skipping invalid shipment", index=entry["index"], error=entry["error"])
        assessments = [
            RiskAssessment.model_validate(a) for a in data.get("riskAssessments") or []
        ]
        locations = dict(self.locations)
        for raw in data.get("locations") or []:
            location = Location.model_validate(raw)
            locations[location.id] = location

        buckets = RecommendationBuckets(
            immediate=self.generate_immediate_actions(assessments),
            short_term=self.generate_short_term_actions(shipments, assessments, locations),
            long_term=self.generate_long_term_actions(),
            strategic=self.generate_strategic_actions(data.get("optimizationGoals") or {})
        )

        recommendation_set = RecommendationSet(
            recommendations=buckets,
            implementation=create_implementation_plan(buckets),
            summary=summarize_recommendations(buckets),
            priority_matrix=create_priority_matrix(buckets),
            expected_outcomes=dict(EXPECTED_OUTCOMES)
        )

        logger.info(
            "Recommendations generated",
            immediate=len(buckets.immediate),
            short_term=len(buckets.short_term),
            long_term=len(buckets.long_term),
            strategic=len(buckets.strategic),
            net_benefit=recommendation_set.summary.net_benefit
        )
        return recommendation_set

    def generate_immediate_actions(self, assessments: List[RiskAssessment]) -> List[Action]:
        actions = []

        for assessment in assessments:
            if assessment.overall_risk > CRITICAL_RISK_THRESHOLD:
                actions.append(Action(
                    type="immediate_action",
                    priority=ActionPriorityEnum.CRITICAL,
                    shipment_id=assessment.shipment_id,
                    action="Implement contingency plan immediately",
                    description=(
                        f"Shipment {assessment.shipment_id} has high risk "
                        f"({assessment.overall_risk * 100:.1f}%). Activate emergency protocols."
                    ),
                    timeframe="Within 24 hours",
                    responsible="Supply Chain Manager",
                    estimated_cost=5000
                ))

        for assessment in assessments:
            if assessment.factors.weather > WEATHER_REROUTE_THRESHOLD:
                actions.append(Action(
                    type="immediate_action",
                    priority=ActionPriorityEnum.HIGH,
                    shipment_id=assessment.shipment_id,
                    action="Reroute to avoid adverse weather",
                    description=(
                        f"Weather risk detected for shipment {assessment.shipment_id}. "
                        "Consider alternative routes."
                    ),
                    timeframe="Within 12 hours",
                    responsible="Logistics Coordinator",
                    estimated_cost=2000
                ))

        return actions

    def generate_short_term_actions(
        self,
        shipments: List[Shipment],
        assessments: List[RiskAssessment],
        locations: Mapping[str, Location] = None
    ) -> List[Action]:
        actions = []

        for assessment in assessments:
            if assessment.alternative_routes:
                actions.append(Action(
                    type="route_optimization",
                    priority=ActionPriorityEnum.MEDIUM,
                    shipment_id=assessment.shipment_id,
                    action="Evaluate alternative routes",
                    description=(
                        f"Shipment {assessment.shipment_id} has "
                        f"{len(assessment.alternative_routes)} alternative routes available."
                    ),
                    timeframe="1-2 weeks",
                    responsible="Route Planner",
                    estimated_cost=1000,
                    expected_savings=3000
                ))

        actions.extend(self.analyze_supplier_diversification(shipments, locations))

        actions.append(Action(
            type="inventory_optimization",
            priority=ActionPriorityEnum.MEDIUM,
            action="Review safety stock levels",
            description="Analyze current inventory levels and adjust safety stock based on risk assessments.",
            timeframe="2-4 weeks",
            responsible="Inventory Manager",
            estimated_cost=2000,
            expected_savings=5000
        ))

        return actions

    def analyze_supplier_diversification(
        self,
        shipments: List[Shipment],
        locations: Mapping[str, Location] = None
    ) -> List[Action]:
        """One action per supplier used by more than two shipments."""
        locations = self.locations if locations is None else locations
        usage = Counter(s.supplier for s in shipments if s.supplier)

        actions = []
        for supplier_id, count in usage.items():
            if count <= SUPPLIER_DEPENDENCY_THRESHOLD:
                continue
            supplier = locations.get(supplier_id)
            supplier_name = supplier.name if supplier and supplier.name else supplier_id
            actions.append(Action(
                type="supplier_diversification",
                priority=ActionPriorityEnum.MEDIUM,
                action="Reduce dependency on single supplier",
                description=f"Supplier {supplier_name} is used for {count} shipments. Consider alternatives.",
                timeframe="2-4 months",
                responsible="Sourcing Manager",
                estimated_cost=5000,
                expected_savings=8000
            ))
        return actions

    def generate_long_term_actions(self) -> List[Action]:
        return [action.model_copy(deep=True) for action in LONG_TERM_CATALOG]

    def generate_strategic_actions(self, optimization_goals: Mapping[str, Any]) -> List[Action]:
        # TODO: weight strategic items by optimization_goals once goal keys are agreed with the backend
        return [action.model_copy(deep=True) for action in STRATEGIC_CATALOG]
