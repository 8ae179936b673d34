"""
Full risk assessment pipeline: Collect → Assess → Recommend.

Workflow selection and run history belong to the orchestrator; this
module only chains the three agents for the standard data flow.
"""
from typing import Dict, Any, List, Optional
import structlog

from supplychain_agent.agents.data_collector_agent import DataCollectorAgent
from supplychain_agent.agents.risk_assessment_agent import RiskAssessmentAgent
from supplychain_agent.agents.strategy_recommender_agent import StrategyRecommenderAgent

logger = structlog.get_logger()


def congestion_disruptions(congestion: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Express congested ports as congestion disruptions for risk scoring."""
    return [
        {
            "id": f"congestion_{entry['portId']}",
            "type": "congestion",
            "severity": entry.get("congestionLevel", "medium"),
            "location": str(entry["portId"]),
            "description": f"Port congestion at {entry.get('portName') or entry['portId']}",
        }
        for entry in congestion
        if entry.get("portId") is not None
    ]


async def run_full_risk_assessment(
    collector: DataCollectorAgent,
    assessor: RiskAssessmentAgent,
    recommender: StrategyRecommenderAgent,
    input_data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Run one collection, assessment and recommendation pass.

    ``input_data`` may override ``shipments``, ``disruptions`` and
    ``locations`` and carry ``currentPerformance`` / ``optimizationGoals``.
    """
    input_data = input_data or {}
    logger.info("Executing full risk assessment workflow")

    collected = await collector.process({})
    collected_data = collected.data or {}
    supply_chain = collected_data.get("supplyChain") or {}

    shipments = input_data.get("shipments") or supply_chain.get("shipments") or []
    disruptions = input_data.get("disruptions")
    if disruptions is None:
        disruptions = congestion_disruptions(collected_data.get("congestion") or [])

    risk_response = await assessor.process({
        "shipments": shipments,
        "weatherData": collected_data.get("weather") or [],
        "newsData": collected_data.get("news") or [],
        "disruptions": disruptions,
        "locations": input_data.get("locations") or [],
    })
    risk_data = risk_response.data or {}

    recommendation_response = await recommender.process({
        "shipments": shipments,
        "riskAssessments": risk_data.get("assessments") or [],
        "simulationResults": [],
        "currentPerformance": input_data.get("currentPerformance") or {},
        "optimizationGoals": input_data.get("optimizationGoals") or {},
        "locations": input_data.get("locations") or [],
    })
    recommendation_data = recommendation_response.data or {}

    risk_summary = risk_data.get("summary") or {}
    recommendation_summary = recommendation_data.get("summary") or {}

    return {
        "dataCollection": collected_data,
        "riskAssessments": risk_data,
        "strategicRecommendations": recommendation_data,
        "summary": {
            "totalShipments": len(shipments),
            "highRiskShipments": risk_summary.get("highRiskShipments", 0),
            "overallRiskLevel": risk_summary.get("riskLevel"),
            "totalRecommendations": recommendation_summary.get("totalRecommendations", 0),
            "confidence": min(
                collected.confidence,
                risk_response.confidence,
                recommendation_response.confidence
            ),
        },
    }
