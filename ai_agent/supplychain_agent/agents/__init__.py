"""
Supply Chain Risk Agents

Agents:
- Data Collector: Snapshots weather, news, congestion and supply chain data
- Risk Assessment: Scores shipments on five weighted risk factors
- Strategy Recommender: Builds horizon-bucketed, costed mitigation plans

Workflow: Collect → Assess → Recommend
"""

from supplychain_agent.agents.base import Agent, AgentLifecycle, AgentState, AgentStatus
from supplychain_agent.agents.data_collector_agent import DataCollectorAgent
from supplychain_agent.agents.risk_assessment_agent import RiskAssessmentAgent
from supplychain_agent.agents.strategy_recommender_agent import StrategyRecommenderAgent

__all__ = [
    # Lifecycle
    "Agent",
    "AgentLifecycle",
    "AgentState",
    "AgentStatus",
    # Agents
    "DataCollectorAgent",
    "RiskAssessmentAgent",
    "StrategyRecommenderAgent",
]
