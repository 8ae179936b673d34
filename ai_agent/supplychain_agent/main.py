"""
Supply Chain Agent - command line entry point

Runs one full risk assessment pass against the configured backend and
prints the result as JSON.
"""
import asyncio
import json
import logging
import sys

import structlog

from supplychain_agent.config import settings
from supplychain_agent.agents import (
    DataCollectorAgent,
    RiskAssessmentAgent,
    StrategyRecommenderAgent,
)
from supplychain_agent.mcp.client import BackendClient
from supplychain_agent.pipeline import run_full_risk_assessment


def configure_logging():
    """Configure structured logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


async def run() -> dict:
    logger = structlog.get_logger()
    logger.info(
        "Starting supply chain agents",
        app=settings.app_name,
        version=settings.app_version,
        backend=settings.backend_url
    )

    async with BackendClient.from_settings(settings) as client:
        collector = DataCollectorAgent(client)
        assessor = RiskAssessmentAgent(client)
        recommender = StrategyRecommenderAgent(client)
        agents = [collector, assessor, recommender]

        for agent in agents:
            await agent.start()

        try:
            return await run_full_risk_assessment(collector, assessor, recommender)
        finally:
            for agent in agents:
                agent.stop()
            logger.info("Supply chain agents stopped")


def main():
    configure_logging()
    result = asyncio.run(run())
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
