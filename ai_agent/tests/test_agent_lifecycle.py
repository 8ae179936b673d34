"""
Tests for the shared agent lifecycle and MCP processing flow.
"""
from unittest.mock import AsyncMock

import pytest

from supplychain_agent.agents.base import AgentLifecycle, AgentState, AgentStatus
from supplychain_agent.mcp.client import BackendError
from supplychain_agent.mcp.context import SourceType, create_context


@pytest.fixture
def lifecycle(mock_client):
    return AgentLifecycle("test_agent_001", "TestAgent", mock_client, version="2.0.0")


@pytest.fixture
def request_context():
    return create_context(
        "weather_request",
        {"locations": ["port_shanghai"]},
        source="orchestrator",
        source_type=SourceType.SYSTEM,
        operation="dispatch",
    )


class TestLifecycleState:

    def test_starts_inactive(self, lifecycle):
        assert lifecycle.state == AgentState.INACTIVE
        assert lifecycle.status == AgentStatus.INACTIVE
        assert lifecycle.is_active is False

    @pytest.mark.asyncio
    async def test_start_registers_with_backend(self, lifecycle, mock_client):
        await lifecycle.start([])

        assert lifecycle.is_active
        mock_client.register_agent.assert_awaited_once()
        info = mock_client.register_agent.await_args.args[0]
        assert info.id == "test_agent_001"
        assert info.type == "TestAgent"
        assert info.version == "2.0.0"
        assert info.status == "active"

    @pytest.mark.asyncio
    async def test_registration_failure_keeps_agent_active(self, lifecycle, mock_client):
        mock_client.register_agent.side_effect = BackendError("POST", "http://x/mcp/agents/register", "down")

        await lifecycle.start([])

        assert lifecycle.is_active

    @pytest.mark.asyncio
    async def test_stop(self, lifecycle):
        await lifecycle.start([])
        lifecycle.stop()
        assert lifecycle.state == AgentState.INACTIVE

    @pytest.mark.asyncio
    async def test_busy_while_in_flight(self, lifecycle):
        await lifecycle.start([])

        async with lifecycle.activity():
            assert lifecycle.status == AgentStatus.BUSY
            assert lifecycle.last_activity is not None

        assert lifecycle.status == AgentStatus.ACTIVE


class TestResponses:

    def test_create_response(self, lifecycle):
        response = lifecycle.create_response({"k": "v"}, 0.85)

        wire = response.to_wire()
        assert wire["agentId"] == "test_agent_001"
        assert wire["agentType"] == "TestAgent"
        assert wire["confidence"] == 0.85
        assert wire["data"] == {"k": "v"}

    def test_default_confidence(self, lifecycle):
        assert lifecycle.create_response({}).confidence == 0.8

    def test_agent_contexts_are_tagged(self, lifecycle):
        context = lifecycle.create_context("weather_data", [], "collect")
        seed = context.provenance[0]

        assert seed.source == "test_agent_001"
        assert seed.source_type == SourceType.AGENT
        assert seed.agent_type == "TestAgent"


class TestRunMcp:

    @pytest.mark.asyncio
    async def test_success_flow(self, lifecycle, mock_client, request_context):
        handler = AsyncMock(return_value={"weather": []})

        response = await lifecycle.run_mcp(
            request_context, "data_collection", handler, "DATA_COLLECTION_FAILED", confidence=0.9
        )

        assert response.success is True
        assert response.error is None
        assert response.execution_time >= 0

        result = response.context
        assert result.type == "weather_request_result"
        assert result.payload == {"weather": []}
        assert result.relationships.parent == request_context.id
        assert [r.operation for r in result.provenance] == [
            "data_collection_complete",
            "data_collection_scored",
        ]
        assert result.provenance[-1].confidence == 0.9

        handled = handler.await_args.args[0]
        assert handled.provenance[-1].operation == "data_collection_start"
        mock_client.send_to_backend.assert_awaited_once_with(result)

    @pytest.mark.asyncio
    async def test_handler_failure(self, lifecycle, mock_client, request_context):
        handler = AsyncMock(side_effect=ValueError("bad payload"))

        response = await lifecycle.run_mcp(
            request_context, "data_collection", handler, "DATA_COLLECTION_FAILED"
        )

        assert response.success is False
        assert response.error.code == "DATA_COLLECTION_FAILED"
        assert response.error.message == "bad payload"
        assert response.error.details == {"exception": "ValueError"}
        assert response.context.id == request_context.id
        assert [r.operation for r in response.context.provenance] == [
            "dispatch",
            "data_collection_start",
            "data_collection_error",
        ]
        mock_client.send_to_backend.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backend_sync_failure(self, lifecycle, mock_client, request_context):
        mock_client.send_to_backend.side_effect = BackendError(
            "POST", "http://x/api/mcp/context", "unavailable", status=503
        )
        handler = AsyncMock(return_value={"weather": []})

        response = await lifecycle.run_mcp(
            request_context, "data_collection", handler, "DATA_COLLECTION_FAILED"
        )

        assert response.success is False
        assert response.error.code == "BACKEND_SYNC_FAILED"
        assert response.error.details == {"status": 503, "url": "http://x/api/mcp/context"}
        assert response.context.type == "weather_request_result"
        assert response.context.provenance[-1].operation == "backend_sync_error"
