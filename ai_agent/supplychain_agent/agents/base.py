"""
Agent Lifecycle Contract

Every agent implements the ``Agent`` protocol (process, process_mcp,
get_capabilities) and holds an ``AgentLifecycle`` that owns its
start/stop state, backend registration, response construction and the
shared MCP processing flow.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
import structlog

from supplychain_agent.config import settings
from supplychain_agent.mcp.client import BackendClient, BackendError
from supplychain_agent.mcp.context import (
    AgentInfo,
    CapabilityDescriptor,
    Context,
    MCPError,
    MCPResponse,
    ProvenanceRecord,
    SourceType,
    add_provenance,
    create_context,
    create_response,
)
from supplychain_agent.schemas import AgentResponse, utc_now

logger = structlog.get_logger()


class AgentState(str, Enum):
    """Lifecycle states an agent can be in."""
    INACTIVE = "inactive"
    ACTIVE = "active"


class AgentStatus(str, Enum):
    """Status reported to the orchestrator registry."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    BUSY = "busy"
    ERROR = "error"


class Agent(Protocol):
    """Capability interface the orchestrator dispatches against."""

    lifecycle: "AgentLifecycle"

    async def process(self, data: Dict[str, Any]) -> AgentResponse:
        ...

    async def process_mcp(self, context: Context) -> MCPResponse:
        ...

    def get_capabilities(self) -> List[CapabilityDescriptor]:
        ...


def elapsed_ms(start_time: datetime) -> int:
    return int((utc_now() - start_time).total_seconds() * 1000)


class AgentLifecycle:
    """
    Lifecycle state and shared behaviour for one agent instance.

    Provides:
    - inactive/active state with best-effort backend registration
    - AgentResponse and MCP context construction
    - the start → handle → result → sync flow for ``process_mcp``
    """

    def __init__(
        self,
        agent_id: str,
        agent_type: str,
        client: BackendClient,
        version: str = None
    ):
        self.agent_id = agent_id
        self.agent_type = agent_type
        self.version = version or settings.agent_version
        self.client = client
        self.state = AgentState.INACTIVE
        self.last_activity: Optional[datetime] = None
        self._in_flight = 0

    @property
    def is_active(self) -> bool:
        return self.state == AgentState.ACTIVE

    @property
    def status(self) -> AgentStatus:
        if not self.is_active:
            return AgentStatus.INACTIVE
        if self._in_flight > 0:
            return AgentStatus.BUSY
        return AgentStatus.ACTIVE

    def get_agent_info(self, capabilities: List[CapabilityDescriptor]) -> AgentInfo:
        return AgentInfo(
            id=self.agent_id,
            type=self.agent_type,
            version=self.version,
            status=self.status.value,
            capabilities=capabilities,
            last_activity=self.last_activity or utc_now()
        )

    async def start(self, capabilities: List[CapabilityDescriptor]):
        """Activate the agent, then register it with the backend.

        Registration failure is logged and does not undo activation.
        """
        self.state = AgentState.ACTIVE
        logger.info("Agent started", agent_id=self.agent_id, agent_type=self.agent_type)

        try:
            await self.client.register_agent(self.get_agent_info(capabilities))
            logger.info("Agent registered with backend", agent_id=self.agent_id)
        except BackendError as e:
            logger.error(
                "Failed to register agent",
                agent_id=self.agent_id,
                error=str(e)
            )

    def stop(self):
        self.state = AgentState.INACTIVE
        logger.info("Agent stopped", agent_id=self.agent_id, agent_type=self.agent_type)

    @asynccontextmanager
    async def activity(self):
        """Mark the agent busy for the duration of one invocation."""
        self._in_flight += 1
        self.last_activity = utc_now()
        try:
            yield
        finally:
            self._in_flight -= 1

    def create_response(self, data: Any, confidence: float = 0.8) -> AgentResponse:
        return AgentResponse(
            agent_id=self.agent_id,
            agent_type=self.agent_type,
            timestamp=utc_now(),
            data=data,
            confidence=confidence
        )

    def create_context(
        self,
        context_type: str,
        payload: Any,
        operation: str,
        parent_context_id: Optional[str] = None
    ) -> Context:
        return create_context(
            context_type,
            payload,
            source=self.agent_id,
            source_type=SourceType.AGENT,
            operation=operation,
            agent_id=self.agent_id,
            agent_type=self.agent_type,
            parent_context_id=parent_context_id
        )

    def add_provenance(
        self,
        context: Context,
        operation: str,
        confidence: Optional[float] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Context:
        return add_provenance(
            context,
            ProvenanceRecord(
                source=self.agent_id,
                source_type=SourceType.AGENT,
                timestamp=utc_now(),
                agent_id=self.agent_id,
                agent_type=self.agent_type,
                operation=operation,
                confidence=confidence,
                metadata=metadata
            )
        )

    async def send_to_backend(self, context: Context) -> Any:
        return await self.client.send_to_backend(context)

    async def run_mcp(
        self,
        context: Context,
        operation: str,
        handler: Callable[[Context], Awaitable[Any]],
        error_code: str,
        confidence: Optional[float] = None
    ) -> MCPResponse:
        """
        Shared ``process_mcp`` flow.

        Tags the incoming context with ``<operation>_start``, runs the
        handler, wraps its payload in a result context linked to the
        incoming one and syncs it to the backend. Every failure path still
        returns a context carrying an error provenance entry.
        """
        start_time = utc_now()
        started = self.add_provenance(context, f"{operation}_start")

        try:
            payload = await handler(started)
        except Exception as e:
            logger.error(
                "MCP processing failed",
                agent_id=self.agent_id,
                context_id=context.id,
                context_type=context.type,
                error=str(e)
            )
            error_context = self.add_provenance(
                started,
                f"{operation}_error",
                metadata={"error": str(e)}
            )
            return create_response(
                error_context,
                success=False,
                error=MCPError(
                    code=error_code,
                    message=str(e) or "Unknown error",
                    details={"exception": type(e).__name__}
                ),
                execution_time=elapsed_ms(start_time)
            )

        result_context = self.create_context(
            f"{context.type}_result",
            payload,
            f"{operation}_complete",
            parent_context_id=context.id
        )
        if confidence is not None:
            result_context = self.add_provenance(
                result_context, f"{operation}_scored", confidence=confidence
            )

        try:
            await self.send_to_backend(result_context)
        except BackendError as e:
            error_context = self.add_provenance(
                result_context,
                "backend_sync_error",
                metadata={"error": str(e)}
            )
            return create_response(
                error_context,
                success=False,
                error=MCPError(
                    code="BACKEND_SYNC_FAILED",
                    message=str(e),
                    details={"status": e.status, "url": e.url}
                ),
                execution_time=elapsed_ms(start_time)
            )

        return create_response(
            result_context,
            success=True,
            execution_time=elapsed_ms(start_time)
        )
