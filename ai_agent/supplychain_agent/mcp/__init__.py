"""
MCP (Model Context Protocol) support: provenance-tagged context envelopes
and the backend client that stores them.
"""

from supplychain_agent.mcp.context import (
    AgentInfo,
    CapabilityDescriptor,
    Context,
    ContextMetadata,
    MCPError,
    MCPResponse,
    ProvenanceRecord,
    SourceType,
    add_provenance,
    compute_hash,
    create_context,
    create_response,
    verify_input_hash,
)
from supplychain_agent.mcp.client import BackendClient, BackendError

__all__ = [
    "AgentInfo",
    "BackendClient",
    "BackendError",
    "CapabilityDescriptor",
    "Context",
    "ContextMetadata",
    "MCPError",
    "MCPResponse",
    "ProvenanceRecord",
    "SourceType",
    "add_provenance",
    "compute_hash",
    "create_context",
    "create_response",
    "verify_input_hash",
]
