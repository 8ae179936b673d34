"""
MCP Context Envelope

A context wraps an agent payload together with an append-only provenance
trail. Contexts are frozen: every transformation returns a new value.
"""
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timezone
from enum import Enum
import hashlib
import json
import uuid

import structlog
from pydantic import Field, field_validator

from supplychain_agent.schemas import WireModel, utc_now

logger = structlog.get_logger()

CONTEXT_VERSION = "1.0.0"


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the backend are treated as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SourceType(str, Enum):
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"
    EXTERNAL_API = "external_api"


class ProvenanceRecord(WireModel):
    """One audit entry describing who produced or transformed a context."""
    source: str
    source_type: SourceType = Field(alias="sourceType")
    timestamp: datetime = Field(default_factory=utc_now)
    operation: str
    agent_id: Optional[str] = Field(default=None, alias="agentId")
    agent_type: Optional[str] = Field(default=None, alias="agentType")
    input_hash: Optional[str] = Field(default=None, alias="inputHash")
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    parent_context_id: Optional[str] = Field(default=None, alias="parentContextId")
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class SecurityInfo(WireModel):
    classification: str = "internal"  # public | internal | confidential | restricted
    access_control: Optional[Tuple[str, ...]] = Field(default=None, alias="accessControl")

    class Config:
        populate_by_name = True
        frozen = True


class ContextMetadata(WireModel):
    version: str = CONTEXT_VERSION
    schema_uri: str = Field(alias="schema")
    tags: Tuple[str, ...] = ()
    priority: str = "medium"
    ttl: Optional[int] = None
    security: SecurityInfo = Field(default_factory=SecurityInfo)

    class Config:
        populate_by_name = True
        frozen = True


class ContextRelationships(WireModel):
    parent: Optional[str] = None
    children: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()

    class Config:
        populate_by_name = True
        frozen = True


class Context(WireModel):
    """Provenance-tagged payload envelope passed between agents."""
    id: str
    type: str
    timestamp: datetime
    version: str = CONTEXT_VERSION
    provenance: List[ProvenanceRecord]
    metadata: ContextMetadata
    payload: Any = None
    relationships: Optional[ContextRelationships] = None

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class MCPError(WireModel):
    code: str
    message: str
    details: Optional[Any] = None


class MCPResponse(WireModel):
    context: Context
    success: bool
    error: Optional[MCPError] = None
    execution_time: Optional[int] = Field(default=None, alias="executionTime")


class CapabilityDescriptor(WireModel):
    id: str
    name: str
    description: str
    input_types: List[str] = Field(alias="inputTypes")
    output_types: List[str] = Field(alias="outputTypes")
    parameters: Optional[Dict[str, Any]] = None


class AgentInfo(WireModel):
    id: str
    type: str
    version: str
    status: str  # active | inactive | busy | error
    capabilities: List[CapabilityDescriptor]
    last_activity: Optional[datetime] = Field(default=None, alias="lastActivity")
    metadata: Optional[Dict[str, Any]] = None


def _to_jsonable(payload: Any) -> Any:
    if isinstance(payload, WireModel):
        return payload.to_wire()
    return payload


def compute_hash(payload: Any) -> str:
    """
    SHA-256 digest of a canonical JSON rendering of ``payload``.

    Keys are sorted and separators are compact, so two payloads with the
    same structure produce the same digest regardless of insertion order.
    """
    canonical = json.dumps(
        _to_jsonable(payload),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def create_context(
    context_type: str,
    payload: Any,
    source: str,
    source_type: SourceType,
    operation: str,
    agent_id: Optional[str] = None,
    agent_type: Optional[str] = None,
    parent_context_id: Optional[str] = None,
) -> Context:
    """Create a new context with a single seed provenance record."""
    timestamp = utc_now()

    seed = ProvenanceRecord(
        source=source,
        source_type=SourceType(source_type),
        timestamp=timestamp,
        operation=operation,
        agent_id=agent_id,
        agent_type=agent_type,
        input_hash=compute_hash(payload),
        parent_context_id=parent_context_id,
    )

    metadata = ContextMetadata(
        version=CONTEXT_VERSION,
        schema_uri=f"mcp://{context_type}",
        tags=[context_type, operation],
        priority="medium",
        security=SecurityInfo(classification="internal"),
    )

    return Context(
        id=str(uuid.uuid4()),
        type=context_type,
        timestamp=timestamp,
        version=CONTEXT_VERSION,
        provenance=[seed],
        metadata=metadata,
        payload=payload,
        relationships=ContextRelationships(parent=parent_context_id) if parent_context_id else None,
    )


def add_provenance(context: Context, record: ProvenanceRecord) -> Context:
    """Return a new context with ``record`` appended to its provenance."""
    if context.provenance:
        last_timestamp = context.provenance[-1].timestamp
        if record.timestamp < last_timestamp:
            logger.warning(
                "Provenance record older than trail head, clamping timestamp",
                context_id=context.id,
                operation=record.operation,
                record_timestamp=record.timestamp.isoformat(),
                head_timestamp=last_timestamp.isoformat(),
            )
            record = record.model_copy(update={"timestamp": last_timestamp})

    return context.model_copy(
        update={
            "provenance": [*context.provenance, record],
            "timestamp": max(utc_now(), record.timestamp),
        }
    )


def verify_input_hash(context: Context) -> bool:
    """Check the seed record's input hash against the current payload.

    Advisory only; nothing in the pipeline calls this implicitly.
    """
    if not context.provenance or context.provenance[0].input_hash is None:
        return False
    return context.provenance[0].input_hash == compute_hash(context.payload)


def create_response(
    context: Context,
    success: bool,
    error: Optional[MCPError] = None,
    execution_time: Optional[int] = None,
) -> MCPResponse:
    return MCPResponse(
        context=context,
        success=success,
        error=error,
        execution_time=execution_time,
    )
