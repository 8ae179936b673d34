"""
Backend Client

Async REST client for the supply chain backend: MCP context storage,
agent registration, and the read-only endpoints the data collector uses.

Every call runs under a per-attempt timeout and is retried with
exponential backoff up to ``max_attempts``. After the last attempt the
failure is logged and raised as ``BackendError``; callers decide what a
failure means for them.
"""
from typing import Any, Dict, Optional
import asyncio

import aiohttp
import structlog

from supplychain_agent.config import Settings, settings as default_settings
from supplychain_agent.mcp.context import AgentInfo, Context

logger = structlog.get_logger()


class BackendError(Exception):
    """Raised when a backend call fails after all retry attempts."""

    def __init__(
        self,
        method: str,
        url: str,
        message: str,
        status: Optional[int] = None
    ):
        self.method = method
        self.url = url
        self.status = status
        super().__init__(f"{method} {url} failed: {message}")


class BackendClient:
    """
    Client for the supply chain backend.

    Construct once per process and share between agents. The underlying
    aiohttp session is created lazily and released by ``close()``.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls, config: Settings = None) -> "BackendClient":
        config = config or default_settings
        return cls(
            base_url=config.backend_url,
            timeout_seconds=config.backend_timeout_seconds,
            max_attempts=config.backend_max_attempts,
            backoff_seconds=config.backend_retry_backoff_seconds
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
            )
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _send_once(
        self,
        method: str,
        url: str,
        payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Issue a single HTTP request and return the decoded JSON body."""
        session = self._get_session()
        async with session.request(method, url, json=payload) as response:
            if response.status >= 400:
                error_text = await response.text()
                raise BackendError(method, url, error_text[:500], status=response.status)
            if response.content_type == "application/json":
                try:
                    return await response.json()
                except ValueError as e:
                    raise BackendError(
                        method,
                        url,
                        f"invalid JSON body: {e}",
                        status=response.status
                    ) from e
            return await response.text()

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        url = f"{self.base_url}{path}"
        last_error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            try:
                return await self._send_once(method, url, payload)
            except (aiohttp.ClientError, asyncio.TimeoutError, BackendError) as e:
                last_error = e
                # 4xx responses and undecodable bodies will not succeed on retry
                if isinstance(e, BackendError) and e.status is not None and e.status < 500:
                    break
                if attempt < self.max_attempts - 1:
                    delay = self.backoff_seconds * (2 ** attempt)
                    logger.warning(
                        "Backend call failed, retrying",
                        method=method,
                        url=url,
                        attempt=attempt + 1,
                        retry_in_seconds=delay,
                        error=str(e)
                    )
                    await asyncio.sleep(delay)

        logger.error(
            "Backend call failed",
            method=method,
            url=url,
            attempts=self.max_attempts,
            error=str(last_error)
        )
        if isinstance(last_error, BackendError):
            raise last_error
        raise BackendError(method, url, str(last_error) or type(last_error).__name__) from last_error

    # ==================== REST reads ====================

    async def get(self, path: str) -> Any:
        """GET a backend resource, e.g. ``/port-hubs``."""
        return await self._request("GET", path)

    async def health(self) -> Any:
        return await self._request("GET", "/health")

    # ==================== MCP context ====================

    async def send_to_backend(self, context: Context) -> Any:
        """Store a context in the backend context store."""
        seed = context.provenance[0] if context.provenance else None
        body = {
            "type": context.type,
            "payload": context.to_wire().get("payload"),
            "source": "ai_agent",
            "sourceType": "agent",
            "operation": "create_context",
            "agentId": seed.agent_id if seed else None,
            "agentType": seed.agent_type if seed else None,
        }
        return await self._request("POST", "/mcp/context", body)

    async def get_from_backend(self, context_id: str) -> Any:
        return await self._request("GET", f"/mcp/context/{context_id}")

    async def update_backend(
        self,
        context_id: str,
        payload: Any,
        source: str,
        operation: str
    ) -> Any:
        body = {
            "payload": payload,
            "source": source,
            "operation": operation,
        }
        return await self._request("PUT", f"/mcp/context/{context_id}", body)

    # ==================== Agents ====================

    async def register_agent(self, info: AgentInfo) -> Any:
        return await self._request("POST", "/mcp/agents/register", info.to_wire())

    async def execute_agent_action(self, agent_id: str, request: Dict[str, Any]) -> Any:
        return await self._request("POST", f"/mcp/agents/{agent_id}/execute", request)
