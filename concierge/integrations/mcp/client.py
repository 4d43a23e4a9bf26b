"""MCP tool backend client using httpx (JSON-RPC 2.0 over HTTP)."""

import logging
import time
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from concierge.core.config import settings
from concierge.schemas.mcp import McpToolCallResponse, ToolName

logger = logging.getLogger(__name__)


class McpError(Exception):
    """Raised when a tool call fails at the transport or envelope level."""


class ToolBackend(Protocol):
    """Capability the orchestrator uses to invoke backend tools."""

    async def call_tool(self, name: ToolName, args: dict[str, Any]) -> McpToolCallResponse: ...


class McpClient:
    """Async client for an MCP server exposing the catalog and order tools."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self.base_url = base_url or settings.mcp_server_url
        self.timeout = timeout if timeout is not None else settings.mcp_timeout
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def call_tool(self, name: ToolName, args: dict[str, Any]) -> McpToolCallResponse:
        """Invoke a tool and return its response envelope.

        Raises:
            McpError: On a non-success status, an error envelope, a missing
                or malformed result, or a transport failure.
        """
        body = {
            "jsonrpc": "2.0",
            "id": int(time.time() * 1000),
            "method": "tools/call",
            "params": {"name": name, "arguments": args},
        }

        try:
            async with httpx.AsyncClient(headers=self.headers, timeout=self.timeout) as client:
                response = await client.post(self.base_url, json=body)
        except httpx.HTTPError as e:
            raise McpError(f"MCP request failed: {e}") from e

        if not response.is_success:
            raise McpError(
                f"MCP request failed with status {response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise McpError("MCP response was not valid JSON.") from e

        error = payload.get("error") if isinstance(payload, dict) else None
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = (error.get("message") if isinstance(error, dict) else None) or "Unknown error"
            raise McpError(f"MCP error {code}: {message}")

        result = payload.get("result") if isinstance(payload, dict) else None
        if not result:
            raise McpError("MCP response did not include a result.")

        try:
            tool_response = McpToolCallResponse.model_validate(result)
        except ValidationError as e:
            raise McpError("MCP result did not match the tool response schema.") from e

        logger.info("Tool call completed: tool=%s, is_error=%s", name, tool_response.is_error)
        return tool_response
