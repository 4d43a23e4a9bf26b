"""Pytest configuration and fixtures for the Concierge test suite.

Provides:
- Disabled rate limiting
- Stub chat models (LangChain AIMessage responses) and a stub tool backend
- Orchestrator and HTTP client fixtures wired to the stubs
"""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from langchain_core.messages import AIMessage

from concierge.core.deps import get_orchestrator
from concierge.core.rate_limit import limiter
from concierge.integrations.mcp.client import McpError
from concierge.main import app
from concierge.schemas.mcp import McpTextContent, McpToolCallResponse
from concierge.services.model_service import ModelService
from concierge.services.orchestrator import OrchestratorService

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
VERIFIED_CUSTOMER_ID = "3f2b8c1e-9d4a-4e6b-8a7c-1b2c3d4e5f60"
DRAFT_CUSTOMER_ID = "cust-draft-001"
ORDER_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
CUSTOMER_EMAIL = "jane@example.com"
CUSTOMER_PIN = "4821"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def classification(
    target_agent: str,
    tool_hint: str | None = None,
    missing_information: str | None = None,
    reason: str = "test",
) -> str:
    """Render a classifier answer the way the model returns it."""
    return json.dumps(
        {
            "target_agent": target_agent,
            "tool_hint": tool_hint,
            "missing_information": missing_information,
            "reason": reason,
        }
    )


def text_response(text: str, *, structured: bool = True, is_error: bool = False) -> McpToolCallResponse:
    """Build a tool response carrying ``text``."""
    return McpToolCallResponse(
        content=[McpTextContent(text=text)],
        structured_content={"result": text} if structured else None,
        is_error=is_error,
    )


def stub_chat_model(*contents: str | Exception) -> MagicMock:
    """A chat model whose ainvoke returns the given contents in order."""
    model = MagicMock()
    model.ainvoke = AsyncMock(
        side_effect=[c if isinstance(c, Exception) else AIMessage(content=c) for c in contents]
    )
    return model


class StubToolBackend:
    """Tool backend returning canned responses and recording every call."""

    def __init__(self, responses: dict[str, McpToolCallResponse | McpError] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def call_tool(self, name: str, args: dict[str, Any]) -> McpToolCallResponse:
        self.calls.append((name, dict(args)))
        response = self.responses.get(name, text_response(f"{name} result"))
        if isinstance(response, McpError):
            raise response
        return response

    @property
    def tool_names(self) -> list[str]:
        return [name for name, _ in self.calls]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tool_backend() -> StubToolBackend:
    """Tool backend that succeeds for every tool."""
    return StubToolBackend()


@pytest.fixture
def orchestrator_factory() -> Callable[..., tuple[OrchestratorService, MagicMock, MagicMock]]:
    """Factory building an orchestrator around stub models.

    Usage:
        orchestrator, primary, secondary = orchestrator_factory(
            [classification("product"), "Here are the products."],
            tool_backend=backend,
        )
    """

    def _create(
        primary_contents: list[str | Exception],
        *,
        tool_backend: StubToolBackend | None = None,
        secondary_contents: list[str | Exception] | None = None,
    ) -> tuple[OrchestratorService, MagicMock, MagicMock]:
        primary = stub_chat_model(*primary_contents)
        secondary = stub_chat_model(*(secondary_contents or []))
        service = OrchestratorService(
            model_service=ModelService(primary=primary, secondary=secondary),
            tool_backend=tool_backend or StubToolBackend(),
        )
        return service, primary, secondary

    return _create


@pytest_asyncio.fixture
async def plain_client() -> AsyncGenerator[AsyncClient, None]:
    """Minimal async test client with NO dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def client_factory() -> AsyncGenerator[Callable[[Any], AsyncClient], None]:
    """Factory for a test client whose orchestrator dependency is overridden."""
    clients: list[AsyncClient] = []

    def _create(orchestrator: Any) -> AsyncClient:
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    yield _create

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()
