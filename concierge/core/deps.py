"""Dependency injection for FastAPI routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from concierge.core.config import settings
from concierge.core.tracing import LoggingTracer
from concierge.integrations.mcp.client import McpClient
from concierge.services.model_service import ModelService, create_chat_model
from concierge.services.orchestrator import OrchestratorConfig, OrchestratorService


@lru_cache
def get_orchestrator() -> OrchestratorService:
    """Build the process-wide orchestrator from settings.

    The orchestrator holds no per-session state, so one instance serves
    every request.
    """
    config = OrchestratorConfig(
        product_list_max_items=settings.product_list_max_items,
        primary_model=settings.primary_model,
        secondary_model=settings.secondary_model,
    )
    model_service = ModelService(
        primary=create_chat_model(config.primary_model),
        secondary=create_chat_model(config.secondary_model),
    )
    return OrchestratorService(
        model_service=model_service,
        tool_backend=McpClient(settings.mcp_server_url, timeout=settings.mcp_timeout),
        config=config,
        tracer=LoggingTracer(),
    )


Orchestrator = Annotated[OrchestratorService, Depends(get_orchestrator)]


__all__ = [
    "Orchestrator",
    "get_orchestrator",
]
