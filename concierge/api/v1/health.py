"""Health check endpoints."""

from fastapi import APIRouter

from concierge.core.config import settings
from concierge.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Reports whether the model gateway and tool backend are configured.
    Neither is called: a turn against an unreachable backend degrades to
    a tool-unavailable reply rather than failing the service.
    """
    checks = {
        "model": "configured" if settings.openai_api_key else "missing api key",
        "mcp": "configured" if settings.mcp_server_url else "missing server url",
    }
    healthy = all(value == "configured" for value in checks.values())

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=settings.version,
        environment=settings.environment,
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """
    Liveness probe for Kubernetes/container orchestration.

    Simple check that the service is running.
    """
    return {"status": "alive"}
