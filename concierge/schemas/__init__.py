"""Pydantic schemas for request/response validation."""

from concierge.schemas.common import ErrorResponse, HealthResponse

__all__ = [
    "HealthResponse",
    "ErrorResponse",
]
