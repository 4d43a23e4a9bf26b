"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # API
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Concierge API"
    version: str = "0.1.0"

    # LLM APIs (any OpenAI-compatible gateway, e.g. OpenRouter)
    openai_api_key: str = ""
    openai_base_url: str | None = None
    primary_model: str = "gpt-4o-mini"
    secondary_model: str = "gpt-4o"
    model_temperature: float = 0.0
    max_response_tokens: int = 800

    # MCP tool backend
    mcp_server_url: str = "http://localhost:8000/mcp"
    mcp_timeout: float = 30.0

    # Orchestrator
    product_list_max_items: int = 20

    # Error reporting (Sentry or GlitchTip; empty disables it)
    sentry_dsn: str = ""

    # Rate limiting
    chat_rate_limit: str = "30/minute"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",  # Next.js chat UI
    ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
