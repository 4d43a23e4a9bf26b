"""Text completion with primary/secondary model failover."""

import json
import logging
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from concierge.core.config import settings

logger = logging.getLogger(__name__)


class EmptyModelResponseError(Exception):
    """Raised when the primary model answers with blank text."""


def create_chat_model(model: str) -> ChatOpenAI:
    """Create a ChatOpenAI instance for the given model name."""
    return ChatOpenAI(
        model=model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        temperature=settings.model_temperature,
        max_tokens=settings.max_response_tokens,
    )


def extract_content(model_result: Any) -> str:
    """Flatten a model result into plain text.

    Accepts a bare string, a message whose content is a string, or a
    message whose content is a list of parts (strings or ``{"text": ...}``
    blocks). Anything else is JSON-encoded.
    """
    if isinstance(model_result, str):
        return model_result

    content = getattr(model_result, "content", None)
    if content is None and isinstance(model_result, dict):
        content = model_result.get("content")

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                text = part
            elif isinstance(part, dict) and "text" in part:
                text = str(part.get("text") or "")
            else:
                text = ""
            if text:
                parts.append(text)
        return "\n".join(parts)

    return json.dumps(model_result, default=str)


class ModelService:
    """Invokes a primary chat model, retrying once on a secondary model."""

    def __init__(self, primary: BaseChatModel, secondary: BaseChatModel) -> None:
        self.primary = primary
        self.secondary = secondary

    async def invoke(self, prompt: str) -> str:
        """Return the model's text for ``prompt``.

        A primary failure or blank primary answer falls over to the
        secondary model. Secondary failures propagate to the caller.
        """
        try:
            result = await self.primary.ainvoke(prompt)
            text = extract_content(result)
            if not text.strip():
                raise EmptyModelResponseError("Empty response from primary model.")
            return text
        except Exception as e:
            logger.warning("Primary model failed, falling back to secondary: %r", e)

        result = await self.secondary.ainvoke(prompt)
        return extract_content(result)
