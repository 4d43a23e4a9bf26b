"""Pydantic schemas for the chat endpoint."""

from pydantic import Field

from concierge.schemas.common import BaseSchema
from concierge.schemas.conversation import ConversationState


class ChatRequest(BaseSchema):
    """Request for a single conversation turn."""

    message: str = Field(..., min_length=1, max_length=4000)
    state: ConversationState | None = None  # None = new conversation
    user_id: str | None = None


class ChatResponse(BaseSchema):
    """Reply for the turn plus the updated conversation state."""

    reply: str
    state: ConversationState
