"""Chat API endpoint: one conversation turn per request."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from concierge.core.config import settings
from concierge.core.deps import Orchestrator
from concierge.core.rate_limit import limiter
from concierge.schemas.chat import ChatRequest, ChatResponse
from concierge.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=ChatResponse,
    summary="Send a chat message",
    description="""
    Run one conversation turn.

    The client owns the conversation state: send back the `state` returned
    by the previous turn, or omit it to start a new session. Turns of the
    same session must not be sent concurrently.
    """,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse}},
)
@limiter.limit(settings.chat_rate_limit)
async def send_message(
    request: Request,  # noqa: ARG001 - required by slowapi
    body: ChatRequest,
    orchestrator: Orchestrator,
) -> ChatResponse:
    """Send a message and get the assistant's reply with the updated state."""
    try:
        result = await orchestrator.handle_turn(body.message, body.state, user_id=body.user_id)
    except Exception as e:
        logger.exception("Failed to generate AI response: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service is temporarily unavailable. Please try again.",
        ) from e

    return ChatResponse(reply=result.reply, state=result.state)
