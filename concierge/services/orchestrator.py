"""Orchestrator service: runs one conversation turn through the workflow."""

import logging
from dataclasses import dataclass

from concierge.core.logging_config import session_id_var
from concierge.core.tracing import StageTracer
from concierge.integrations.mcp.client import ToolBackend
from concierge.schemas.conversation import ConversationState, MessageRole
from concierge.services.graph.summaries import DEFAULT_PRODUCT_LIST_MAX_ITEMS
from concierge.services.graph.workflow import create_orchestrator_graph
from concierge.services.model_service import ModelService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrchestratorConfig:
    """Process-wide knobs, injected rather than read from settings."""

    product_list_max_items: int = DEFAULT_PRODUCT_LIST_MAX_ITEMS
    primary_model: str = "gpt-4o-mini"
    secondary_model: str = "gpt-4o"


@dataclass
class TurnResult:
    """Reply for the turn and the conversation state to hand back next time."""

    reply: str
    state: ConversationState


class OrchestratorService:
    """Routes user utterances to product/order planners and backend tools.

    The caller owns the conversation state between turns and must not run
    two turns of the same session concurrently. Different sessions are
    independent.
    """

    def __init__(
        self,
        model_service: ModelService,
        tool_backend: ToolBackend,
        config: OrchestratorConfig | None = None,
        tracer: StageTracer | None = None,
    ) -> None:
        self.config = config or OrchestratorConfig()
        self.model_service = model_service
        self.tool_backend = tool_backend
        self.graph = create_orchestrator_graph(
            model_service=model_service,
            tool_backend=tool_backend,
            tracer=tracer,
            product_list_max_items=self.config.product_list_max_items,
        )
        logger.info(
            "Orchestrator ready: primary=%s, secondary=%s, product_list_max_items=%d",
            self.config.primary_model,
            self.config.secondary_model,
            self.config.product_list_max_items,
        )

    async def handle_turn(
        self,
        user_message: str,
        state: ConversationState | None = None,
        user_id: str | None = None,
    ) -> TurnResult:
        """Process one user utterance and return the reply with the new state.

        The input state is never modified; the turn works on a copy. A
        failure of both model tiers propagates, leaving the caller's
        pre-turn state as the source of truth.

        Args:
            user_message: Free-text utterance from the user
            state: Conversation state from the previous turn (None starts a session)
            user_id: Optional host user identifier, used for tracing

        Returns:
            The reply text and the updated conversation state
        """
        conversation = state.model_copy(deep=True) if state is not None else ConversationState()
        session_id_var.set(conversation.id)

        conversation.add_message(MessageRole.USER, user_message)

        try:
            result = await self.graph.ainvoke(
                {
                    "conversation": conversation,
                    "user_message": user_message,
                    "user_id": user_id,
                }
            )
        except Exception:
            logger.exception("Turn failed for session %s", conversation.id)
            raise

        return TurnResult(reply=result["reply"], state=result["conversation"])
