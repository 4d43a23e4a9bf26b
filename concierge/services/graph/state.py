"""LangGraph turn state definition."""

from typing_extensions import TypedDict

from concierge.schemas.conversation import ConversationState, IntentClassification
from concierge.schemas.mcp import McpToolCallResponse
from concierge.schemas.plan import AgentRefusal, AgentToolPlan, ValidationResult


class TurnState(TypedDict, total=False):
    """State that flows through the orchestrator workflow for one turn.

    Attributes:
        conversation: Session record being updated by this turn (a private copy)
        user_message: The raw utterance for this turn
        user_id: Optional host-supplied user identifier, for tracing
        intent: Classification of the utterance
        plan_result: Planner output (tool plan or refusal)
        validation: Policy gate result for a tool plan
        tool_responses: Responses of the executed tool calls, in plan order
        reply: Final user-facing text for this turn
    """

    conversation: ConversationState
    user_message: str
    user_id: str | None
    intent: IntentClassification
    plan_result: AgentToolPlan | AgentRefusal
    validation: ValidationResult
    tool_responses: list[McpToolCallResponse]
    reply: str
