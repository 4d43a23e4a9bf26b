"""LangGraph node functions for the orchestrator workflow."""

import logging
from typing import Any, Protocol

from concierge.core.tracing import StageTracer
from concierge.integrations.mcp.client import McpError, ToolBackend
from concierge.schemas.conversation import ConversationState, MessageRole
from concierge.schemas.mcp import McpToolCallResponse, ToolName
from concierge.schemas.plan import (
    AgentPlanResult,
    AgentRefusal,
    AgentToolPlan,
    RefusalCategory,
    ValidationFailure,
    template_for,
)
from concierge.services.graph.intent import apply_listing_override, parse_classification
from concierge.services.graph.prompts import FINAL_ANSWER_PROMPT, INTENT_CLASSIFIER_PROMPT
from concierge.services.graph.state import TurnState
from concierge.services.graph.summaries import build_tool_summaries
from concierge.services.model_service import ModelService
from concierge.services.plan_validator import validate_tool_plan
from concierge.services.planners.extraction import extract_uuid

logger = logging.getLogger(__name__)


class Planner(Protocol):
    """A domain planner: pure mapping from utterance and state to a plan."""

    def plan(self, user_message: str, state: ConversationState) -> AgentPlanResult: ...


def _reply(conversation: ConversationState, text: str) -> dict[str, Any]:
    """End the turn with ``text`` as the assistant's answer."""
    conversation.add_message(MessageRole.ASSISTANT, text)
    return {"conversation": conversation, "reply": text}


# === Classification ===


async def classify_intent(
    state: TurnState,
    model_service: ModelService,
    tracer: StageTracer,
) -> dict[str, Any]:
    """Classify the utterance and record it as the conversation's last intent."""
    conversation = state["conversation"]
    user_message = state["user_message"]

    async with tracer.stage(
        "intent_classification",
        agent="orchestrator",
        session_id=conversation.id,
        user_id=state.get("user_id"),
    ):
        prompt = INTENT_CLASSIFIER_PROMPT.format(message=user_message)
        content = await model_service.invoke(prompt)

    intent = apply_listing_override(parse_classification(content), user_message)
    conversation.last_intent = intent

    logger.info(
        "Intent classified: target=%s, tool_hint=%s, missing_information=%s",
        intent.target_agent,
        intent.tool_hint,
        bool(intent.missing_information),
    )
    return {"conversation": conversation, "intent": intent}


async def out_of_scope_node(state: TurnState) -> dict[str, Any]:
    """Politely decline requests outside products and orders."""
    return _reply(state["conversation"], template_for(RefusalCategory.OUT_OF_SCOPE))


async def clarify_node(state: TurnState) -> dict[str, Any]:
    """Ask the classifier's follow-up question verbatim."""
    return _reply(state["conversation"], state["intent"].missing_information or "")


# === Planning ===


async def plan_node(
    state: TurnState,
    planners: dict[str, Planner],
    tracer: StageTracer,
) -> dict[str, Any]:
    """Dispatch to the planner for the routed domain."""
    target = state["intent"].target_agent
    async with tracer.stage("tool_selection", agent=target):
        plan_result = planners[target].plan(state["user_message"], state["conversation"])
    return {"plan_result": plan_result}


async def refuse_node(state: TurnState) -> dict[str, Any]:
    """Reply with the planner's refusal, keeping any order draft for later."""
    conversation = state["conversation"]
    refusal: AgentRefusal = state["plan_result"]  # type: ignore[assignment]

    if refusal.pending_create_order_args is not None:
        conversation.pending_create_order = refusal.pending_create_order_args
    if refusal.pending_order_request_message:
        conversation.pending_order_request_message = refusal.pending_order_request_message
        conversation.pending_order_tool_hint = (
            refusal.pending_order_tool_hint or state["intent"].tool_hint
        )

    logger.info("Plan refused: category=%s", refusal.category.value)
    return _reply(conversation, refusal.reply())


# === Validation ===


async def validate_node(state: TurnState) -> dict[str, Any]:
    """Run the plan through the policy gate."""
    plan: AgentToolPlan = state["plan_result"]  # type: ignore[assignment]
    return {"validation": validate_tool_plan(state["intent"], plan, state["conversation"])}


async def reject_node(state: TurnState) -> dict[str, Any]:
    """Reply for a plan the policy gate refused."""
    failure: ValidationFailure = state["validation"]  # type: ignore[assignment]

    if failure.category == RefusalCategory.INSUFFICIENT_INFORMATION:
        text = failure.reason
    else:
        text = template_for(failure.category)
    return _reply(state["conversation"], text)


# === Execution ===


async def _call_tool(
    tool_backend: ToolBackend, tool: ToolName, args: dict[str, Any]
) -> McpToolCallResponse:
    try:
        return await tool_backend.call_tool(tool, args)
    except McpError as e:
        logger.warning("Tool call failed: tool=%s, error=%s", tool, e)
        return McpToolCallResponse.error(str(e))


def _record_verification(
    conversation: ConversationState,
    args: dict[str, Any],
    response: McpToolCallResponse,
) -> None:
    """Capture the verified identity and re-point any order draft at it."""
    if args.get("email"):
        conversation.customer_email = args["email"]
    if args.get("pin"):
        conversation.customer_pin = args["pin"]

    customer_id = extract_uuid(response.text())
    if customer_id is None:
        logger.info("Verification response did not include a customer ID")
        return

    conversation.customer_id = customer_id
    if conversation.pending_create_order is not None:
        conversation.pending_create_order = conversation.pending_create_order.model_copy(
            update={"customer_id": customer_id}
        )


async def execute_node(
    state: TurnState,
    tool_backend: ToolBackend,
    tracer: StageTracer,
) -> dict[str, Any]:
    """Run the plan's tool calls one at a time, in order.

    Calls run sequentially because a chained ``create_order`` depends on
    the identity captured by the ``verify_customer_pin`` call before it.
    """
    conversation = state["conversation"]
    plan: AgentToolPlan = state["plan_result"]  # type: ignore[assignment]
    responses: list[McpToolCallResponse] = []

    tools = [call.tool for call in plan.tool_calls]
    async with tracer.stage("tool_execution", agent="orchestrator", tools=tools):
        for call in plan.tool_calls:
            args = call.args
            if call.tool == "create_order" and conversation.pending_create_order is not None:
                args = conversation.pending_create_order.model_dump()

            response = await _call_tool(tool_backend, call.tool, args)
            responses.append(response)

            if call.tool == "verify_customer_pin":
                if response.is_error:
                    # Never submit an order against an unverified identity
                    logger.warning("Verification failed; skipping remaining tool calls")
                    break
                _record_verification(conversation, args, response)

    return {"conversation": conversation, "tool_responses": responses}


async def tool_error_node(state: TurnState) -> dict[str, Any]:
    """Reply when any tool call failed; no partial output is shown."""
    return _reply(state["conversation"], template_for(RefusalCategory.TOOL_UNAVAILABLE))


# === Answer ===


async def answer_node(
    state: TurnState,
    model_service: ModelService,
    tracer: StageTracer,
    max_items: int,
) -> dict[str, Any]:
    """Settle resume bookkeeping and summarize the tool results."""
    conversation = state["conversation"]
    plan: AgentToolPlan = state["plan_result"]  # type: ignore[assignment]

    # A verification turn answers the order question that triggered it
    resumed = conversation.pending_order_request_message is not None and plan.uses(
        "verify_customer_pin"
    )
    question = conversation.pending_order_request_message if resumed else state["user_message"]

    if plan.uses("create_order"):
        conversation.pending_create_order = None
    if resumed:
        conversation.pending_order_request_message = None
        conversation.pending_order_tool_hint = None

    tool_summaries = build_tool_summaries(plan, state["tool_responses"], max_items)
    prompt = FINAL_ANSWER_PROMPT.format(message=question, tool_summaries=tool_summaries)

    async with tracer.stage("final_answer", agent="orchestrator"):
        reply = await model_service.invoke(prompt)

    return _reply(conversation, reply)

