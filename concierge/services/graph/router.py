"""LangGraph conditional routing logic.

Each function is a conditional edge: it inspects the turn state after a
stage and returns the name of the next node. Every branch other than the
happy path leads to a node that replies and ends the turn.
"""

from concierge.services.graph.state import TurnState


def route_after_classify(state: TurnState) -> str:
    """Route on the classified intent."""
    intent = state["intent"]

    if intent.target_agent == "out_of_scope":
        return "out_of_scope"

    # Order flows ask for what they need themselves, with more context
    if intent.missing_information and intent.target_agent != "order":
        return "clarify"

    return "plan"


def route_after_plan(state: TurnState) -> str:
    """Refusals end the turn; tool plans go through the policy gate."""
    if state["plan_result"].type == "refusal":
        return "refuse"
    return "validate"


def route_after_validate(state: TurnState) -> str:
    """Only validated plans reach the tool backend."""
    if state["validation"].ok:
        return "execute"
    return "reject"


def route_after_execute(state: TurnState) -> str:
    """Any failed tool call replaces the answer with a single apology."""
    if any(response.is_error for response in state.get("tool_responses", [])):
        return "tool_error"
    return "answer"
