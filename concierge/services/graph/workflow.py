"""LangGraph workflow definition for the orchestrator."""

import logging
from typing import Any

from langgraph.graph import END, StateGraph

from concierge.core.tracing import NoopTracer, StageTracer
from concierge.integrations.mcp.client import ToolBackend
from concierge.services.graph.nodes import (
    Planner,
    answer_node,
    clarify_node,
    classify_intent,
    execute_node,
    out_of_scope_node,
    plan_node,
    refuse_node,
    reject_node,
    tool_error_node,
    validate_node,
)
from concierge.services.graph.router import (
    route_after_classify,
    route_after_execute,
    route_after_plan,
    route_after_validate,
)
from concierge.services.graph.state import TurnState
from concierge.services.graph.summaries import DEFAULT_PRODUCT_LIST_MAX_ITEMS
from concierge.services.model_service import ModelService
from concierge.services.planners.order_planner import OrderPlanner
from concierge.services.planners.product_planner import ProductPlanner

logger = logging.getLogger(__name__)

# Nodes that reply and end the turn
TERMINAL_NODES = ("out_of_scope", "clarify", "refuse", "reject", "tool_error", "answer")


def create_orchestrator_graph(
    model_service: ModelService,
    tool_backend: ToolBackend,
    tracer: StageTracer | None = None,
    product_list_max_items: int = DEFAULT_PRODUCT_LIST_MAX_ITEMS,
    planners: dict[str, Planner] | None = None,
) -> Any:
    """Build and compile the per-turn orchestrator workflow.

    Args:
        model_service: Text completion with failover, used to classify and answer
        tool_backend: Executes planned tool calls
        tracer: Stage tracing hooks (no-op when omitted)
        product_list_max_items: Cap on catalog items passed to the answer prompt
        planners: Planner per routed domain (defaults to the product and order planners)

    Returns:
        Compiled LangGraph workflow
    """
    stage_tracer = tracer or NoopTracer()
    domain_planners: dict[str, Planner] = planners or {
        "product": ProductPlanner(),
        "order": OrderPlanner(),
    }

    # Create node functions with bound arguments
    async def _classify(state: TurnState) -> dict[str, Any]:
        return await classify_intent(state, model_service=model_service, tracer=stage_tracer)

    async def _plan(state: TurnState) -> dict[str, Any]:
        return await plan_node(state, planners=domain_planners, tracer=stage_tracer)

    async def _execute(state: TurnState) -> dict[str, Any]:
        return await execute_node(state, tool_backend=tool_backend, tracer=stage_tracer)

    async def _answer(state: TurnState) -> dict[str, Any]:
        return await answer_node(
            state,
            model_service=model_service,
            tracer=stage_tracer,
            max_items=product_list_max_items,
        )

    # Build the graph
    graph = StateGraph(TurnState)

    graph.add_node("classify", _classify)
    graph.add_node("out_of_scope", out_of_scope_node)
    graph.add_node("clarify", clarify_node)
    graph.add_node("plan", _plan)
    graph.add_node("refuse", refuse_node)
    graph.add_node("validate", validate_node)
    graph.add_node("reject", reject_node)
    graph.add_node("execute", _execute)
    graph.add_node("tool_error", tool_error_node)
    graph.add_node("answer", _answer)

    graph.set_entry_point("classify")

    graph.add_conditional_edges(
        "classify",
        route_after_classify,
        {"out_of_scope": "out_of_scope", "clarify": "clarify", "plan": "plan"},
    )
    graph.add_conditional_edges(
        "plan",
        route_after_plan,
        {"refuse": "refuse", "validate": "validate"},
    )
    graph.add_conditional_edges(
        "validate",
        route_after_validate,
        {"reject": "reject", "execute": "execute"},
    )
    graph.add_conditional_edges(
        "execute",
        route_after_execute,
        {"tool_error": "tool_error", "answer": "answer"},
    )

    for node in TERMINAL_NODES:
        graph.add_edge(node, END)

    return graph.compile()
