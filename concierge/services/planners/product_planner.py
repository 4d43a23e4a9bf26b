"""Product planner: maps a catalog question to product tool calls."""

import logging

from concierge.schemas.conversation import ConversationState
from concierge.schemas.mcp import GetProductArgs, ListProductsArgs, SearchProductsArgs
from concierge.schemas.plan import AgentPlanResult, AgentToolPlan, ToolCallPlan
from concierge.services.planners.extraction import (
    extract_sku,
    infer_category,
    mentions_listing,
    wants_in_stock,
)

logger = logging.getLogger(__name__)


def _get_product(sku: str) -> ToolCallPlan:
    return ToolCallPlan(
        tool="get_product",
        args=GetProductArgs(sku=sku).model_dump(),
        description="Get product details by SKU.",
    )


def _search_products(query: str, description: str = "Search products by query text.") -> ToolCallPlan:
    return ToolCallPlan(
        tool="search_products",
        args=SearchProductsArgs(query=query).model_dump(),
        description=description,
    )


def _list_products(
    category: str | None,
    in_stock: bool,
    description: str = "List products filtered by inferred category and availability.",
) -> ToolCallPlan:
    args = ListProductsArgs(category=category, is_active=True if in_stock else None)
    return ToolCallPlan(
        tool="list_products",
        args=args.model_dump(exclude_none=True),
        description=description,
    )


def _choose_call(user_message: str, state: ConversationState) -> ToolCallPlan:
    tool_hint = state.last_intent.tool_hint if state.last_intent else None
    sku = extract_sku(user_message)
    in_stock = wants_in_stock(user_message)

    if tool_hint == "get_product":
        if sku is None:
            # Search is safe to attempt speculatively when the SKU is missing
            return _search_products(
                user_message,
                description="Fallback to search when SKU was requested but not provided.",
            )
        return _get_product(sku)

    if tool_hint == "list_products":
        return _list_products(infer_category(user_message), in_stock)

    if tool_hint == "search_products":
        return _search_products(user_message)

    # No usable hint: most specific signal wins
    if sku is not None:
        return _get_product(sku)

    category = infer_category(user_message)
    if category is not None:
        return _list_products(category, in_stock)

    if mentions_listing(user_message):
        return _list_products(None, in_stock, description="List products matching optional filters.")

    return _search_products(user_message)


class ProductPlanner:
    """Plans product tool calls from the utterance and the routed intent."""

    kind = "product"

    def plan(self, user_message: str, state: ConversationState) -> AgentPlanResult:
        call = _choose_call(user_message, state)
        logger.info("Product plan: tool=%s, args=%s", call.tool, call.args)
        return AgentToolPlan(target_agent="product", tool_calls=[call])
