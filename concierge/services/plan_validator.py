"""Policy gate between planning and tool execution.

Planners are trusted to act in good faith, but this check is the actual
boundary: a plan that names a tool outside its domain's allow-list, or
omits a required argument, is rejected here and never reaches the
backend.
"""

import logging
from typing import Any

from concierge.schemas.conversation import ConversationState, IntentClassification
from concierge.schemas.plan import (
    AgentToolPlan,
    RefusalCategory,
    ValidationFailure,
    ValidationResult,
    ValidationSuccess,
)

logger = logging.getLogger(__name__)

PRODUCT_TOOLS: frozenset[str] = frozenset({"list_products", "get_product", "search_products"})
ORDER_TOOLS: frozenset[str] = frozenset(
    {"get_customer", "verify_customer_pin", "list_orders", "get_order", "create_order"}
)

ALLOWED_TOOLS: dict[str, frozenset[str]] = {
    "product": PRODUCT_TOOLS,
    "order": ORDER_TOOLS,
}

# Tool -> (required text argument, prompt asking the user for it)
REQUIRED_TEXT_ARGS: dict[str, tuple[str, str]] = {
    "get_product": ("sku", "Please provide the product SKU so I can look it up."),
    "search_products": ("query", "What keywords should I use to search for the product?"),
    "get_order": ("order_id", "Please provide the order ID (UUID) so I can get that order."),
}


def _has_text(args: dict[str, Any], field: str) -> bool:
    value = args.get(field)
    return isinstance(value, str) and bool(value)


def validate_tool_plan(
    intent: IntentClassification,
    plan: AgentToolPlan,
    state: ConversationState,  # noqa: ARG001
) -> ValidationResult:
    """Check a plan against the tool allow-list and required arguments."""
    if intent.target_agent == "out_of_scope":
        return ValidationFailure(
            category=RefusalCategory.OUT_OF_SCOPE,
            reason="Intent is out of scope.",
        )

    allowed = ALLOWED_TOOLS[plan.target_agent]

    for call in plan.tool_calls:
        if call.tool not in allowed:
            logger.warning(
                "Plan rejected: tool %s not allowed for %s agent", call.tool, plan.target_agent
            )
            return ValidationFailure(
                category=RefusalCategory.ACTION_NOT_SUPPORTED,
                reason=f"Tool {call.tool} is not allowed for {plan.target_agent} agent.",
            )

        required = REQUIRED_TEXT_ARGS.get(call.tool)
        if required is not None:
            field, prompt = required
            if not _has_text(call.args, field):
                logger.warning("Plan rejected: %s is missing %s", call.tool, field)
                return ValidationFailure(
                    category=RefusalCategory.INSUFFICIENT_INFORMATION,
                    reason=prompt,
                )

    return ValidationSuccess()
