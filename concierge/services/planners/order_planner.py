"""Order planner: maps an order or account request to order tool calls.

Orders are never created directly. A create-order request only captures
a cleaned draft and asks the customer to verify; the draft is submitted
as a ``create_order`` call chained after a ``verify_customer_pin`` call
in a later turn.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from concierge.schemas.conversation import ConversationState
from concierge.schemas.mcp import (
    CreateOrderArgs,
    CreateOrderItem,
    GetOrderArgs,
    ListOrdersArgs,
    VerifyCustomerPinArgs,
)
from concierge.schemas.plan import (
    AgentPlanResult,
    AgentRefusal,
    AgentToolPlan,
    RefusalCategory,
    ToolCallPlan,
    template_for,
)
from concierge.services.planners.extraction import (
    JSON_BLOCK_PATTERN,
    extract_credentials,
    extract_json_object,
    extract_uuid,
)

logger = logging.getLogger(__name__)

_MORE_INFO = template_for(RefusalCategory.INSUFFICIENT_INFORMATION)

ASK_CREDENTIALS = (
    f"{_MORE_INFO} Please provide your customer email and 4-digit PIN so I can verify you."
)
ASK_VERIFY_BEFORE_ORDER = (
    f"{_MORE_INFO} Please provide your customer email and 4-digit PIN so I can verify you "
    "before creating the order."
)
ASK_VALID_ORDER_PAYLOAD = (
    f"{_MORE_INFO} Please provide a valid JSON payload with customer_id and items "
    "(sku, quantity, unit_price, currency)."
)
ASK_ORDER_PAYLOAD = (
    f"{_MORE_INFO} Please include a JSON payload with customer_id and items "
    "(sku, quantity, unit_price, currency)."
)
ASK_ORDER_ID = (
    f"{_MORE_INFO} Please provide the order ID (UUID) so I can fetch a specific order."
)


class InvalidOrderPayload(ValueError):
    """The embedded order payload is missing required fields."""


def _is_decimal_text(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        return Decimal(value).is_finite()
    except InvalidOperation:
        return False


def _clean_item(raw: Any) -> CreateOrderItem | None:
    """Return a normalized order line, or None if the line is malformed."""
    if not isinstance(raw, dict):
        return None
    sku = raw.get("sku")
    quantity = raw.get("quantity")
    unit_price = raw.get("unit_price")
    currency = raw.get("currency")

    if not isinstance(sku, str) or not sku:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        return None
    if not _is_decimal_text(unit_price):
        return None

    return CreateOrderItem(
        sku=sku,
        quantity=quantity,
        unit_price=unit_price,
        currency=currency if isinstance(currency, str) and currency else "USD",
    )


def parse_order_payload(payload: dict[str, Any]) -> CreateOrderArgs:
    """Validate a raw create-order payload and drop malformed lines.

    Raises:
        InvalidOrderPayload: If customer_id or items are missing, or no
            line survives cleaning.
    """
    customer_id = payload.get("customer_id")
    items = payload.get("items")
    if not isinstance(customer_id, str) or not customer_id or not isinstance(items, list):
        raise InvalidOrderPayload("Missing customer_id or items")

    cleaned = [item for item in (_clean_item(raw) for raw in items) if item is not None]
    if not cleaned:
        raise InvalidOrderPayload("No valid items after validation")

    return CreateOrderArgs(customer_id=customer_id, items=cleaned)


def _refuse(message: str, **pending: Any) -> AgentRefusal:
    return AgentRefusal(
        category=RefusalCategory.INSUFFICIENT_INFORMATION,
        message=message,
        **pending,
    )


def _plan(*calls: ToolCallPlan) -> AgentToolPlan:
    return AgentToolPlan(target_agent="order", tool_calls=list(calls))


def _get_order(order_id: str) -> ToolCallPlan:
    return ToolCallPlan(
        tool="get_order",
        args=GetOrderArgs(order_id=order_id).model_dump(),
        description="Get a specific order by its ID.",
    )


def _list_orders(description: str) -> ToolCallPlan:
    return ToolCallPlan(
        tool="list_orders",
        args=ListOrdersArgs().model_dump(exclude_none=True),
        description=description,
    )


class OrderPlanner:
    """Plans order tool calls from the utterance and the routed intent."""

    kind = "order"

    def plan(self, user_message: str, state: ConversationState) -> AgentPlanResult:
        tool_hint = state.last_intent.tool_hint if state.last_intent else None

        if tool_hint == "verify_customer_pin":
            return self._plan_verification(user_message, state)
        if tool_hint == "create_order":
            return self._plan_create_order(user_message)
        if tool_hint == "get_order":
            order_id = extract_uuid(user_message)
            if order_id is None:
                return _refuse(ASK_ORDER_ID)
            return _plan(_get_order(order_id))
        if tool_hint == "list_orders":
            return _plan(_list_orders("List orders for the customer."))

        order_id = extract_uuid(user_message)
        if order_id is not None:
            return _plan(_get_order(order_id))
        return _plan(_list_orders("Default to listing recent orders when order intent is detected."))

    def _plan_verification(self, user_message: str, state: ConversationState) -> AgentPlanResult:
        email, pin = extract_credentials(user_message)
        if email is None or pin is None:
            logger.info("Verification refused: email=%s, pin=%s", bool(email), bool(pin))
            return _refuse(ASK_CREDENTIALS)

        calls = [
            ToolCallPlan(
                tool="verify_customer_pin",
                args=VerifyCustomerPinArgs(email=email, pin=pin).model_dump(),
                description="Verify customer identity using email and PIN.",
            )
        ]
        if state.pending_create_order is not None:
            calls.append(
                ToolCallPlan(
                    tool="create_order",
                    args=state.pending_create_order.model_dump(),
                    description=(
                        "Create a new order using the previously provided customer_id "
                        "and items after successful verification."
                    ),
                )
            )
        return _plan(*calls)

    def _plan_create_order(self, user_message: str) -> AgentPlanResult:
        if JSON_BLOCK_PATTERN.search(user_message) is None:
            return _refuse(ASK_ORDER_PAYLOAD)

        payload = extract_json_object(user_message)
        if payload is None:
            return _refuse(ASK_VALID_ORDER_PAYLOAD)

        try:
            draft = parse_order_payload(payload)
        except InvalidOrderPayload as e:
            logger.info("Order payload rejected: %s", e)
            return _refuse(ASK_VALID_ORDER_PAYLOAD)

        logger.info("Order draft captured: items=%d", len(draft.items))
        return _refuse(
            ASK_VERIFY_BEFORE_ORDER,
            pending_create_order_args=draft,
            pending_order_request_message=user_message,
            pending_order_tool_hint="create_order",
        )
