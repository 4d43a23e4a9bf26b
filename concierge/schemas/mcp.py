"""Pydantic schemas for the MCP tool backend.

Each of the eight backend tools has a fixed argument model. Every tool
returns the same response envelope: a list of text parts, an optional
structured payload carrying a ``result`` string, and an error flag.
"""

from typing import Any, Literal, get_args

from pydantic import Field

from concierge.schemas.common import BaseSchema

ToolName = Literal[
    "list_products",
    "get_product",
    "search_products",
    "get_customer",
    "verify_customer_pin",
    "list_orders",
    "get_order",
    "create_order",
]

TOOL_NAMES: tuple[str, ...] = get_args(ToolName)


# === Tool Argument Schemas ===


class ListProductsArgs(BaseSchema):
    """Input for listing catalog products."""

    category: str | None = None
    is_active: bool | None = None


class GetProductArgs(BaseSchema):
    """Input for a single product lookup."""

    sku: str


class SearchProductsArgs(BaseSchema):
    """Input for free-text product search."""

    query: str


class GetCustomerArgs(BaseSchema):
    """Input for a customer lookup."""

    customer_id: str


class VerifyCustomerPinArgs(BaseSchema):
    """Input for customer verification."""

    email: str
    pin: str


class ListOrdersArgs(BaseSchema):
    """Input for listing orders."""

    customer_id: str | None = None
    status: str | None = None


class GetOrderArgs(BaseSchema):
    """Input for a single order lookup."""

    order_id: str


class CreateOrderItem(BaseSchema):
    """A single order line."""

    sku: str
    quantity: int = Field(gt=0)
    unit_price: str
    currency: str = "USD"


class CreateOrderArgs(BaseSchema):
    """Input for order creation."""

    customer_id: str
    items: list[CreateOrderItem]


TOOL_ARGS_SCHEMAS: dict[str, type[BaseSchema]] = {
    "list_products": ListProductsArgs,
    "get_product": GetProductArgs,
    "search_products": SearchProductsArgs,
    "get_customer": GetCustomerArgs,
    "verify_customer_pin": VerifyCustomerPinArgs,
    "list_orders": ListOrdersArgs,
    "get_order": GetOrderArgs,
    "create_order": CreateOrderArgs,
}


# === Tool Response Schemas ===


class McpTextContent(BaseSchema):
    """A text part of a tool response."""

    type: Literal["text"] = "text"
    text: str


class McpToolCallResponse(BaseSchema):
    """Response envelope returned by every tool."""

    content: list[McpTextContent] = Field(default_factory=list)
    structured_content: dict[str, Any] | None = Field(default=None, alias="structuredContent")
    is_error: bool = Field(default=False, alias="isError")

    def text(self) -> str:
        """Return the response text, preferring the structured ``result``."""
        if self.structured_content is not None and "result" in self.structured_content:
            result = self.structured_content["result"]
            return "" if result is None else str(result)
        return "\n".join(part.text for part in self.content)

    @classmethod
    def error(cls, message: str) -> "McpToolCallResponse":
        """Build an error response carrying a single text part."""
        return cls(content=[McpTextContent(text=message)], is_error=True)
