"""Turn tool responses into the text block handed to the answer prompt."""

import re

from concierge.schemas.mcp import McpToolCallResponse
from concierge.schemas.plan import AgentToolPlan

DEFAULT_PRODUCT_LIST_MAX_ITEMS = 20

# Catalog listings can be long; these tools are capped before summarization
CATALOG_LISTING_TOOLS = frozenset({"list_products", "search_products"})

_BLOCK_SEPARATOR = re.compile(r"\n\s*\n")


def limit_product_list(raw: str, limit: int = DEFAULT_PRODUCT_LIST_MAX_ITEMS) -> str:
    """Keep the header block plus the first ``limit`` item blocks.

    Blocks are separated by blank lines. A non-positive limit disables
    truncation.
    """
    if limit <= 0:
        return raw

    blocks = _BLOCK_SEPARATOR.split(raw)
    if len(blocks) <= limit + 1:
        return raw

    truncated = "\n\n".join(blocks[: limit + 1])
    return f"{truncated}\n\n(Showing first {limit} products; additional items are omitted.)"


def build_tool_summaries(
    plan: AgentToolPlan,
    responses: list[McpToolCallResponse],
    max_items: int = DEFAULT_PRODUCT_LIST_MAX_ITEMS,
) -> str:
    """Render one labelled block per executed tool call."""
    sections: list[str] = []
    for index, response in enumerate(responses):
        tool = plan.tool_calls[index].tool
        text = response.text()
        if tool in CATALOG_LISTING_TOOLS:
            text = limit_product_list(text, max_items)
        sections.append(f"Tool {index + 1} ({tool}):\n{text}")
    return "\n\n".join(sections)
