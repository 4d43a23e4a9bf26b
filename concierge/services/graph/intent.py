"""Parsing and post-processing of the intent classifier's output."""

import json
import logging
import re

from concierge.schemas.conversation import IntentClassification
from concierge.schemas.mcp import TOOL_NAMES

logger = logging.getLogger(__name__)

TARGET_AGENTS = frozenset({"product", "order", "out_of_scope"})
MONITOR_KEYWORDS = ("monitor",)
LISTING_OVERRIDE_KEYWORDS = ("show me all", "list", "browse", "in stock", "available")

FALLBACK_CLASSIFICATION = IntentClassification(
    target_agent="out_of_scope",
    tool_hint=None,
    missing_information=None,
    reason="parse failure",
)


def _strip_code_fences(content: str) -> str:
    content = re.sub(r"^```(?:json)?\s*\n?", "", content.strip())
    return re.sub(r"\n?```\s*$", "", content.strip())


def parse_classification(content: str) -> IntentClassification:
    """Parse the classifier's JSON answer.

    Never raises: unparseable output or an unknown target agent degrades
    to an out-of-scope classification. An unknown tool hint is dropped.
    """
    try:
        parsed = json.loads(_strip_code_fences(content))
    except (json.JSONDecodeError, ValueError, TypeError):
        logger.warning("Failed to parse intent classifier response: %s", content)
        return FALLBACK_CLASSIFICATION.model_copy()

    target_agent = parsed.get("target_agent") if isinstance(parsed, dict) else None
    if not isinstance(target_agent, str) or target_agent not in TARGET_AGENTS:
        logger.warning("Intent classifier returned an invalid target: %s", content)
        return FALLBACK_CLASSIFICATION.model_copy()

    tool_hint = parsed.get("tool_hint")
    if (
        not isinstance(tool_hint, str)
        or tool_hint not in TOOL_NAMES
        or target_agent == "out_of_scope"
    ):
        tool_hint = None

    # Replied verbatim by the clarify node
    missing = parsed.get("missing_information")
    missing_information = missing if isinstance(missing, str) and missing else None

    reason = parsed.get("reason")
    return IntentClassification(
        target_agent=target_agent,
        tool_hint=tool_hint,
        missing_information=missing_information,
        reason=reason if isinstance(reason, str) else None,
    )


def apply_listing_override(intent: IntentClassification, user_message: str) -> IntentClassification:
    """Force ``list_products`` for product requests that ask to list monitors.

    The model is unreliable for this phrasing; the lexical check is not.
    """
    if intent.target_agent != "product":
        return intent

    normalized = user_message.lower()
    mentions_monitors = any(k in normalized for k in MONITOR_KEYWORDS)
    looks_like_listing = any(k in normalized for k in LISTING_OVERRIDE_KEYWORDS)
    if mentions_monitors and looks_like_listing:
        return intent.model_copy(update={"tool_hint": "list_products"})
    return intent
