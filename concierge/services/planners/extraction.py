"""Lexical extraction helpers shared by the planners and orchestrator."""

import json
import re
from typing import Any

SKU_PATTERN = re.compile(r"\b[A-Z]{3}-\d{4}\b")
UUID_PATTERN = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
PIN_PATTERN = re.compile(r"\b\d{4}\b")
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
JSON_BLOCK_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

# Keyword buckets, checked in order; the first bucket with a hit wins.
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Monitors", ("monitor",)),
    ("Computers", ("computer", "laptop", "pc")),
    ("Networking", ("network", "router", "switch", "modem")),
]
IN_STOCK_KEYWORDS = ("in stock", "available")
LISTING_KEYWORDS = ("list", "all products", "browse")


def _first(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(0) if match else None


def extract_sku(text: str) -> str | None:
    return _first(SKU_PATTERN, text)


def extract_uuid(text: str) -> str | None:
    return _first(UUID_PATTERN, text)


def extract_pin(text: str) -> str | None:
    return _first(PIN_PATTERN, text)


def extract_email(text: str) -> str | None:
    return _first(EMAIL_PATTERN, text)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Parse the first JSON object embedded in free text.

    Decoding starts at the first ``{`` and stops where that object ends,
    so trailing text (including other braces) is ignored. Returns None
    when there is no ``{`` or the object there is not valid JSON.
    """
    start = text.find("{")
    if start == -1:
        return None
    try:
        data, _ = json.JSONDecoder().raw_decode(text, start)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def extract_credentials(text: str) -> tuple[str | None, str | None]:
    """Return the email and 4-digit PIN in the utterance.

    The PIN is looked for outside the email address, so digits in the
    address itself are never taken as the PIN.
    """
    email = extract_email(text)
    remainder = text.replace(email, " ") if email else text
    return email, extract_pin(remainder)


def infer_category(text: str) -> str | None:
    """Map catalog keywords in the utterance to a product category."""
    normalized = text.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in normalized for k in keywords):
            return category
    return None


def wants_in_stock(text: str) -> bool:
    normalized = text.lower()
    return any(k in normalized for k in IN_STOCK_KEYWORDS)


def mentions_listing(text: str) -> bool:
    normalized = text.lower()
    return any(k in normalized for k in LISTING_KEYWORDS)
