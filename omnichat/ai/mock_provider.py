from __future__ import annotations

import re

from omnichat.ai.prompts import HUMAN_HANDOFF_MESSAGE
from omnichat.services.intent import (
    INTENT_APPOINTMENT,
    INTENT_HUMAN_REQUEST,
    INTENT_ORDER,
    classify,
)

_CATALOG_LINE_RE = re.compile(r"^- (?P<name>[^:]+): \$(?P<price>[0-9.]+)", re.MULTILINE)
_QUANTITY_RE = re.compile(r"(\d+)\s*(?:units?|items?|pieces?)", re.IGNORECASE)


def _last_customer_line(prompt: str) -> str:
    for line in reversed(prompt.splitlines()):
        if line.startswith("Customer: "):
            return line[len("Customer: "):]
    return ""


def _pick_catalog_item(text: str, prompt: str) -> tuple[str, str] | None:
    lowered = text.lower()
    matches = [
        (match.group("name").strip(), match.group("price"))
        for match in _CATALOG_LINE_RE.finditer(prompt)
        if match.group("name").strip().lower() in lowered
    ]
    if not matches:
        return None
    matches.sort(key=lambda entry: len(entry[0]), reverse=True)
    return matches[0]


class MockBackend:
    """Offline rule-based backend for development and the in-app test chat."""

    name = "mock"

    async def complete(self, prompt: str) -> str:
        message = _last_customer_line(prompt)
        intent = classify(message)

        if intent.category == INTENT_HUMAN_REQUEST:
            return HUMAN_HANDOFF_MESSAGE

        item = _pick_catalog_item(message, prompt)
        if intent.category == INTENT_ORDER:
            if item is None:
                return "Which product would you like to order, and how many units?"
            quantity_match = _QUANTITY_RE.search(message)
            quantity = int(quantity_match.group(1)) if quantity_match else 1
            return (
                f"Thank you! Your order for {quantity} x {item[0]} (${item[1]} each) "
                "is processing. We will contact you to confirm delivery."
            )

        if intent.category == INTENT_APPOINTMENT:
            if item is None:
                return "Which service would you like to book, and what date and time suit you?"
            return f"Great, {item[0]} is available. Please share your preferred date, name and phone number."

        if item is not None:
            return f"{item[0]} costs ${item[1]}. Would you like to order it?"
        return "Hello! How can I help you today?"
