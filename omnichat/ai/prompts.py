from __future__ import annotations

from decimal import Decimal

from omnichat.ai.schema import ChatContext, HistoryTurn
from omnichat.services.intent import contains_arabic

HISTORY_TURN_LIMIT = 10

HUMAN_HANDOFF_MESSAGE = (
    "I understand you'd like to speak with a human. "
    "Let me connect you with our team. Someone will contact you shortly."
)
TECHNICAL_DIFFICULTIES_MESSAGE = (
    "I apologize, I'm experiencing technical difficulties. A human agent will assist you shortly."
)
EMPTY_REPLY_MESSAGE = "I apologize, I'm having trouble responding right now. Please try again."

_ARABIC_INSTRUCTION = (
    "Language: the customer is writing in Arabic. Reply only in Modern Standard Arabic."
)
_ENGLISH_INSTRUCTION = (
    "Language: reply in English. If the customer switches to Arabic, continue seamlessly "
    "in Modern Standard Arabic."
)

_ORDER_SCRIPT = """When a customer wants to order:
1. Confirm the product and quantity
2. Check stock availability
3. Ask for their name and contact information
4. Confirm the total price
5. Tell them their order is being processed"""

_BOOKING_SCRIPT = """When a customer wants to book:
1. Confirm the service
2. Ask for their preferred date and time
3. Ask for their name and contact information
4. Confirm the appointment details
5. Tell them their appointment is being scheduled"""


def _money(value: Decimal) -> str:
    return f"{Decimal(value):.2f}"


def trim_history(history: list[HistoryTurn], limit: int = HISTORY_TURN_LIMIT) -> list[HistoryTurn]:
    if limit <= 0:
        return []
    return list(history[-limit:])


def wants_arabic(user_message: str, history: list[HistoryTurn]) -> bool:
    if contains_arabic(user_message):
        return True
    return any(contains_arabic(turn.content) for turn in history)


def build_system_prompt(context: ChatContext, *, arabic: bool = False) -> str:
    lines = [
        f"You are an AI customer service agent for {context.business_name}. "
        "You are helpful, friendly, and professional.",
        "",
        "Your role:",
        "1. Answer customer questions about products/services",
        "2. Help customers place orders or book appointments",
        "3. Provide accurate information about pricing and availability",
        "4. Be concise but complete in your responses",
        "5. Before confirming, collect the customer's name, contact information and the "
        "quantity or preferred date",
        "6. Never invent products, services or discounts that are not listed below",
        "7. Ask a clarifying question whenever information is missing",
        "8. If a customer asks for a human or mentions support, respond with exactly: "
        f'"{HUMAN_HANDOFF_MESSAGE}"',
        "",
        _ARABIC_INSTRUCTION if arabic else _ENGLISH_INSTRUCTION,
    ]

    active_products = [product for product in context.products if product.active]
    if context.business_type == "product" and active_products:
        lines.extend(["", "Available Products:"])
        for product in active_products:
            lines.append(f"- {product.name}: ${_money(product.price)} (Stock: {product.stock} units)")
            if product.description:
                lines.append(f"  {product.description}")
        lines.extend(["", _ORDER_SCRIPT])

    active_services = [service for service in context.services if service.active]
    if context.business_type == "service" and active_services:
        lines.extend(["", "Available Services:"])
        for service in active_services:
            lines.append(
                f"- {service.name}: ${_money(service.price)} (Duration: {service.duration} minutes)"
            )
            if service.description:
                lines.append(f"  {service.description}")
        lines.extend(["", _BOOKING_SCRIPT])

    return "\n".join(lines)


def build_prompt(user_message: str, context: ChatContext) -> str:
    history = trim_history(context.history)
    system_prompt = build_system_prompt(context, arabic=wants_arabic(user_message, context.history))
    transcript = "\n".join(
        f"{'Customer' if turn.role == 'customer' else 'Assistant'}: {turn.content}" for turn in history
    )
    return f"{system_prompt}\n\nConversation History:\n{transcript}\n\nCustomer: {user_message}\nAssistant:"
