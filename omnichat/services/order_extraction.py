"""Best-effort order extraction from a conversation turn.

``evaluate_order`` is pure: it looks at the turn and returns either a candidate
order or the list of reasons why none should be created. ``maybe_extract_order``
applies a candidate to the database and never raises.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from sqlalchemy.orm import Session

from omnichat.models.order import Order
from omnichat.services.catalog_store import decrement_stock
from omnichat.services.intent import INTENT_ORDER, Intent

logger = logging.getLogger(__name__)
EXTRACTION_PREFIX = "[ORDER_EXTRACTION]"

CONFIRMATION_KEYWORDS = ("processing", "order", "confirmed", "completed", "successfully")
DEFAULT_CUSTOMER_NAME = "Customer"

REASON_INTENT_NOT_ORDER = "intent_not_order"
REASON_NO_CONFIRMATION = "no_confirmation_keyword"
REASON_NO_PRODUCT = "no_product_mentioned"
REASON_INVALID_QUANTITY = "invalid_quantity"
REASON_INSUFFICIENT_STOCK = "insufficient_stock"
REASON_INVALID_PRICE = "invalid_price"

_NAME_RE = re.compile(r"(?:name is|i'm|i am)\s+([A-Za-z\s]+?)(?:,|\.|\band\b|\bphone\b|$)", re.IGNORECASE)
_PHONE_RE = re.compile(r"(?:phone|number|contact)\s*(?:is)?\s*([0-9+\-]+)", re.IGNORECASE)
_QUANTITY_RE = re.compile(r"(\d+)\s*(?:units?|items?|pieces?)\b", re.IGNORECASE)
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class OrderCandidate:
    product_id: int
    product_name: str
    quantity: int
    price: Decimal
    cost: Decimal
    revenue: Decimal
    profit: Decimal
    customer_name: str
    customer_phone: str
    channel: str
    name_extracted: bool = False


@dataclass
class OrderExtraction:
    candidate: OrderCandidate | None = None
    reasons: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.candidate is not None


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def has_confirmation_keyword(ai_reply: str | None) -> bool:
    lowered = (ai_reply or "").lower()
    return any(keyword in lowered for keyword in CONFIRMATION_KEYWORDS)


def find_mentioned_product(products: Iterable[Any], *texts: str | None) -> Any | None:
    haystack = " ".join((text or "").lower() for text in texts)
    matches = [
        product
        for product in products
        if getattr(product, "active", True) and product.name and product.name.lower() in haystack
    ]
    if not matches:
        return None
    # "Widget Pro" beats "Widget" when both appear
    return max(matches, key=lambda product: len(product.name))


def extract_quantity(recent_text: str | None, product_name: str | None = None) -> int:
    text = recent_text or ""
    match = _QUANTITY_RE.search(text)
    if match:
        return int(match.group(1))
    if product_name:
        named = re.search(
            r"(\d+)\s+" + re.escape(product_name) + r"(?:e?s)?\b",
            text,
            re.IGNORECASE,
        )
        if named:
            return int(named.group(1))
    return 1


def extract_customer_name(text: str | None) -> str | None:
    match = _NAME_RE.search(text or "")
    if not match:
        return None
    name = " ".join(match.group(1).split())
    return name or None


def extract_customer_phone(text: str | None) -> str | None:
    match = _PHONE_RE.search(text or "")
    if not match:
        return None
    phone = match.group(1).strip("-")
    return phone or None


def evaluate_order(
    *,
    conversation: Any,
    products: Iterable[Any],
    ai_reply: str | None,
    intent: Intent,
    recent_text: str | None,
) -> OrderExtraction:
    reasons: list[str] = []

    if intent.category != INTENT_ORDER:
        reasons.append(REASON_INTENT_NOT_ORDER)
    if not has_confirmation_keyword(ai_reply):
        reasons.append(REASON_NO_CONFIRMATION)

    product = find_mentioned_product(list(products), recent_text, ai_reply)
    quantity = extract_quantity(recent_text, product.name if product is not None else None)
    price = cost = None

    if product is None:
        reasons.append(REASON_NO_PRODUCT)
    else:
        if quantity < 1:
            reasons.append(REASON_INVALID_QUANTITY)
        elif quantity > int(product.stock or 0):
            reasons.append(REASON_INSUFFICIENT_STOCK)
        price = _to_decimal(product.price)
        cost = _to_decimal(product.cost if product.cost is not None else 0)
        if price is None or cost is None:
            reasons.append(REASON_INVALID_PRICE)

    if reasons:
        return OrderExtraction(candidate=None, reasons=reasons)

    extracted_name = extract_customer_name(recent_text)
    customer_name = extracted_name or conversation.customer_name or DEFAULT_CUSTOMER_NAME
    customer_phone = extract_customer_phone(recent_text) or conversation.customer_id

    revenue = (price * quantity).quantize(_CENTS)
    profit = (revenue - cost * quantity).quantize(_CENTS)

    candidate = OrderCandidate(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        price=price.quantize(_CENTS),
        cost=cost.quantize(_CENTS),
        revenue=revenue,
        profit=profit,
        customer_name=customer_name,
        customer_phone=customer_phone,
        channel=conversation.channel,
        name_extracted=extracted_name is not None,
    )
    return OrderExtraction(candidate=candidate, reasons=[])


def maybe_extract_order(
    db: Session,
    *,
    tenant_id: int,
    conversation: Any,
    products: Iterable[Any],
    ai_reply: str | None,
    intent: Intent,
    recent_text: str | None,
) -> Order | None:
    extraction = evaluate_order(
        conversation=conversation,
        products=products,
        ai_reply=ai_reply,
        intent=intent,
        recent_text=recent_text,
    )
    if not extraction.accepted:
        if intent.category == INTENT_ORDER:
            logger.info(
                "%s no order conversation=%s reasons=%s",
                EXTRACTION_PREFIX,
                getattr(conversation, "id", None),
                ",".join(extraction.reasons),
            )
        return None

    candidate = extraction.candidate
    try:
        if not decrement_stock(db, tenant_id, candidate.product_id, candidate.quantity):
            db.rollback()
            logger.warning(
                "%s stock changed before order could be created product_id=%s quantity=%s",
                EXTRACTION_PREFIX,
                candidate.product_id,
                candidate.quantity,
            )
            return None

        order = Order(
            tenant_id=tenant_id,
            product_id=candidate.product_id,
            product_name=candidate.product_name,
            quantity=candidate.quantity,
            price=candidate.price,
            cost=candidate.cost,
            revenue=candidate.revenue,
            profit=candidate.profit,
            customer_name=candidate.customer_name,
            customer_phone=candidate.customer_phone,
            channel=candidate.channel,
            status="pending",
        )
        db.add(order)
        if candidate.name_extracted and not conversation.customer_name:
            conversation.customer_name = candidate.customer_name
        db.commit()
        db.refresh(order)
    except Exception:
        db.rollback()
        logger.exception("%s failed to persist order conversation=%s", EXTRACTION_PREFIX, conversation.id)
        return None

    logger.info(
        "%s order created id=%s product=%s quantity=%s",
        EXTRACTION_PREFIX,
        order.id,
        order.product_name,
        order.quantity,
    )
    return order
