from __future__ import annotations

from decimal import Decimal
from typing import Any


def _money(value: Any) -> str:
    return f"{Decimal(str(value if value is not None else 0)):.2f}"


def _iso(value: Any) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_conversation(conversation) -> dict[str, Any]:
    return {
        "id": conversation.id,
        "tenant_id": conversation.tenant_id,
        "customer_id": conversation.customer_id,
        "customer_name": conversation.customer_name,
        "channel": conversation.channel,
        "status": conversation.status,
        "paused_for_human": bool(conversation.paused_for_human),
        "last_message_at": _iso(conversation.last_message_at),
        "created_at": _iso(conversation.created_at),
    }


def serialize_message(message) -> dict[str, Any]:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "role": message.role,
        "content": message.content,
        "created_at": _iso(message.created_at),
    }


def serialize_product(product) -> dict[str, Any]:
    return {
        "id": product.id,
        "tenant_id": product.tenant_id,
        "name": product.name,
        "description": product.description,
        "price": _money(product.price),
        "cost": _money(product.cost),
        "stock": product.stock,
        "active": bool(product.active),
    }


def serialize_service(service) -> dict[str, Any]:
    return {
        "id": service.id,
        "tenant_id": service.tenant_id,
        "name": service.name,
        "description": service.description,
        "price": _money(service.price),
        "duration": service.duration,
        "active": bool(service.active),
    }


def serialize_order(order) -> dict[str, Any]:
    return {
        "id": order.id,
        "tenant_id": order.tenant_id,
        "product_id": order.product_id,
        "product_name": order.product_name,
        "quantity": order.quantity,
        "price": _money(order.price),
        "cost": _money(order.cost),
        "revenue": _money(order.revenue),
        "profit": _money(order.profit),
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "channel": order.channel,
        "status": order.status,
        "created_at": _iso(order.created_at),
    }


def serialize_appointment(appointment) -> dict[str, Any]:
    return {
        "id": appointment.id,
        "tenant_id": appointment.tenant_id,
        "service_id": appointment.service_id,
        "service_name": appointment.service_name,
        "customer_name": appointment.customer_name,
        "customer_phone": appointment.customer_phone,
        "date": _iso(appointment.date),
        "duration": appointment.duration,
        "price": _money(appointment.price),
        "channel": appointment.channel,
        "status": appointment.status,
        "created_at": _iso(appointment.created_at),
    }
