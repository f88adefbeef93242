from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from omnichat.models.order import ORDER_STATUSES, Order
from omnichat.services.catalog_store import decrement_stock, get_product
from omnichat.services.errors import InsufficientStockError

logger = logging.getLogger(__name__)
_CENTS = Decimal("0.01")


def list_orders(db: Session, tenant_id: int, status: str | None = None) -> list[Order]:
    query = db.query(Order).filter(Order.tenant_id == tenant_id)
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order(db: Session, tenant_id: int, order_id: int) -> Order | None:
    return db.query(Order).filter(Order.tenant_id == tenant_id, Order.id == order_id).first()


def create_manual_order(db: Session, tenant_id: int, data: dict[str, Any]) -> Order:
    """Creates an order from the dashboard.

    With a ``product_id`` the product snapshot, price and cost come from the
    catalog and stock is taken out conditionally.
    """
    quantity = int(data["quantity"])
    product_id = data.get("product_id")
    product_name = data.get("product_name")
    price = data.get("price")
    cost = data.get("cost")

    if product_id is not None:
        product = get_product(db, tenant_id, product_id)
        if product is None:
            raise LookupError("Product not found")
        product_name = product.name
        price = product.price if price is None else price
        cost = product.cost if cost is None else cost
        if not decrement_stock(db, tenant_id, product.id, quantity):
            db.rollback()
            raise InsufficientStockError(product.id, quantity)

    price = Decimal(str(price if price is not None else 0)).quantize(_CENTS)
    cost = Decimal(str(cost if cost is not None else 0)).quantize(_CENTS)
    revenue = (price * quantity).quantize(_CENTS)
    order = Order(
        tenant_id=tenant_id,
        product_id=product_id,
        product_name=product_name or "Custom order",
        quantity=quantity,
        price=price,
        cost=cost,
        revenue=revenue,
        profit=(revenue - cost * quantity).quantize(_CENTS),
        customer_name=data["customer_name"],
        customer_phone=data["customer_phone"],
        channel=data.get("channel") or "chat",
        status=data.get("status") or "pending",
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("manual order created id=%s tenant_id=%s", order.id, tenant_id)
    return order


def update_order_status(db: Session, order: Order, status: str) -> Order:
    if status not in ORDER_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    order.status = status
    db.commit()
    db.refresh(order)
    return order
