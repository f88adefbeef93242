from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from omnichat.models.appointment import Appointment
from omnichat.models.order import Order
from omnichat.models.product import Product
from omnichat.models.service import Service

logger = logging.getLogger(__name__)


def list_products(db: Session, tenant_id: int, *, active_only: bool = False) -> list[Product]:
    query = db.query(Product).filter(Product.tenant_id == tenant_id)
    if active_only:
        query = query.filter(Product.active.is_(True))
    return query.order_by(Product.id.asc()).all()


def get_product(db: Session, tenant_id: int, product_id: int) -> Product | None:
    return db.query(Product).filter(Product.tenant_id == tenant_id, Product.id == product_id).first()


def create_product(db: Session, tenant_id: int, data: dict[str, Any]) -> Product:
    product = Product(tenant_id=tenant_id, **data)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def update_product(db: Session, product: Product, changes: dict[str, Any]) -> Product:
    for key, value in changes.items():
        setattr(product, key, value)
    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, product: Product) -> None:
    # orders keep their product_name snapshot
    db.query(Order).filter(Order.product_id == product.id).update(
        {Order.product_id: None}, synchronize_session=False
    )
    db.delete(product)
    db.commit()


def decrement_stock(db: Session, tenant_id: int, product_id: int, quantity: int) -> bool:
    """Conditionally takes ``quantity`` units out of stock.

    Runs a single ``UPDATE ... WHERE stock >= quantity`` so two concurrent turns
    can never drive stock negative. Returns True when the row was updated. The
    caller owns the commit.
    """
    if quantity <= 0:
        return False
    updated = (
        db.query(Product)
        .filter(
            Product.id == product_id,
            Product.tenant_id == tenant_id,
            Product.stock >= quantity,
        )
        .update({Product.stock: Product.stock - quantity}, synchronize_session="fetch")
    )
    if updated != 1:
        logger.info(
            "stock decrement refused tenant_id=%s product_id=%s quantity=%s",
            tenant_id,
            product_id,
            quantity,
        )
        return False
    return True


def list_services(db: Session, tenant_id: int, *, active_only: bool = False) -> list[Service]:
    query = db.query(Service).filter(Service.tenant_id == tenant_id)
    if active_only:
        query = query.filter(Service.active.is_(True))
    return query.order_by(Service.id.asc()).all()


def get_service(db: Session, tenant_id: int, service_id: int) -> Service | None:
    return db.query(Service).filter(Service.tenant_id == tenant_id, Service.id == service_id).first()


def create_service(db: Session, tenant_id: int, data: dict[str, Any]) -> Service:
    service = Service(tenant_id=tenant_id, **data)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def update_service(db: Session, service: Service, changes: dict[str, Any]) -> Service:
    for key, value in changes.items():
        setattr(service, key, value)
    db.commit()
    db.refresh(service)
    return service


def delete_service(db: Session, service: Service) -> None:
    db.query(Appointment).filter(Appointment.service_id == service.id).update(
        {Appointment.service_id: None}, synchronize_session=False
    )
    db.delete(service)
    db.commit()
