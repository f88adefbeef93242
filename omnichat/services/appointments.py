from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from omnichat.models.appointment import APPOINTMENT_STATUSES, Appointment
from omnichat.services.catalog_store import get_service

logger = logging.getLogger(__name__)


def list_appointments(db: Session, tenant_id: int, status: str | None = None) -> list[Appointment]:
    query = db.query(Appointment).filter(Appointment.tenant_id == tenant_id)
    if status:
        query = query.filter(Appointment.status == status)
    return query.order_by(Appointment.date.asc(), Appointment.id.asc()).all()


def get_appointment(db: Session, tenant_id: int, appointment_id: int) -> Appointment | None:
    return (
        db.query(Appointment)
        .filter(Appointment.tenant_id == tenant_id, Appointment.id == appointment_id)
        .first()
    )


def create_manual_appointment(db: Session, tenant_id: int, data: dict[str, Any]) -> Appointment:
    service_id = data.get("service_id")
    service_name = data.get("service_name")
    duration = data.get("duration")
    price = data.get("price")

    if service_id is not None:
        service = get_service(db, tenant_id, service_id)
        if service is None:
            raise LookupError("Service not found")
        service_name = service.name
        duration = service.duration if duration is None else duration
        price = service.price if price is None else price

    appointment = Appointment(
        tenant_id=tenant_id,
        service_id=service_id,
        service_name=service_name or "Appointment",
        customer_name=data["customer_name"],
        customer_phone=data["customer_phone"],
        date=data["date"],
        duration=int(duration or 60),
        price=Decimal(str(price if price is not None else 0)),
        channel=data.get("channel") or "chat",
        status=data.get("status") or "pending",
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    logger.info("manual appointment created id=%s tenant_id=%s", appointment.id, tenant_id)
    return appointment


def update_appointment_status(db: Session, appointment: Appointment, status: str) -> Appointment:
    if status not in APPOINTMENT_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    appointment.status = status
    db.commit()
    db.refresh(appointment)
    return appointment
