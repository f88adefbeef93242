from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from omnichat.core.database import get_db
from omnichat.deps import AuthContext, get_auth_context, get_realtime_hub, require_role
from omnichat.schemas.channel import CHANNEL_CHAT
from omnichat.schemas.realtime import EVENT_APPOINTMENT_CREATED, EVENT_APPOINTMENT_UPDATED
from omnichat.services import appointments as appointment_service
from omnichat.services.realtime import RealtimeHub
from omnichat.services.serializers import serialize_appointment

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


class AppointmentCreate(BaseModel):
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    date: datetime
    duration: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    channel: str = CHANNEL_CHAT


class AppointmentStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


@router.get("")
def list_appointments(
    status_filter: Optional[str] = Query(None, alias="status"),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return [
        serialize_appointment(appointment)
        for appointment in appointment_service.list_appointments(db, auth.tenant_id, status_filter)
    ]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    auth: AuthContext = Depends(require_role(["owner", "order_manager"])),
    db: Session = Depends(get_db),
    realtime: RealtimeHub = Depends(get_realtime_hub),
):
    try:
        appointment = appointment_service.create_manual_appointment(db, auth.tenant_id, payload.model_dump())
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    data = serialize_appointment(appointment)
    await realtime.publish(auth.tenant_id, EVENT_APPOINTMENT_CREATED, data)
    return data


@router.patch("/{appointment_id}/status")
async def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    auth: AuthContext = Depends(require_role(["owner", "order_manager"])),
    db: Session = Depends(get_db),
    realtime: RealtimeHub = Depends(get_realtime_hub),
):
    appointment = appointment_service.get_appointment(db, auth.tenant_id, appointment_id)
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    try:
        appointment = appointment_service.update_appointment_status(db, appointment, payload.status.strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    data = serialize_appointment(appointment)
    await realtime.publish(auth.tenant_id, EVENT_APPOINTMENT_UPDATED, data)
    return data
