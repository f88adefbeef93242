from __future__ import annotations

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from omnichat.core.database import get_db
from omnichat.deps import AuthContext, get_realtime_hub, require_role
from omnichat.schemas.channel import CHANNEL_CHAT
from omnichat.schemas.realtime import EVENT_ORDER_CREATED, EVENT_ORDER_UPDATED
from omnichat.services import orders as order_service
from omnichat.services.realtime import RealtimeHub
from omnichat.services.serializers import serialize_order

router = APIRouter(prefix="/api/orders", tags=["orders"])

ORDER_READ_ROLES = ["owner", "order_manager", "accountant"]
ORDER_WRITE_ROLES = ["owner", "order_manager"]


class OrderCreate(BaseModel):
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    quantity: int = Field(..., gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    cost: Optional[Decimal] = Field(None, ge=0)
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    channel: str = CHANNEL_CHAT


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


@router.get("")
def list_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    auth: AuthContext = Depends(require_role(ORDER_READ_ROLES)),
    db: Session = Depends(get_db),
):
    return [serialize_order(order) for order in order_service.list_orders(db, auth.tenant_id, status_filter)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    auth: AuthContext = Depends(require_role(ORDER_WRITE_ROLES)),
    db: Session = Depends(get_db),
    realtime: RealtimeHub = Depends(get_realtime_hub),
):
    if payload.product_id is None and payload.price is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="price is required without product_id")
    try:
        order = order_service.create_manual_order(db, auth.tenant_id, payload.model_dump())
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    data = serialize_order(order)
    await realtime.publish(auth.tenant_id, EVENT_ORDER_CREATED, data)
    return data


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    auth: AuthContext = Depends(require_role(ORDER_WRITE_ROLES)),
    db: Session = Depends(get_db),
    realtime: RealtimeHub = Depends(get_realtime_hub),
):
    order = order_service.get_order(db, auth.tenant_id, order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    try:
        order = order_service.update_order_status(db, order, payload.status.strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    data = serialize_order(order)
    await realtime.publish(auth.tenant_id, EVENT_ORDER_UPDATED, data)
    return data
