from __future__ import annotations

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from omnichat.core.database import get_db
from omnichat.deps import AuthContext, get_auth_context, require_role
from omnichat.services import catalog_store
from omnichat.services.serializers import serialize_product, serialize_service

router = APIRouter(prefix="/api", tags=["catalog"])


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    cost: Decimal = Field(Decimal("0"), ge=0)
    stock: int = Field(0, ge=0)
    active: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    cost: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    duration: int = Field(..., gt=0)
    active: bool = True


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    duration: Optional[int] = Field(None, gt=0)
    active: Optional[bool] = None


def _require_product(db: Session, tenant_id: int, product_id: int):
    product = catalog_store.get_product(db, tenant_id, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def _require_service(db: Session, tenant_id: int, service_id: int):
    service = catalog_store.get_service(db, tenant_id, service_id)
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return service


@router.get("/products")
def list_products(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return [serialize_product(product) for product in catalog_store.list_products(db, auth.tenant_id)]


@router.post("/products", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    auth: AuthContext = Depends(require_role(["owner"])),
    db: Session = Depends(get_db),
):
    product = catalog_store.create_product(db, auth.tenant_id, payload.model_dump())
    return serialize_product(product)


@router.put("/products/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    auth: AuthContext = Depends(require_role(["owner"])),
    db: Session = Depends(get_db),
):
    product = _require_product(db, auth.tenant_id, product_id)
    product = catalog_store.update_product(db, product, payload.model_dump(exclude_unset=True))
    return serialize_product(product)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    auth: AuthContext = Depends(require_role(["owner"])),
    db: Session = Depends(get_db),
):
    product = _require_product(db, auth.tenant_id, product_id)
    catalog_store.delete_product(db, product)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/services")
def list_services(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return [serialize_service(service) for service in catalog_store.list_services(db, auth.tenant_id)]


@router.post("/services", status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate,
    auth: AuthContext = Depends(require_role(["owner"])),
    db: Session = Depends(get_db),
):
    service = catalog_store.create_service(db, auth.tenant_id, payload.model_dump())
    return serialize_service(service)


@router.put("/services/{service_id}")
def update_service(
    service_id: int,
    payload: ServiceUpdate,
    auth: AuthContext = Depends(require_role(["owner"])),
    db: Session = Depends(get_db),
):
    service = _require_service(db, auth.tenant_id, service_id)
    service = catalog_store.update_service(db, service, payload.model_dump(exclude_unset=True))
    return serialize_service(service)


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    auth: AuthContext = Depends(require_role(["owner"])),
    db: Session = Depends(get_db),
):
    service = _require_service(db, auth.tenant_id, service_id)
    catalog_store.delete_service(db, service)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
