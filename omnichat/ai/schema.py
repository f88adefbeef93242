from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ProductFact(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal
    stock: int = 0
    description: Optional[str] = None
    active: bool = True


class ServiceFact(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal
    duration: int
    description: Optional[str] = None
    active: bool = True


class HistoryTurn(BaseModel):
    role: str
    content: str


class ChatContext(BaseModel):
    conversation_id: str
    business_name: str
    business_type: str = "product"
    products: List[ProductFact] = Field(default_factory=list)
    services: List[ServiceFact] = Field(default_factory=list)
    history: List[HistoryTurn] = Field(default_factory=list)
