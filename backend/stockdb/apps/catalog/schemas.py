from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class ProductCreate(BaseModel):
    name: str
    sku: str
    description: Optional[str] = None
    price: Decimal = Decimal("0")


class ProductRead(ProductCreate):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class ProductPage(BaseModel):
    items: List[ProductRead]
    total: int
    page: int
    size: int
    total_pages: int

    class Config:
        from_attributes = True
