from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel


class SaleBase(BaseModel):
    product_id: int
    batch_id: int
    quantity: int
    selling_price: Decimal
    sale_date: date


class SaleCreate(SaleBase):
    pass


class SaleUpdate(SaleBase):
    pass


class SaleRead(SaleBase):
    id: int
    total_amount: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class SalePage(BaseModel):
    items: List[SaleRead]
    total: int
    page: int
    size: int
    total_pages: int

    class Config:
        from_attributes = True
