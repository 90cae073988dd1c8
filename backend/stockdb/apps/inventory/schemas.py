from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from . import models


class BatchCreate(BaseModel):
    quantity: int
    entry_date: Optional[date] = None
    expiry_date: Optional[date] = None
    # Alternative to expiry_date: shelf life counted from entry_date.
    expiry_days: Optional[int] = None


class BatchDatesUpdate(BaseModel):
    entry_date: Optional[date] = None
    expiry_date: Optional[date] = None


class BatchRead(BaseModel):
    id: int
    product_id: int
    quantity: int
    entry_date: date
    expiry_date: Optional[date] = None
    batch_code: str
    batch_sequence: int
    status: models.BatchStatusEnum
    created_at: datetime

    class Config:
        from_attributes = True


class BatchOption(BaseModel):
    """Compact row for sale-entry batch pickers."""

    id: int
    batch_code: str
    quantity: int
    expiry_date: Optional[date] = None

    class Config:
        from_attributes = True


class BatchFilter(BaseModel):
    keyword: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: models.BatchStatusFilterEnum = models.BatchStatusFilterEnum.ALL


class BatchPage(BaseModel):
    items: List[BatchRead]
    total: int
    page: int
    size: int
    total_pages: int

    class Config:
        from_attributes = True
