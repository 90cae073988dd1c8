from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockdb.database import get_db, get_read_db
from stockdb.errors import StockError, to_http
from stockdb.pagination import PageRequest, SortSpec
from stockdb.apps.catalog import services as catalog_services

from . import ledger, models, queries, schemas

router = APIRouter(prefix="", tags=["inventory"])


@router.post(
    "/products/{product_id}/batches",
    response_model=schemas.BatchRead,
    status_code=status.HTTP_201_CREATED,
)
def record_batch(
    product_id: int,
    payload: schemas.BatchCreate,
    db: Session = Depends(get_db),
):
    try:
        return ledger.record_batch(db, product_id=product_id, payload=payload)
    except StockError as exc:
        raise to_http(exc)


@router.get("/products/{product_id}/batches", response_model=schemas.BatchPage)
def list_batches(
    product_id: int,
    keyword: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    batch_status: models.BatchStatusFilterEnum = Query(models.BatchStatusFilterEnum.ALL, alias="status"),
    sort_field: str = "batch_code",
    sort_dir: str = "asc",
    page: int = 1,
    size: int = 5,
    db: Session = Depends(get_read_db),
):
    filters = schemas.BatchFilter(
        keyword=keyword,
        start_date=start_date,
        end_date=end_date,
        status=batch_status,
    )
    try:
        catalog_services.require_product(db, product_id)
        result = queries.list_batches(
            db,
            product_id=product_id,
            filters=filters,
            sort=SortSpec(field=sort_field, direction=sort_dir),
            page=PageRequest(page=page, size=size),
        )
    except StockError as exc:
        raise to_http(exc)
    return schemas.BatchPage.model_validate(result)


@router.get("/batches/by-product/{product_id}", response_model=List[schemas.BatchOption])
def batches_by_product(
    product_id: int,
    include_batch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
):
    """
    Batch picker for sale entry.

    Pass ``include_batch_id`` when editing a sale so its current batch stays
    selectable even after it has run out.
    """
    if include_batch_id is not None:
        return queries.batches_for_edit(db, product_id=product_id, current_batch_id=include_batch_id)
    return queries.available_batches(db, product_id=product_id)


@router.patch("/batches/{batch_id}", response_model=schemas.BatchRead)
def update_batch_dates(
    batch_id: int,
    payload: schemas.BatchDatesUpdate,
    db: Session = Depends(get_db),
):
    try:
        return ledger.update_batch_dates(db, batch_id=batch_id, payload=payload)
    except StockError as exc:
        raise to_http(exc)


@router.delete("/batches/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_batch(
    batch_id: int,
    db: Session = Depends(get_db),
):
    try:
        ledger.delete_batch(db, batch_id)
    except StockError as exc:
        raise to_http(exc)
