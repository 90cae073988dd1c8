from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockdb.database import get_db, get_read_db
from stockdb.errors import StockError, to_http
from stockdb.pagination import PageRequest, SortSpec

from . import schemas, services

router = APIRouter(prefix="/sales", tags=["sales"])


@router.post(
    "",
    response_model=schemas.SaleRead,
    status_code=status.HTTP_201_CREATED,
)
def create_sale(
    payload: schemas.SaleCreate,
    db: Session = Depends(get_db),
):
    try:
        return services.create_sale(db, payload)
    except StockError as exc:
        raise to_http(exc)


@router.get("", response_model=schemas.SalePage)
def list_sales(
    product_id: Optional[int] = None,
    sort_field: str = "sale_date",
    sort_dir: str = "desc",
    page: int = 1,
    size: int = 10,
    db: Session = Depends(get_read_db),
):
    try:
        page_request = PageRequest(page=page, size=size)
        if product_id is not None:
            result = services.list_sales_for_product(db, product_id=product_id, page=page_request)
        else:
            result = services.list_sales(
                db,
                sort=SortSpec(field=sort_field, direction=sort_dir),
                page=page_request,
            )
    except StockError as exc:
        raise to_http(exc)
    return schemas.SalePage.model_validate(result)


@router.get("/{sale_id}", response_model=schemas.SaleRead)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_read_db),
):
    try:
        return services.require_sale(db, sale_id)
    except StockError as exc:
        raise to_http(exc)


@router.put("/{sale_id}", response_model=schemas.SaleRead)
def update_sale(
    sale_id: int,
    payload: schemas.SaleUpdate,
    db: Session = Depends(get_db),
):
    try:
        return services.update_sale(db, sale_id, payload)
    except StockError as exc:
        raise to_http(exc)


@router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(
    sale_id: int,
    db: Session = Depends(get_db),
):
    try:
        services.delete_sale(db, sale_id)
    except StockError as exc:
        raise to_http(exc)
