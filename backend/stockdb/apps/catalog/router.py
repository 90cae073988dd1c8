from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockdb.database import get_db, get_read_db
from stockdb.errors import StockError, to_http
from stockdb.pagination import PageRequest

from . import schemas, services

router = APIRouter(prefix="/products", tags=["products"])


@router.post(
    "",
    response_model=schemas.ProductRead,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    payload: schemas.ProductCreate,
    db: Session = Depends(get_db),
):
    try:
        return services.create_product(db, payload)
    except StockError as exc:
        raise to_http(exc)


@router.get("", response_model=schemas.ProductPage)
def list_products(
    keyword: Optional[str] = None,
    page: int = 1,
    size: int = 10,
    db: Session = Depends(get_read_db),
):
    try:
        result = services.list_products(db, keyword=keyword, page=PageRequest(page=page, size=size))
    except StockError as exc:
        raise to_http(exc)
    return schemas.ProductPage.model_validate(result)


@router.get("/{product_id}", response_model=schemas.ProductRead)
def get_product(
    product_id: int,
    db: Session = Depends(get_read_db),
):
    try:
        return services.require_product(db, product_id)
    except StockError as exc:
        raise to_http(exc)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
):
    try:
        services.delete_product(db, product_id)
    except StockError as exc:
        raise to_http(exc)
