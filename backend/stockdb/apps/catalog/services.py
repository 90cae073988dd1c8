from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from stockdb.database import unit_of_work
from stockdb.errors import ConflictError, NotFoundError, ValidationError
from stockdb.pagination import Page, PageRequest, paginate
from stockdb.utils.identifiers import normalise_sku
from stockdb.apps.inventory import models as inventory_models
from stockdb.apps.sales import models as sale_models
from . import models, schemas

logger = logging.getLogger(__name__)


def get_product(db: Session, product_id: int) -> Optional[models.Product]:
    return (
        db.query(models.Product)
        .filter(models.Product.id == product_id, models.Product.active())
        .first()
    )


def require_product(db: Session, product_id: int) -> models.Product:
    product = get_product(db, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def _get_product_by_sku(db: Session, sku: str) -> Optional[models.Product]:
    return (
        db.query(models.Product)
        .filter(models.Product.sku == sku, models.Product.active())
        .first()
    )


def create_product(db: Session, payload: schemas.ProductCreate) -> models.Product:
    sku = normalise_sku(payload.sku)
    name = (payload.name or "").strip()
    if not sku:
        raise ValidationError("sku is required.")
    if not name:
        raise ValidationError("name is required.")
    price = Decimal(payload.price if payload.price is not None else 0)
    if price < 0:
        raise ValidationError("price must be >= 0.")

    with unit_of_work(db):
        if _get_product_by_sku(db, sku):
            raise ConflictError(f"A product with SKU {sku} already exists.")
        product = models.Product(
            name=name,
            description=payload.description,
            price=price,
            sku=sku,
        )
        db.add(product)
        db.flush()

    logger.info("Created product %s (sku=%s)", product.id, product.sku)
    return product


def list_products(
    db: Session,
    *,
    keyword: Optional[str] = None,
    page: PageRequest = PageRequest(),
) -> Page[models.Product]:
    query = db.query(models.Product).filter(models.Product.active())
    if keyword and keyword.strip():
        needle = keyword.strip().lower()
        query = query.filter(
            or_(
                func.lower(models.Product.name).contains(needle, autoescape=True),
                func.lower(func.coalesce(models.Product.description, "")).contains(needle, autoescape=True),
            )
        )
    return paginate(query.order_by(models.Product.id.asc()), page)


def delete_product(db: Session, product_id: int) -> None:
    """
    Logically delete a product and all of its batches.

    Refused while any active sale references the product: sales are never
    deleted implicitly from here, so there is nothing to reconcile.
    """
    with unit_of_work(db):
        product = require_product(db, product_id)
        sales_count = (
            db.query(func.count(sale_models.Sale.id))
            .filter(sale_models.Sale.product_id == product.id, sale_models.Sale.active())
            .scalar()
        )
        if sales_count:
            logger.warning("Refused to delete product %s with %s sale(s)", product.id, sales_count)
            raise ConflictError(
                "Cannot delete product with existing sales records. "
                f"This product has {sales_count} sale(s) associated with it."
            )

        batches = (
            db.query(inventory_models.Batch)
            .filter(inventory_models.Batch.product_id == product.id, inventory_models.Batch.active())
            .all()
        )
        for batch in batches:
            batch.mark_deleted()
        product.mark_deleted()
        db.flush()

    logger.info("Deleted product %s and %s batch(es)", product_id, len(batches))
