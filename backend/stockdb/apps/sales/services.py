"""
Sale transaction coordinator.

Create, update and delete each run as one unit of work against the inventory
ledger: either the sale and every batch quantity it touches change together,
or nothing changes.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from stockdb.database import unit_of_work
from stockdb.errors import ExpiredBatchError, InsufficientStockError, NotFoundError, ValidationError
from stockdb.pagination import Page, PageRequest, SortSpec, order_clause, paginate
from stockdb.utils.identifiers import today
from stockdb.apps.catalog import models as catalog_models
from stockdb.apps.catalog import services as catalog_services
from stockdb.apps.inventory import ledger
from stockdb.apps.inventory import models as inventory_models
from . import models, schemas

logger = logging.getLogger(__name__)

SORTABLE_SALE_FIELDS = (
    "id",
    "product_id",
    "batch_id",
    "quantity",
    "selling_price",
    "sale_date",
    "created_at",
)

DEFAULT_SALE_SORT = SortSpec(field="sale_date", direction="desc")

PRICE_STEP = Decimal("0.01")
MAX_PRICE = Decimal("99999999.99")


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_sale(db: Session, sale_id: int) -> Optional[models.Sale]:
    return (
        db.query(models.Sale)
        .filter(models.Sale.id == sale_id, models.Sale.active())
        .first()
    )


def require_sale(db: Session, sale_id: int) -> models.Sale:
    sale = get_sale(db, sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(
    db: Session,
    *,
    sort: SortSpec = DEFAULT_SALE_SORT,
    page: PageRequest = PageRequest(),
) -> Page[models.Sale]:
    query = (
        db.query(models.Sale)
        .filter(models.Sale.active())
        .order_by(order_clause(models.Sale, sort, SORTABLE_SALE_FIELDS), models.Sale.id.desc())
    )
    return paginate(query, page)


def list_sales_for_product(
    db: Session,
    *,
    product_id: int,
    page: PageRequest = PageRequest(),
) -> Page[models.Sale]:
    query = (
        db.query(models.Sale)
        .filter(models.Sale.product_id == product_id, models.Sale.active())
        .order_by(models.Sale.sale_date.desc(), models.Sale.id.desc())
    )
    return paginate(query, page)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def _ensure_not_expired(batch: inventory_models.Batch, as_of: Optional[date]) -> None:
    if batch.is_expired(today(as_of)):
        logger.warning("Refused sale against expired batch %s", batch.batch_code)
        raise ExpiredBatchError(
            f"Cannot sell from expired batch. Batch: {batch.batch_code}, "
            f"Expired on: {batch.expiry_date.isoformat()}"
        )


def _validate_sale(
    *,
    product: catalog_models.Product,
    batch: inventory_models.Batch,
    quantity: int,
    selling_price: Decimal,
) -> None:
    if quantity is None or quantity <= 0:
        raise ValidationError("Sale quantity must be greater than 0")
    if quantity > inventory_models.MAX_QUANTITY:
        raise ValidationError(f"Sale quantity must be <= {inventory_models.MAX_QUANTITY}")
    if selling_price is None or Decimal(selling_price) <= 0:
        raise ValidationError("Selling price must be greater than 0")
    if Decimal(selling_price) > MAX_PRICE:
        raise ValidationError(f"Selling price must be <= {MAX_PRICE}")
    # Stored as Numeric(10, 2); anything finer would be rounded on write.
    if Decimal(selling_price) != Decimal(selling_price).quantize(PRICE_STEP):
        raise ValidationError("Selling price must have at most 2 decimal places")
    if batch.product_id != product.id:
        raise ValidationError(
            f"Batch {batch.batch_code} does not belong to product {product.sku}."
        )


# ---------------------------------------------------------------------------
# Coordinator operations
# ---------------------------------------------------------------------------


def create_sale(
    db: Session,
    payload: schemas.SaleCreate,
    *,
    as_of: Optional[date] = None,
) -> models.Sale:
    with unit_of_work(db):
        batch = ledger.require_batch(db, payload.batch_id)
        _ensure_not_expired(batch, as_of)

        available = ledger.available_quantity(db, batch.id)
        if payload.quantity > available:
            raise InsufficientStockError(
                f"Insufficient inventory. Available: {available}, Requested: {payload.quantity}",
                available=available,
                requested=payload.quantity,
            )

        product = catalog_services.require_product(db, payload.product_id)
        _validate_sale(
            product=product,
            batch=batch,
            quantity=payload.quantity,
            selling_price=payload.selling_price,
        )

        ledger.adjust_quantity(db, batch.id, -payload.quantity)

        sale = models.Sale(
            product=product,
            batch=batch,
            quantity=payload.quantity,
            selling_price=Decimal(payload.selling_price),
            sale_date=payload.sale_date,
        )
        db.add(sale)
        db.flush()

    logger.info("Created sale %s: %s x %s from batch %s", sale.id, sale.quantity, sale.selling_price, batch.batch_code)
    return sale


def update_sale(
    db: Session,
    sale_id: int,
    payload: schemas.SaleUpdate,
    *,
    as_of: Optional[date] = None,
) -> models.Sale:
    """
    Rewrite a sale, moving stock between batches as needed.

    Same batch: the sale's own prior quantity counts as available, and only
    the difference is deducted. Different batch: the old quantity goes back
    to the old batch and the full new quantity comes out of the new one.
    """
    with unit_of_work(db):
        sale = require_sale(db, sale_id)
        old_batch_id = sale.batch_id
        old_quantity = int(sale.quantity)

        batch_changed = old_batch_id != payload.batch_id
        quantity_changed = old_quantity != payload.quantity

        product = catalog_services.require_product(db, payload.product_id)

        if batch_changed or quantity_changed:
            batch = ledger.require_batch(db, payload.batch_id)
            _ensure_not_expired(batch, as_of)

            current = ledger.available_quantity(db, batch.id)
            effective = current if batch_changed else current + old_quantity
            if payload.quantity > effective:
                held = 0 if batch_changed else old_quantity
                raise InsufficientStockError(
                    f"Insufficient inventory. Effective available: {effective} "
                    f"(current: {current}, from this sale: {held}), Requested: {payload.quantity}",
                    available=effective,
                    requested=payload.quantity,
                )

            _validate_sale(
                product=product,
                batch=batch,
                quantity=payload.quantity,
                selling_price=payload.selling_price,
            )

            if batch_changed:
                ledger.adjust_quantity(db, old_batch_id, old_quantity)
                ledger.adjust_quantity(db, batch.id, -payload.quantity)
            else:
                ledger.adjust_quantity(db, batch.id, -(payload.quantity - old_quantity))
        else:
            batch = sale.batch
            _validate_sale(
                product=product,
                batch=batch,
                quantity=payload.quantity,
                selling_price=payload.selling_price,
            )

        sale.product = product
        sale.batch = batch
        sale.quantity = payload.quantity
        sale.selling_price = Decimal(payload.selling_price)
        sale.sale_date = payload.sale_date
        db.flush()

    logger.info(
        "Updated sale %s: batch %s -> %s, qty %s -> %s",
        sale_id,
        old_batch_id,
        sale.batch_id,
        old_quantity,
        sale.quantity,
    )
    return sale


def delete_sale(db: Session, sale_id: int) -> None:
    with unit_of_work(db):
        sale = require_sale(db, sale_id)
        ledger.adjust_quantity(db, sale.batch_id, int(sale.quantity))
        sale.mark_deleted()
        db.flush()

    logger.info("Deleted sale %s, restored %s to batch %s", sale_id, sale.quantity, sale.batch_id)
