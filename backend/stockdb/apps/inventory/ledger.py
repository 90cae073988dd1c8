"""
Inventory ledger: the only code that writes batch quantities.

Every function here works inside the caller's transaction and only flushes;
the public entry points (``record_batch``, ``update_batch_dates``,
``delete_batch``) open their own unit of work.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockdb.database import unit_of_work
from stockdb.errors import InsufficientStockError, NotFoundError, ValidationError
from stockdb.utils.identifiers import format_batch_code, today
from stockdb.apps.catalog import models as catalog_models
from stockdb.apps.sales import models as sale_models
from . import models, schemas

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_batch(db: Session, batch_id: int) -> Optional[models.Batch]:
    return (
        db.query(models.Batch)
        .filter(models.Batch.id == batch_id, models.Batch.active())
        .first()
    )


def require_batch(db: Session, batch_id: int) -> models.Batch:
    batch = get_batch(db, batch_id)
    if batch is None:
        raise NotFoundError("Batch", batch_id)
    return batch


def available_quantity(db: Session, batch_id: int) -> int:
    """
    Current quantity of the batch, or 0 when it is absent.

    For display and pre-checks only; ``adjust_quantity`` is the authority.
    """
    quantity = (
        db.query(models.Batch.quantity)
        .filter(models.Batch.id == batch_id, models.Batch.active())
        .scalar()
    )
    return int(quantity or 0)


def _lock_product(db: Session, product_id: int) -> catalog_models.Product:
    # Serialises batch-code generation per product on backends with row locks.
    product = (
        db.query(catalog_models.Product)
        .filter(catalog_models.Product.id == product_id, catalog_models.Product.active())
        .with_for_update()
        .first()
    )
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


# ---------------------------------------------------------------------------
# Quantity and code generation
# ---------------------------------------------------------------------------


def generate_batch_code(db: Session, product: catalog_models.Product) -> Tuple[str, int]:
    """
    Next ``(batch_code, batch_sequence)`` for ``product``.

    Logically deleted batches still count, so a sequence is never handed out
    twice. Must run in the same transaction as the insert that uses it.
    """
    last = (
        db.query(func.max(models.Batch.batch_sequence))
        .filter(models.Batch.product_id == product.id)
        .scalar()
    )
    sequence = int(last or 0) + 1
    return format_batch_code(product.sku, sequence), sequence


def adjust_quantity(db: Session, batch_id: int, delta: int) -> None:
    """
    Apply ``quantity += delta`` as one conditional UPDATE.

    The row only changes when the result stays >= 0, so two writers racing on
    the same batch can never drive it negative.
    """
    delta = int(delta)
    db.flush()
    updated = (
        db.query(models.Batch)
        .filter(
            models.Batch.id == batch_id,
            models.Batch.active(),
            models.Batch.quantity + delta >= 0,
        )
        .update(
            {models.Batch.quantity: models.Batch.quantity + delta},
            synchronize_session="fetch",
        )
    )
    if updated:
        logger.debug("Adjusted batch %s by %+d", batch_id, delta)
        return

    batch = get_batch(db, batch_id)
    if batch is None:
        raise NotFoundError("Batch", batch_id)
    raise InsufficientStockError(
        "Inventory quantity cannot be negative. "
        f"Batch: {batch.batch_code}, Current: {batch.quantity}, Change: {delta}",
        available=int(batch.quantity),
        requested=-delta,
    )


# ---------------------------------------------------------------------------
# Inventory entry
# ---------------------------------------------------------------------------


def _resolve_expiry(payload: schemas.BatchCreate, entry_date: date) -> Optional[date]:
    if payload.expiry_days is None:
        return payload.expiry_date
    if payload.expiry_date is not None:
        raise ValidationError("Give either expiry_date or expiry_days, not both.")
    if payload.expiry_days < 0:
        raise ValidationError("expiry_days must be >= 0.")
    return entry_date + timedelta(days=payload.expiry_days)


def _validate_dates(entry_date: date, expiry_date: Optional[date]) -> None:
    if expiry_date is not None and expiry_date < entry_date:
        raise ValidationError("expiry_date cannot be before entry_date.")


def record_batch(
    db: Session,
    *,
    product_id: int,
    payload: schemas.BatchCreate,
    as_of: Optional[date] = None,
) -> models.Batch:
    if payload.quantity is None or int(payload.quantity) < 0:
        raise ValidationError("Batch quantity must be >= 0.")
    if int(payload.quantity) > models.MAX_QUANTITY:
        raise ValidationError(f"Batch quantity must be <= {models.MAX_QUANTITY}.")

    entry_date = payload.entry_date or today(as_of)
    expiry_date = _resolve_expiry(payload, entry_date)
    _validate_dates(entry_date, expiry_date)

    with unit_of_work(db):
        product = _lock_product(db, product_id)
        batch_code, sequence = generate_batch_code(db, product)
        batch = models.Batch(
            product_id=product.id,
            quantity=int(payload.quantity),
            entry_date=entry_date,
            expiry_date=expiry_date,
            batch_code=batch_code,
            batch_sequence=sequence,
        )
        db.add(batch)
        db.flush()

    logger.info("Recorded batch %s (%s) qty=%s", batch.id, batch.batch_code, batch.quantity)
    return batch


def update_batch_dates(
    db: Session,
    *,
    batch_id: int,
    payload: schemas.BatchDatesUpdate,
) -> models.Batch:
    """Edit entry/expiry dates. Quantity only moves through ``adjust_quantity``."""
    fields = payload.model_fields_set
    with unit_of_work(db):
        batch = require_batch(db, batch_id)
        entry_date = payload.entry_date if payload.entry_date is not None else batch.entry_date
        expiry_date = payload.expiry_date if "expiry_date" in fields else batch.expiry_date
        _validate_dates(entry_date, expiry_date)
        batch.entry_date = entry_date
        batch.expiry_date = expiry_date
        db.flush()

    logger.info("Updated dates of batch %s", batch_id)
    return batch


def delete_batch(db: Session, batch_id: int) -> None:
    """
    Logically delete a batch together with its sales.

    Sale quantities are not restored: the batch they would go back to is the
    one being removed.
    """
    with unit_of_work(db):
        batch = require_batch(db, batch_id)
        sales = (
            db.query(sale_models.Sale)
            .filter(sale_models.Sale.batch_id == batch.id, sale_models.Sale.active())
            .all()
        )
        for sale in sales:
            sale.mark_deleted()
        batch.mark_deleted()
        db.flush()

    logger.info("Deleted batch %s and %s sale(s)", batch_id, len(sales))
