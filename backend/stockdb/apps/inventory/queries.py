from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from stockdb.pagination import Page, PageRequest, SortSpec, order_clause, paginate
from stockdb.utils.identifiers import today
from . import ledger, models, schemas

SORTABLE_BATCH_FIELDS = (
    "id",
    "quantity",
    "entry_date",
    "expiry_date",
    "batch_code",
    "batch_sequence",
    "created_at",
)

DEFAULT_BATCH_SORT = SortSpec(field="batch_code", direction="asc")


def not_expired_clause(as_of: date):
    return or_(models.Batch.expiry_date.is_(None), models.Batch.expiry_date > as_of)


def expired_clause(as_of: date):
    return and_(models.Batch.expiry_date.isnot(None), models.Batch.expiry_date <= as_of)


def compose_batch_filters(filters: schemas.BatchFilter, *, as_of: Optional[date] = None) -> list:
    """
    Turn a BatchFilter into a list of conjunctive SQL clauses.

    Pure: no session access, so the same filter always yields the same
    predicates for a given ``as_of``.
    """
    as_of = today(as_of)
    clauses = []

    keyword = (filters.keyword or "").strip()
    if keyword:
        clauses.append(func.lower(models.Batch.batch_code).contains(keyword.lower(), autoescape=True))

    if filters.start_date is not None:
        clauses.append(models.Batch.entry_date >= filters.start_date)
    if filters.end_date is not None:
        clauses.append(models.Batch.entry_date <= filters.end_date)

    if filters.status == models.BatchStatusFilterEnum.ACTIVE:
        clauses.append(not_expired_clause(as_of))
    elif filters.status == models.BatchStatusFilterEnum.EXPIRED:
        clauses.append(expired_clause(as_of))

    return clauses


def list_batches(
    db: Session,
    *,
    product_id: int,
    filters: Optional[schemas.BatchFilter] = None,
    sort: SortSpec = DEFAULT_BATCH_SORT,
    page: PageRequest = PageRequest(),
    as_of: Optional[date] = None,
) -> Page[models.Batch]:
    filters = filters or schemas.BatchFilter()
    query = (
        db.query(models.Batch)
        .filter(models.Batch.product_id == product_id, models.Batch.active())
        .filter(*compose_batch_filters(filters, as_of=as_of))
        .order_by(order_clause(models.Batch, sort, SORTABLE_BATCH_FIELDS))
    )
    return paginate(query, page)


def available_batches(
    db: Session,
    *,
    product_id: int,
    as_of: Optional[date] = None,
) -> List[models.Batch]:
    """Batches a new sale may draw from: in stock and not expired."""
    return (
        db.query(models.Batch)
        .filter(
            models.Batch.product_id == product_id,
            models.Batch.active(),
            models.Batch.quantity > 0,
            not_expired_clause(today(as_of)),
        )
        .order_by(models.Batch.id.asc())
        .all()
    )


def batches_for_edit(
    db: Session,
    *,
    product_id: int,
    current_batch_id: Optional[int],
    as_of: Optional[date] = None,
) -> List[models.Batch]:
    """
    Batches offered when editing a sale.

    The sale's current batch is put first even when it has no stock left,
    but only if it belongs to ``product_id`` and has not expired. An expired
    current batch is left out so the caller has to pick a valid one.
    """
    batches = available_batches(db, product_id=product_id, as_of=as_of)
    if current_batch_id is None or any(b.id == current_batch_id for b in batches):
        return batches

    current = ledger.get_batch(db, current_batch_id)
    if current is not None and current.product_id == product_id and not current.is_expired(today(as_of)):
        batches.insert(0, current)
    return batches
