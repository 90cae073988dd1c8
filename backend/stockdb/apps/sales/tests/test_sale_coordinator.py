from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from stockdb.errors import (
    ExpiredBatchError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from stockdb.pagination import PageRequest, SortSpec
from stockdb.apps.catalog import schemas as catalog_schemas
from stockdb.apps.catalog import services as catalog_services
from stockdb.apps.inventory import ledger
from stockdb.apps.inventory import schemas as inventory_schemas
from stockdb.apps.sales import models as sale_models
from stockdb.apps.sales import schemas as sale_schemas
from stockdb.apps.sales import services as sale_services

TODAY = date.today()


def _create_product(db, sku: str = "SKU1"):
    return catalog_services.create_product(
        db,
        catalog_schemas.ProductCreate(name=f"Product {sku}", sku=sku, price=Decimal("3.50")),
    )


def _record_batch(db, product, quantity: int = 10, **kwargs):
    return ledger.record_batch(
        db,
        product_id=product.id,
        payload=inventory_schemas.BatchCreate(quantity=quantity, **kwargs),
    )


def _sale_payload(product, batch, quantity: int, price: str = "4.00", schema=sale_schemas.SaleCreate):
    return schema(
        product_id=product.id,
        batch_id=batch.id,
        quantity=quantity,
        selling_price=Decimal(price),
        sale_date=TODAY,
    )


def _qty(db, batch) -> int:
    return ledger.available_quantity(db, batch.id)


def test_sale_lifecycle_keeps_batch_quantity_consistent(db_session):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product, quantity=10)
    assert batch.batch_code == "SKU1-1"

    sale = sale_services.create_sale(db_session, _sale_payload(product, batch, 4))
    assert _qty(db_session, batch) == 6
    assert sale.total_amount == Decimal("16.00")

    with pytest.raises(InsufficientStockError) as excinfo:
        sale_services.create_sale(db_session, _sale_payload(product, batch, 7))
    assert "Available: 6, Requested: 7" in str(excinfo.value)
    assert _qty(db_session, batch) == 6
    assert db_session.query(sale_models.Sale).count() == 1

    updated = sale_services.update_sale(
        db_session,
        sale.id,
        _sale_payload(product, batch, 6, schema=sale_schemas.SaleUpdate),
    )
    assert updated.quantity == 6
    assert _qty(db_session, batch) == 4

    sale_services.delete_sale(db_session, sale.id)
    assert _qty(db_session, batch) == 10
    assert sale_services.get_sale(db_session, sale.id) is None


def test_create_sale_refuses_expired_batch(db_session):
    product = _create_product(db_session)
    batch = _record_batch(
        db_session,
        product,
        quantity=10,
        entry_date=TODAY - timedelta(days=10),
        expiry_date=TODAY - timedelta(days=1),
    )

    with pytest.raises(ExpiredBatchError):
        sale_services.create_sale(db_session, _sale_payload(product, batch, 1))

    assert _qty(db_session, batch) == 10
    assert db_session.query(sale_models.Sale).count() == 0


def test_create_sale_expiry_is_inclusive_of_today(db_session):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product, entry_date=date(2026, 1, 1), expiry_date=date(2026, 6, 1))

    sale_services.create_sale(db_session, _sale_payload(product, batch, 1), as_of=date(2026, 5, 31))
    with pytest.raises(ExpiredBatchError):
        sale_services.create_sale(db_session, _sale_payload(product, batch, 1), as_of=date(2026, 6, 1))


def test_create_sale_validation(db_session):
    product = _create_product(db_session)
    other = _create_product(db_session, sku="SKU2")
    batch = _record_batch(db_session, product, quantity=10)

    with pytest.raises(ValidationError):
        sale_services.create_sale(db_session, _sale_payload(product, batch, 0))
    with pytest.raises(ValidationError):
        sale_services.create_sale(db_session, _sale_payload(product, batch, -2))
    with pytest.raises(ValidationError):
        sale_services.create_sale(db_session, _sale_payload(product, batch, 1, price="0"))
    with pytest.raises(ValidationError):
        sale_services.create_sale(db_session, _sale_payload(other, batch, 1))

    assert _qty(db_session, batch) == 10
    assert db_session.query(sale_models.Sale).count() == 0


def test_create_sale_missing_references(db_session):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product)
    missing_batch = sale_schemas.SaleCreate(
        product_id=product.id,
        batch_id=999,
        quantity=1,
        selling_price=Decimal("1.00"),
        sale_date=TODAY,
    )
    missing_product = sale_schemas.SaleCreate(
        product_id=999,
        batch_id=batch.id,
        quantity=1,
        selling_price=Decimal("1.00"),
        sale_date=TODAY,
    )

    with pytest.raises(NotFoundError):
        sale_services.create_sale(db_session, missing_batch)
    with pytest.raises(NotFoundError):
        sale_services.create_sale(db_session, missing_product)
    assert _qty(db_session, batch) == 10


def test_stale_pre_check_cannot_oversell(db_session, monkeypatch):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product, quantity=3)
    monkeypatch.setattr(ledger, "available_quantity", lambda db, batch_id: 100)

    with pytest.raises(InsufficientStockError):
        sale_services.create_sale(db_session, _sale_payload(product, batch, 5))

    monkeypatch.undo()
    assert _qty(db_session, batch) == 3
    assert db_session.query(sale_models.Sale).count() == 0


def test_update_sale_moves_stock_between_batches(db_session):
    product = _create_product(db_session)
    batch_a = _record_batch(db_session, product, quantity=10)
    batch_b = _record_batch(db_session, product, quantity=5)
    sale = sale_services.create_sale(db_session, _sale_payload(product, batch_a, 4))

    updated = sale_services.update_sale(
        db_session,
        sale.id,
        _sale_payload(product, batch_b, 5, schema=sale_schemas.SaleUpdate),
    )

    assert updated.batch_id == batch_b.id
    assert _qty(db_session, batch_a) == 10
    assert _qty(db_session, batch_b) == 0


def test_update_sale_to_other_batch_rolls_back_on_shortage(db_session):
    product = _create_product(db_session)
    batch_a = _record_batch(db_session, product, quantity=10)
    batch_b = _record_batch(db_session, product, quantity=5)
    sale = sale_services.create_sale(db_session, _sale_payload(product, batch_a, 4))

    with pytest.raises(InsufficientStockError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, batch_b, 6, schema=sale_schemas.SaleUpdate),
        )

    stored = sale_services.require_sale(db_session, sale.id)
    assert (stored.batch_id, stored.quantity) == (batch_a.id, 4)
    assert _qty(db_session, batch_a) == 6
    assert _qty(db_session, batch_b) == 5


def test_update_sale_same_batch_counts_own_quantity(db_session):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product, quantity=10)
    sale = sale_services.create_sale(db_session, _sale_payload(product, batch, 4))

    sale_services.update_sale(
        db_session,
        sale.id,
        _sale_payload(product, batch, 10, schema=sale_schemas.SaleUpdate),
    )
    assert _qty(db_session, batch) == 0

    with pytest.raises(InsufficientStockError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, batch, 11, schema=sale_schemas.SaleUpdate),
        )
    assert _qty(db_session, batch) == 0

    sale_services.update_sale(
        db_session,
        sale.id,
        _sale_payload(product, batch, 2, schema=sale_schemas.SaleUpdate),
    )
    assert _qty(db_session, batch) == 8


def test_update_sale_on_expired_batch_allows_price_only_changes(db_session):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product, entry_date=date(2026, 1, 1), expiry_date=date(2026, 2, 1))
    sale = sale_services.create_sale(db_session, _sale_payload(product, batch, 3), as_of=date(2026, 1, 10))
    later = date(2026, 3, 1)

    repriced = sale_services.update_sale(
        db_session,
        sale.id,
        _sale_payload(product, batch, 3, price="9.50", schema=sale_schemas.SaleUpdate),
        as_of=later,
    )
    assert repriced.selling_price == Decimal("9.50")

    with pytest.raises(ExpiredBatchError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, batch, 2, schema=sale_schemas.SaleUpdate),
            as_of=later,
        )
    assert _qty(db_session, batch) == 7


def test_update_sale_validation_leaves_state_unchanged(db_session):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product, quantity=10)
    sale = sale_services.create_sale(db_session, _sale_payload(product, batch, 4))

    with pytest.raises(ValidationError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, batch, 0, schema=sale_schemas.SaleUpdate),
        )
    with pytest.raises(ValidationError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, batch, 4, price="-1", schema=sale_schemas.SaleUpdate),
        )

    stored = sale_services.require_sale(db_session, sale.id)
    assert stored.quantity == 4
    assert stored.selling_price == Decimal("4.00")
    assert _qty(db_session, batch) == 6


def test_selling_price_finer_than_cents_is_refused(db_session):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product, quantity=5)

    with pytest.raises(ValidationError):
        sale_services.create_sale(db_session, _sale_payload(product, batch, 2, price="0.001"))
    with pytest.raises(ValidationError):
        sale_services.create_sale(db_session, _sale_payload(product, batch, 2, price="100000000.00"))
    assert _qty(db_session, batch) == 5
    assert db_session.query(sale_models.Sale).count() == 0

    sale = sale_services.create_sale(db_session, _sale_payload(product, batch, 2, price="0.01"))
    with pytest.raises(ValidationError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, batch, 2, price="1.005", schema=sale_schemas.SaleUpdate),
        )
    with pytest.raises(ValidationError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, batch, 3, price="0.001", schema=sale_schemas.SaleUpdate),
        )

    db_session.expire_all()
    stored = sale_services.require_sale(db_session, sale.id)
    assert stored.selling_price == Decimal("0.01")
    assert stored.total_amount == Decimal("0.02")
    assert _qty(db_session, batch) == 3


def test_update_sale_to_deleted_or_expired_batch_changes_nothing(db_session):
    product = _create_product(db_session)
    as_of = date(2026, 3, 1)
    source = _record_batch(db_session, product, quantity=10, entry_date=date(2026, 1, 1))
    removed = _record_batch(db_session, product, quantity=5, entry_date=date(2026, 1, 1))
    expired = _record_batch(
        db_session,
        product,
        quantity=5,
        entry_date=date(2026, 1, 1),
        expiry_date=date(2026, 2, 1),
    )
    ledger.delete_batch(db_session, removed.id)
    sale = sale_services.create_sale(db_session, _sale_payload(product, source, 4), as_of=as_of)

    with pytest.raises(NotFoundError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, removed, 2, schema=sale_schemas.SaleUpdate),
            as_of=as_of,
        )
    with pytest.raises(ExpiredBatchError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, expired, 2, schema=sale_schemas.SaleUpdate),
            as_of=as_of,
        )

    db_session.expire_all()
    stored = sale_services.require_sale(db_session, sale.id)
    assert (stored.batch_id, stored.quantity) == (source.id, 4)
    assert _qty(db_session, source) == 6
    assert _qty(db_session, expired) == 5
    assert _qty(db_session, removed) == 0


def test_deleted_sale_cannot_be_changed_again(db_session):
    product = _create_product(db_session)
    batch = _record_batch(db_session, product, quantity=10)
    sale = sale_services.create_sale(db_session, _sale_payload(product, batch, 4))
    sale_services.delete_sale(db_session, sale.id)

    with pytest.raises(NotFoundError):
        sale_services.delete_sale(db_session, sale.id)
    with pytest.raises(NotFoundError):
        sale_services.update_sale(
            db_session,
            sale.id,
            _sale_payload(product, batch, 1, schema=sale_schemas.SaleUpdate),
        )
    assert _qty(db_session, batch) == 10


def test_list_sales_orders_and_filters(db_session):
    product = _create_product(db_session)
    other = _create_product(db_session, sku="SKU2")
    batch = _record_batch(db_session, product, quantity=20)
    other_batch = _record_batch(db_session, other, quantity=20)
    for offset, quantity in ((2, 1), (0, 2), (1, 3)):
        payload = _sale_payload(product, batch, quantity)
        payload.sale_date = TODAY - timedelta(days=offset)
        sale_services.create_sale(db_session, payload)
    sale_services.create_sale(db_session, _sale_payload(other, other_batch, 5))

    newest_first = sale_services.list_sales_for_product(db_session, product_id=product.id)
    assert [s.quantity for s in newest_first.items] == [2, 3, 1]
    assert newest_first.total == 3

    by_quantity = sale_services.list_sales(
        db_session,
        sort=SortSpec(field="quantity", direction="asc"),
        page=PageRequest(page=1, size=2),
    )
    assert [s.quantity for s in by_quantity.items] == [1, 2]
    assert (by_quantity.total, by_quantity.total_pages) == (4, 2)

    with pytest.raises(ValidationError):
        sale_services.list_sales(db_session, sort=SortSpec(field="product"))
