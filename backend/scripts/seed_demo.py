from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

import stockdb  # noqa: F401
from stockdb.database import Base, WriteSessionLocal, write_engine
from stockdb.apps.catalog import models as catalog_models
from stockdb.apps.catalog import schemas as catalog_schemas
from stockdb.apps.catalog import services as catalog_services
from stockdb.apps.inventory import ledger
from stockdb.apps.inventory import schemas as inventory_schemas
from stockdb.apps.sales import schemas as sale_schemas
from stockdb.apps.sales import services as sale_services

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    ("Whole Milk 1L", "MILK1L", Decimal("1.20")),
    ("Rye Bread", "RYE", Decimal("2.50")),
]


def _get_or_create_product(db, name: str, sku: str, price: Decimal) -> catalog_models.Product:
    product = (
        db.query(catalog_models.Product)
        .filter(catalog_models.Product.sku == sku, catalog_models.Product.active())
        .first()
    )
    if product:
        return product
    return catalog_services.create_product(
        db,
        catalog_schemas.ProductCreate(name=name, sku=sku, price=price),
    )


def _seed_batches_and_sales(db, product: catalog_models.Product) -> None:
    today = date.today()
    fresh = ledger.record_batch(
        db,
        product_id=product.id,
        payload=inventory_schemas.BatchCreate(quantity=40, entry_date=today, expiry_days=14),
    )
    ledger.record_batch(
        db,
        product_id=product.id,
        payload=inventory_schemas.BatchCreate(
            quantity=10,
            entry_date=today - timedelta(days=30),
            expiry_date=today - timedelta(days=2),
        ),
    )
    sale_services.create_sale(
        db,
        sale_schemas.SaleCreate(
            product_id=product.id,
            batch_id=fresh.id,
            quantity=5,
            selling_price=product.price,
            sale_date=today,
        ),
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=write_engine)
    db = WriteSessionLocal()
    try:
        for name, sku, price in DEMO_PRODUCTS:
            product = _get_or_create_product(db, name, sku, price)
            _seed_batches_and_sales(db, product)
            logger.info("Seeded demo stock for %s", product.sku)
    finally:
        db.close()


if __name__ == "__main__":
    main()
