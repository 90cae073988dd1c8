from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer, Numeric, String, Text

from stockdb.database import Base, SoftDeleteMixin, _utcnow


class Product(SoftDeleteMixin, Base):
    """
    Catalog item sold out of batches.

    ``price`` is the list price and is informational only; every sale records
    its own selling price.
    """

    __tablename__ = "products"
    __table_args__ = (Index("ix_products_sku_active", "sku", "is_deleted"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    sku = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku}>"
