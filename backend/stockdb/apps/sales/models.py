from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric
from sqlalchemy.orm import relationship

from stockdb.database import Base, SoftDeleteMixin, _utcnow


class Sale(SoftDeleteMixin, Base):
    __tablename__ = "sales"
    __table_args__ = (
        Index("ix_sales_product_date", "product_id", "sale_date"),
        Index("ix_sales_batch", "batch_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)
    sale_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    product = relationship("Product", lazy="joined")
    batch = relationship("Batch", lazy="joined")

    @property
    def total_amount(self) -> Decimal:
        if self.quantity is None or self.selling_price is None:
            return Decimal("0")
        return Decimal(self.selling_price) * int(self.quantity)

    def __repr__(self) -> str:
        return f"<Sale id={self.id} batch_id={self.batch_id} qty={self.quantity}>"
