from __future__ import annotations

import enum
from datetime import date
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from stockdb.database import Base, SoftDeleteMixin, _utcnow

# Largest value the Integer quantity columns can hold.
MAX_QUANTITY = 2_147_483_647


class BatchStatusEnum(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class BatchStatusFilterEnum(str, enum.Enum):
    ALL = "ALL"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class Batch(SoftDeleteMixin, Base):
    __tablename__ = "batches"
    __table_args__ = (
        UniqueConstraint("product_id", "batch_sequence", name="uq_batch_product_sequence"),
        CheckConstraint("quantity >= 0", name="ck_batch_quantity_non_negative"),
        Index("ix_batches_product_entry", "product_id", "entry_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    entry_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=True)
    batch_code = Column(String(96), nullable=False, index=True)
    batch_sequence = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    product = relationship("Product", lazy="joined")

    def is_expired(self, as_of: Optional[date] = None) -> bool:
        if self.expiry_date is None:
            return False
        return self.expiry_date <= (as_of or date.today())

    def status_on(self, as_of: Optional[date] = None) -> BatchStatusEnum:
        return BatchStatusEnum.EXPIRED if self.is_expired(as_of) else BatchStatusEnum.ACTIVE

    @property
    def status(self) -> BatchStatusEnum:
        # Derived on every read; never stored.
        return self.status_on()

    def __repr__(self) -> str:
        return f"<Batch id={self.id} code={self.batch_code} qty={self.quantity}>"
