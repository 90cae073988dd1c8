"""Create products, batches and sales tables.

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    return bool(inspect(bind).has_table(table_name))


def _soft_delete_columns() -> list:
    return [
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    if not _table_exists("products"):
        op.create_table(
            "products",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("sku", sa.String(length=64), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            *_soft_delete_columns(),
        )
        op.create_index("ix_products_id", "products", ["id"])
        op.create_index("ix_products_sku", "products", ["sku"])
        op.create_index("ix_products_is_deleted", "products", ["is_deleted"])
        op.create_index("ix_products_sku_active", "products", ["sku", "is_deleted"])

    if not _table_exists("batches"):
        op.create_table(
            "batches",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "product_id",
                sa.Integer(),
                sa.ForeignKey("products.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("entry_date", sa.Date(), nullable=False),
            sa.Column("expiry_date", sa.Date(), nullable=True),
            sa.Column("batch_code", sa.String(length=96), nullable=False),
            sa.Column("batch_sequence", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            *_soft_delete_columns(),
            sa.UniqueConstraint("product_id", "batch_sequence", name="uq_batch_product_sequence"),
            sa.CheckConstraint("quantity >= 0", name="ck_batch_quantity_non_negative"),
        )
        op.create_index("ix_batches_id", "batches", ["id"])
        op.create_index("ix_batches_product_id", "batches", ["product_id"])
        op.create_index("ix_batches_batch_code", "batches", ["batch_code"])
        op.create_index("ix_batches_is_deleted", "batches", ["is_deleted"])
        op.create_index("ix_batches_product_entry", "batches", ["product_id", "entry_date"])

    if not _table_exists("sales"):
        op.create_table(
            "sales",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "product_id",
                sa.Integer(),
                sa.ForeignKey("products.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            sa.Column(
                "batch_id",
                sa.Integer(),
                sa.ForeignKey("batches.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column("selling_price", sa.Numeric(10, 2), nullable=False),
            sa.Column("sale_date", sa.Date(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            *_soft_delete_columns(),
        )
        op.create_index("ix_sales_id", "sales", ["id"])
        op.create_index("ix_sales_product_id", "sales", ["product_id"])
        op.create_index("ix_sales_is_deleted", "sales", ["is_deleted"])
        op.create_index("ix_sales_product_date", "sales", ["product_id", "sale_date"])
        op.create_index("ix_sales_batch", "sales", ["batch_id"])


def downgrade() -> None:
    op.drop_table("sales")
    op.drop_table("batches")
    op.drop_table("products")
