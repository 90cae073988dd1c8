# backend/stockdb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- String-based relationships (Sale.batch, Batch.product) resolve.

The actual model classes are kept in stockdb/apps/*/models.py.
"""

from .apps.catalog import models as catalog_models        # products
from .apps.inventory import models as inventory_models    # batches
from .apps.sales import models as sales_models            # sales

__all__ = [
    "catalog_models",
    "inventory_models",
    "sales_models",
]
