"""
Inventory module.

Handles the batch ledger (quantities, batch codes) and batch queries.
"""

from . import models  # noqa: F401
