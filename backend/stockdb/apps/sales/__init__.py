"""
Sales module.

Coordinates sale create/update/delete against the inventory ledger.
"""

from . import models  # noqa: F401
