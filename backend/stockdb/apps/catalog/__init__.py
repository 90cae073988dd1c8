"""
Catalog module.

Product master data and product deletion with its batch cascade.
"""

from . import models  # noqa: F401
