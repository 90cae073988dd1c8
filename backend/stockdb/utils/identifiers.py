from __future__ import annotations

from datetime import date
from typing import Optional


def normalise_sku(sku: str) -> str:
    return (sku or "").strip().upper()


def format_batch_code(sku: str, sequence: int) -> str:
    """
    Human-readable batch identifier: ``{SKU}-{sequence}``.

    Example:
      SKU1-3
    """
    return f"{normalise_sku(sku)}-{int(sequence)}"


def today(as_of: Optional[date] = None) -> date:
    return as_of or date.today()
