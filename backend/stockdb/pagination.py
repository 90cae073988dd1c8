from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, List, Sequence, TypeVar

from sqlalchemy.orm import Query

from stockdb.errors import ValidationError

T = TypeVar("T")

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PageRequest:
    """1-based page number and page size."""

    page: int = 1
    size: int = 5

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError("page must be >= 1.")
        if self.size < 1 or self.size > MAX_PAGE_SIZE:
            raise ValidationError(f"size must be between 1 and {MAX_PAGE_SIZE}.")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: str = "asc"


@dataclass
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    size: int = 5

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return math.ceil(self.total / self.size)


def order_clause(model: Any, sort: SortSpec, allowed: Sequence[str]):
    """
    Resolve a SortSpec into an ORDER BY clause on ``model``.

    Only whitelisted column names are accepted; anything else is a
    ValidationError rather than an attribute lookup on the model.
    """
    if sort.field not in allowed:
        raise ValidationError(
            f"Cannot sort by '{sort.field}'. Allowed: {', '.join(allowed)}."
        )
    direction = (sort.direction or "asc").strip().lower()
    if direction not in {"asc", "desc"}:
        raise ValidationError("Sort direction must be 'asc' or 'desc'.")
    column = getattr(model, sort.field)
    return column.desc() if direction == "desc" else column.asc()


def paginate(query: Query, page_request: PageRequest) -> Page:
    total = query.order_by(None).count()
    items = query.offset(page_request.offset).limit(page_request.size).all()
    return Page(items=items, total=total, page=page_request.page, size=page_request.size)
