# backend/stockdb/errors.py
"""
Typed, caller-recoverable outcomes raised by the stock services.

None of these are fatal: the unit of work rolls back and the caller decides
what to show. Routers translate them to HTTP responses with ``to_http``.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class StockError(Exception):
    """Base class for every service-level failure."""

    http_status = status.HTTP_400_BAD_REQUEST


class ValidationError(StockError):
    """Raised for non-positive quantities/prices and malformed requests."""

    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(StockError):
    """Raised when a product, batch or sale is missing or logically deleted."""

    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ExpiredBatchError(StockError):
    """Raised when selling from a batch whose expiry date is today or earlier."""

    http_status = status.HTTP_409_CONFLICT


class InsufficientStockError(StockError):
    """Raised when the requested quantity exceeds what the batch can give."""

    http_status = status.HTTP_409_CONFLICT

    def __init__(self, message: str, *, available: int, requested: int) -> None:
        super().__init__(message)
        self.available = available
        self.requested = requested


class ConflictError(StockError):
    """Raised when an operation would break a reference, e.g. deleting a sold product."""

    http_status = status.HTTP_409_CONFLICT


def to_http(exc: StockError) -> HTTPException:
    return HTTPException(status_code=exc.http_status, detail=str(exc))
