"""Structured errors raised by the catalog and the stock mutation engine.

Every error carries an explicit :class:`ErrorKind` so callers (the HTTP layer,
tests, background jobs) can branch on the kind instead of on message text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    CONFLICT = "conflict"
    INSUFFICIENT_STOCK = "insufficient_stock"
    TRANSIENT_CONFLICT = "transient_conflict"


class StockServiceError(Exception):
    kind: ErrorKind
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class ValidationError(StockServiceError):
    """Input failed schema checks; ``fields`` maps field name to messages."""

    kind = ErrorKind.VALIDATION
    status_code = 422

    def __init__(self, fields: dict[str, list[str]], message: str = "Invalid input"):
        super().__init__(message)
        self.fields = fields

    def to_dict(self) -> dict:
        return {**super().to_dict(), "fields": self.fields}


class NotFoundError(StockServiceError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class DuplicateError(StockServiceError):
    kind = ErrorKind.DUPLICATE
    status_code = 409


class ConflictError(StockServiceError):
    kind = ErrorKind.CONFLICT
    status_code = 409


class InsufficientStockError(StockServiceError):
    kind = ErrorKind.INSUFFICIENT_STOCK
    status_code = 409

    def __init__(self, current_quantity: int, requested: int):
        super().__init__(f"Insufficient stock. Current: {current_quantity}, requested: {requested}")
        self.current_quantity = current_quantity
        self.requested = requested

    def to_dict(self) -> dict:
        return {**super().to_dict(), "current_quantity": self.current_quantity}


class TransientConflictError(StockServiceError):
    """Store contention outlasted the retry budget; retry the whole action."""

    kind = ErrorKind.TRANSIENT_CONFLICT
    status_code = 503
