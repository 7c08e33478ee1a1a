"""Typed failures raised by the stock ledger.

Every error carries a machine readable ``code`` and a ``details`` mapping so
that callers can translate it without parsing the message.
"""

from __future__ import annotations

from typing import Any


class StockLedgerError(RuntimeError):
    """Base class for application-specific errors."""

    code = "error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class NotFoundError(StockLedgerError):
    """Raised when a referenced record does not exist."""

    code = "not_found"


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product {product_id} not found", product_id=product_id)
        self.product_id = product_id


class CategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: int) -> None:
        super().__init__(f"Category {category_id} not found", category_id=category_id)


class SupplierNotFoundError(NotFoundError):
    def __init__(self, supplier_id: int) -> None:
        super().__init__(f"Supplier {supplier_id} not found", supplier_id=supplier_id)


class InvalidArgumentError(StockLedgerError):
    """Raised for malformed caller input."""

    code = "invalid_argument"

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid {field}: {reason}", field=field, reason=reason)
        self.field = field


class InsufficientStockError(StockLedgerError):
    """Raised when a stock-out would drive the balance below zero."""

    code = "insufficient_stock"

    def __init__(self, product_id: int, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for product {product_id}: {available} available, {requested} requested",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class StorageError(StockLedgerError):
    """Raised when persistence fails. Nothing was committed, so retrying is safe."""

    code = "storage_error"

    def __init__(self, message: str, original_exception: Exception | None = None, **details: Any) -> None:
        super().__init__(message, **details)
        self.original_exception = original_exception


class LockTimeoutError(StorageError):
    """Raised when exclusive access to a product could not be obtained in time."""

    code = "lock_timeout"

    def __init__(self, key: Any, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout}s waiting for lock on {key}", key=key, timeout=timeout)


class ConflictError(StockLedgerError):
    """Raised when a uniqueness rule is violated."""

    code = "conflict"


class ReferentialIntegrityError(StockLedgerError):
    """Raised when a delete would orphan dependent records."""

    code = "integrity_violation"


class LedgerImmutableError(StockLedgerError):
    """Raised when code attempts to modify or remove a committed ledger entry."""

    code = "ledger_immutable"
