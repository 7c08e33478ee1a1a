"""Stock transaction posting engine.

The engine is the single writer of product balances and the only creator of
ledger entries. A posting reads the balance, computes the new one for the
transaction kind, and commits the ledger entry together with the balance in
one database transaction. Postings against the same product are serialized;
postings against different products run independently.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from . import ledger
from .exceptions import (
    InsufficientStockError,
    InvalidArgumentError,
    ProductNotFoundError,
    StorageError,
)
from .locking import KeyedLock
from .models import StockTransaction, TransactionType, utcnow

logger = logging.getLogger(__name__)

MAX_REMARKS_LENGTH = 500
MAX_PRINCIPAL_LENGTH = 256

# Driver messages for lock waits and serialization failures; the whole posting can be redone.
_CONTENTION_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "lock wait timeout",
    "could not obtain lock",
    "could not serialize",
)


def is_contention(exc: BaseException) -> bool:
    """True when *exc* means another writer got there first, not a permanent failure."""

    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, OperationalError):
        message = str(exc.orig if exc.orig is not None else exc).lower()
        return any(marker in message for marker in _CONTENTION_MARKERS)
    return False


def apply_movement(transaction_type: TransactionType, stock_before: int, quantity: int) -> tuple[int, int]:
    """Return ``(stock_after, recorded_quantity)`` for a movement.

    For an adjustment *quantity* is the target total and the recorded quantity
    is the magnitude of the change, which is zero when the target equals the
    current stock. The result may be negative; callers enforce the floor.
    """

    if transaction_type is TransactionType.STOCK_IN:
        return stock_before + quantity, quantity
    if transaction_type is TransactionType.STOCK_OUT:
        return stock_before - quantity, quantity
    if transaction_type is TransactionType.ADJUSTMENT:
        return quantity, abs(quantity - stock_before)
    raise InvalidArgumentError("transaction_type", f"unsupported kind {transaction_type!r}")


def _validate_request(
    transaction_type: object, quantity: object, remarks: object, acting_principal: object
) -> tuple[TransactionType, int, str, str]:
    try:
        kind = TransactionType.parse(transaction_type)
    except ValueError as exc:
        raise InvalidArgumentError("transaction_type", str(exc)) from exc

    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError("quantity", "must be an integer")
    if quantity <= 0:
        raise InvalidArgumentError("quantity", "must be greater than zero")

    if not isinstance(remarks, str) or not remarks.strip():
        raise InvalidArgumentError("remarks", "must not be empty")
    remarks = remarks.strip()
    if len(remarks) > MAX_REMARKS_LENGTH:
        raise InvalidArgumentError("remarks", f"must be at most {MAX_REMARKS_LENGTH} characters")

    if not isinstance(acting_principal, str) or not acting_principal.strip():
        raise InvalidArgumentError("acting_principal", "must not be empty")
    acting_principal = acting_principal.strip()
    if len(acting_principal) > MAX_PRINCIPAL_LENGTH:
        raise InvalidArgumentError("acting_principal", f"must be at most {MAX_PRINCIPAL_LENGTH} characters")

    return kind, quantity, remarks, acting_principal


class PostingEngine:
    """Posts stock movements against products."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        lock_timeout: float = 5.0,
        max_retries: int = 3,
        locks: Optional[KeyedLock] = None,
    ) -> None:
        if lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.session_factory = session_factory
        self.lock_timeout = lock_timeout
        self.max_retries = max_retries
        self.locks = locks or KeyedLock()

    def post(
        self,
        product_id: int,
        transaction_type: TransactionType | str | int,
        quantity: int,
        remarks: str,
        acting_principal: str,
    ) -> StockTransaction:
        """Post one stock movement and return the committed ledger entry.

        Raises :class:`InvalidArgumentError`, :class:`ProductNotFoundError`,
        :class:`InsufficientStockError` or :class:`StorageError`. On any error
        neither the ledger nor the balance is changed.
        """

        kind, quantity, remarks, principal = _validate_request(transaction_type, quantity, remarks, acting_principal)

        with self.locks.hold(product_id, timeout=self.lock_timeout):
            last_error: Exception | None = None
            for attempt in range(1, self.max_retries + 1):
                try:
                    entry = self._post_once(product_id, kind, quantity, remarks, principal)
                except SQLAlchemyError as exc:
                    if is_contention(exc):
                        last_error = exc
                        logger.warning(
                            "Posting to product %s hit contention (attempt %s/%s): %s",
                            product_id,
                            attempt,
                            self.max_retries,
                            exc,
                        )
                        continue
                    logger.error("Posting to product %s failed: %s", product_id, exc)
                    raise StorageError(
                        f"Could not post to product {product_id}", original_exception=exc, product_id=product_id
                    ) from exc

                logger.info(
                    "Posted %s #%s on product %s: %s -> %s by %s",
                    entry.transaction_type.value,
                    entry.id,
                    product_id,
                    entry.stock_before,
                    entry.stock_after,
                    entry.created_by,
                )
                return entry

        logger.error("Posting to product %s gave up after %s attempts", product_id, self.max_retries)
        raise StorageError(
            f"Could not post to product {product_id} after {self.max_retries} attempts",
            original_exception=last_error,
            product_id=product_id,
            attempts=self.max_retries,
        ) from last_error

    def _post_once(
        self, product_id: int, kind: TransactionType, quantity: int, remarks: str, principal: str
    ) -> StockTransaction:
        session = self.session_factory()
        try:
            product = ledger.lock_product(session, product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            stock_before = product.current_stock
            stock_after, recorded = apply_movement(kind, stock_before, quantity)
            if stock_after < 0:
                raise InsufficientStockError(product_id, available=stock_before, requested=quantity)

            now = utcnow()
            entry = ledger.append_entry(
                session,
                product=product,
                transaction_type=kind,
                quantity=recorded,
                remarks=remarks,
                stock_before=stock_before,
                stock_after=stock_after,
                created_by=principal,
                created_date=now,
            )
            ledger.write_balance(product, stock_after, now)
            session.commit()
            return entry
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
