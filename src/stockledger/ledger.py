"""Ledger store and product balance store.

Plain persistence: point lookups, a locked read of a product row, ledger
inserts and ordered scans. The balance write here is the only place in the
code base that assigns a product's stock column.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from .models import Product, StockTransaction, TransactionType


def get_balance(db: Session, product_id: int) -> Optional[int]:
    """Return the stored stock of *product_id*, or ``None`` when it does not exist."""

    statement = select(Product.current_stock).where(Product.id == product_id)
    return db.scalars(statement).first()


def lock_product(db: Session, product_id: int) -> Optional[Product]:
    """Load *product_id* for a read-modify-write.

    Issues ``SELECT ... FOR UPDATE`` where the backend supports it and always
    refreshes the identity map so the balance read is the committed one.
    """

    statement = (
        select(Product)
        .where(Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.scalars(statement).first()


def append_entry(
    db: Session,
    *,
    product: Product,
    transaction_type: TransactionType,
    quantity: int,
    remarks: str,
    stock_before: int,
    stock_after: int,
    created_by: str,
    created_date: datetime,
) -> StockTransaction:
    entry = StockTransaction(
        product_id=product.id,
        transaction_type=transaction_type,
        quantity=quantity,
        remarks=remarks,
        stock_before=stock_before,
        stock_after=stock_after,
        created_by=created_by,
        created_date=created_date,
    )
    db.add(entry)
    return entry


def write_balance(product: Product, stock: int, modified: datetime) -> None:
    product._current_stock = stock
    product.modified_date = modified


def list_entries(db: Session, product_id: int, *, newest_first: bool = False) -> list[StockTransaction]:
    """Return every ledger entry of *product_id* in posting order."""

    # ids are assigned at insert, under the write lock, so they follow posting order
    order = StockTransaction.id.desc() if newest_first else StockTransaction.id
    statement = select(StockTransaction).where(StockTransaction.product_id == product_id).order_by(order)
    return list(db.scalars(statement))


def has_entries(db: Session, product_id: int) -> bool:
    statement = select(exists().where(StockTransaction.product_id == product_id))
    return bool(db.scalar(statement))
