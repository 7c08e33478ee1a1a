"""Database models."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    event,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base
from .exceptions import LedgerImmutableError


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what SQLite hands back."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


class TransactionType(str, enum.Enum):
    """Closed set of stock movement kinds."""

    STOCK_IN = "StockIn"
    STOCK_OUT = "StockOut"
    ADJUSTMENT = "Adjustment"

    @property
    def code(self) -> int:
        return _TYPE_CODES[self]

    @classmethod
    def parse(cls, value: object) -> "TransactionType":
        """Accept the enum, its value, its member name or its integer code."""

        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            for member, code in _TYPE_CODES.items():
                if code == value:
                    return member
            raise ValueError(f"unknown transaction type code {value}")
        if isinstance(value, str):
            wanted = value.strip().replace("-", "").replace("_", "").replace(" ", "").lower()
            for member in cls:
                if wanted in (member.value.lower(), member.name.replace("_", "").lower()):
                    return member
        raise ValueError(f"unknown transaction type {value!r}")


_TYPE_CODES = {
    TransactionType.STOCK_IN: 1,
    TransactionType.STOCK_OUT: 2,
    TransactionType.ADJUSTMENT: 3,
}


class Category(Base):
    """Grouping for products. Cannot be removed while it owns products."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    modified_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    products: Mapped[list["Product"]] = relationship(back_populates="category")

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Category name={self.name!r} active={self.is_active}>"


class Supplier(Base):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    contact_person: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    modified_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    products: Mapped[list["Product"]] = relationship(back_populates="supplier")


class Product(Base):
    """Stock keeping item.

    ``current_stock`` is read-only on instances. The balance column is written
    exclusively by :mod:`stockledger.ledger` on behalf of the posting engine.
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_products_current_stock_non_negative"),
        CheckConstraint("minimum_stock >= 0", name="ck_products_minimum_stock_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_products_unit_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    sku: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    _current_stock: Mapped[int] = mapped_column("current_stock", Integer, nullable=False, default=0)
    minimum_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    supplier_id: Mapped[int | None] = mapped_column(
        ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    modified_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    category: Mapped[Category] = relationship(back_populates="products")
    supplier: Mapped[Optional[Supplier]] = relationship(back_populates="products")
    transactions: Mapped[list["StockTransaction"]] = relationship(
        back_populates="product", passive_deletes="all", order_by="StockTransaction.id"
    )

    __mapper_args__ = {"version_id_col": version}

    @hybrid_property
    def current_stock(self) -> int:
        return self._current_stock

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock < self.minimum_stock

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Product id={self.id} name={self.name!r} stock={self._current_stock}>"


class StockTransaction(Base):
    """Immutable ledger entry. Rows are inserted by the posting engine only."""

    __tablename__ = "stock_transactions"
    __table_args__ = (
        Index("ix_stock_transactions_product_created", "product_id", "created_date"),
        CheckConstraint("quantity >= 0", name="ck_stock_transactions_quantity_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, name="transaction_type", native_enum=False, length=20), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    remarks: Mapped[str] = mapped_column(String(500), nullable=False)
    stock_before: Mapped[int] = mapped_column(Integer, nullable=False)
    stock_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[str] = mapped_column(String(256), nullable=False)
    created_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)

    product: Mapped[Product] = relationship(back_populates="transactions")

    @property
    def signed_quantity(self) -> int:
        """Quantity with the direction of the change applied."""

        if self.transaction_type is TransactionType.STOCK_IN:
            return self.quantity
        if self.transaction_type is TransactionType.STOCK_OUT:
            return -self.quantity
        if self.stock_after < self.stock_before:
            return -self.quantity
        return self.quantity

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return (
            f"<StockTransaction id={self.id} product={self.product_id} "
            f"{self.transaction_type.value} {self.stock_before}->{self.stock_after}>"
        )


@event.listens_for(StockTransaction, "before_update")
def _refuse_ledger_update(mapper, connection, target: StockTransaction) -> None:  # noqa: ARG001
    raise LedgerImmutableError(f"Ledger entry {target.id} cannot be modified", transaction_id=target.id)


@event.listens_for(StockTransaction, "before_delete")
def _refuse_ledger_delete(mapper, connection, target: StockTransaction) -> None:  # noqa: ARG001
    raise LedgerImmutableError(f"Ledger entry {target.id} cannot be deleted", transaction_id=target.id)
