"""Read-only projections over products and the ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from . import ledger
from .exceptions import InvalidArgumentError, ProductNotFoundError
from .models import Category, Product, StockTransaction

DEFAULT_RECENT_COUNT = 10
DASHBOARD_LOW_STOCK_LIMIT = 5


def get_history(db: Session, product_id: int) -> list[StockTransaction]:
    """Ledger entries of *product_id*, newest first."""

    if db.get(Product, product_id) is None:
        raise ProductNotFoundError(product_id)
    return ledger.list_entries(db, product_id, newest_first=True)


def get_recent(db: Session, count: int = DEFAULT_RECENT_COUNT) -> list[StockTransaction]:
    """The *count* most recent entries across all products, newest first.

    Each entry comes with its product and category loaded for display.
    """

    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidArgumentError("count", "must be a positive integer")
    statement = (
        select(StockTransaction)
        .options(joinedload(StockTransaction.product).joinedload(Product.category))
        .order_by(StockTransaction.id.desc())
        .limit(count)
    )
    return list(db.scalars(statement))


def _low_stock_statement():
    return (
        select(Product)
        .options(joinedload(Product.category))
        .where(Product.is_active.is_(True), Product.current_stock < Product.minimum_stock)
        .order_by(Product.current_stock, Product.id)
    )


def get_low_stock(db: Session, product_id: Optional[int] = None) -> list[Product]:
    """Active products whose stock is below their minimum, lowest stock first."""

    statement = _low_stock_statement()
    if product_id is not None:
        statement = statement.where(Product.id == product_id)
    return list(db.scalars(statement))


@dataclass(slots=True)
class DashboardSummary:
    total_products: int
    total_categories: int
    low_stock_count: int
    total_stock_value: Decimal
    low_stock_products: list[Product] = field(default_factory=list)
    recent_transactions: list[StockTransaction] = field(default_factory=list)


def dashboard_summary(db: Session) -> DashboardSummary:
    active = Product.is_active.is_(True)
    total_products = db.scalar(select(func.count(Product.id)).where(active)) or 0
    total_categories = db.scalar(select(func.count(Category.id)).where(Category.is_active.is_(True))) or 0
    low_stock_count = (
        db.scalar(select(func.count(Product.id)).where(active, Product.current_stock < Product.minimum_stock)) or 0
    )
    stock_value = db.scalar(
        select(func.coalesce(func.sum(Product.current_stock * Product.unit_price), 0)).where(active)
    )
    return DashboardSummary(
        total_products=total_products,
        total_categories=total_categories,
        low_stock_count=low_stock_count,
        total_stock_value=Decimal(str(stock_value)).quantize(Decimal("0.01")),
        low_stock_products=list(db.scalars(_low_stock_statement().limit(DASHBOARD_LOW_STOCK_LIMIT))),
        recent_transactions=get_recent(db, DEFAULT_RECENT_COUNT),
    )
