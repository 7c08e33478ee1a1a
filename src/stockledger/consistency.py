"""Ledger replay checks.

Recomputes each product's balance from its full ledger and compares it with
the stored value. Read-only: drift is reported and logged, never repaired.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import ledger
from .exceptions import ProductNotFoundError
from .models import Product, StockTransaction

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EntryIssue:
    """A ledger entry that does not line up with its neighbours."""

    transaction_id: int
    problem: str


@dataclass(slots=True)
class ConsistencyReport:
    product_id: int
    stored_stock: int
    replayed_stock: int
    entry_count: int
    issues: list[EntryIssue] = field(default_factory=list)

    @property
    def drift(self) -> int:
        return self.stored_stock - self.replayed_stock

    @property
    def consistent(self) -> bool:
        return self.drift == 0 and not self.issues


def replay(entries: Iterable[StockTransaction], opening: int = 0) -> int:
    """Sum the signed quantities of *entries* on top of *opening*."""

    balance = opening
    for entry in entries:
        balance += entry.signed_quantity
    return balance


def inspect_entries(entries: Iterable[StockTransaction]) -> list[EntryIssue]:
    """Find entries whose arithmetic is off or that break the before/after chain."""

    issues: list[EntryIssue] = []
    previous_after = 0
    for entry in entries:
        if entry.stock_after != entry.stock_before + entry.signed_quantity:
            issues.append(
                EntryIssue(
                    entry.id,
                    f"stock_after {entry.stock_after} != stock_before {entry.stock_before} "
                    f"{entry.signed_quantity:+d}",
                )
            )
        if entry.stock_before != previous_after:
            issues.append(
                EntryIssue(entry.id, f"stock_before {entry.stock_before} != previous stock_after {previous_after}")
            )
        if entry.stock_after < 0:
            issues.append(EntryIssue(entry.id, f"negative stock_after {entry.stock_after}"))
        previous_after = entry.stock_after
    return issues


def check_product(db: Session, product_id: int) -> ConsistencyReport:
    stored = ledger.get_balance(db, product_id)
    if stored is None:
        raise ProductNotFoundError(product_id)

    entries = ledger.list_entries(db, product_id)
    report = ConsistencyReport(
        product_id=product_id,
        stored_stock=stored,
        replayed_stock=replay(entries),
        entry_count=len(entries),
        issues=inspect_entries(entries),
    )
    if not report.consistent:
        logger.warning(
            "Product %s drifted: stored %s, replayed %s, %s ledger issue(s)",
            product_id,
            report.stored_stock,
            report.replayed_stock,
            len(report.issues),
        )
    return report


def check_all(db: Session) -> list[ConsistencyReport]:
    """Check every product and return the reports that show drift."""

    product_ids = list(db.scalars(select(Product.id).order_by(Product.id)))
    drifted = [report for report in (check_product(db, pid) for pid in product_ids) if not report.consistent]
    logger.info("Checked %s product(s), %s drifted", len(product_ids), len(drifted))
    return drifted
