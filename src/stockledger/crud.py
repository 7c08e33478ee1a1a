"""Catalog access helpers: categories, suppliers and products.

Product stock is never written here; see :mod:`stockledger.posting`.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from . import ledger, models, schemas
from .exceptions import (
    CategoryNotFoundError,
    ConflictError,
    InvalidArgumentError,
    ProductNotFoundError,
    ReferentialIntegrityError,
    SupplierNotFoundError,
)
from .models import TransactionType, utcnow
from .posting import PostingEngine

logger = logging.getLogger(__name__)

OPENING_BALANCE_REMARKS = "Opening balance"

_CATEGORY_REQUIRED = ("name", "is_active")
_SUPPLIER_REQUIRED = ("name", "is_active")
_PRODUCT_REQUIRED = ("name", "unit_price", "minimum_stock", "category_id", "is_active")


def _commit(db: Session, conflict_message: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(conflict_message) from exc
    except StaleDataError as exc:
        db.rollback()
        raise ConflictError(f"{conflict_message}: record was changed concurrently") from exc


def _apply(record: object, changes: dict[str, object]) -> None:
    for key, value in changes.items():
        setattr(record, key, value)


def _reject_nulls(changes: dict[str, object], required: tuple[str, ...]) -> None:
    for name in required:
        if name in changes and changes[name] is None:
            raise InvalidArgumentError(name, "must not be null")


# Categories


def list_categories(db: Session, *, active_only: bool = False) -> list[models.Category]:
    statement = select(models.Category).order_by(models.Category.name)
    if active_only:
        statement = statement.where(models.Category.is_active.is_(True))
    return list(db.scalars(statement))


def get_category(db: Session, category_id: int) -> models.Category:
    category = db.get(models.Category, category_id)
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


def create_category(db: Session, payload: schemas.CategoryCreate) -> models.Category:
    category = models.Category(**payload.model_dump())
    db.add(category)
    _commit(db, f"Category '{payload.name}' already exists")
    db.refresh(category)
    return category


def update_category(db: Session, category_id: int, payload: schemas.CategoryUpdate) -> models.Category:
    category = get_category(db, category_id)
    changes = payload.model_dump(exclude_unset=True)
    _reject_nulls(changes, _CATEGORY_REQUIRED)
    _apply(category, changes)
    category.modified_date = utcnow()
    _commit(db, f"Category '{category.name}' already exists")
    db.refresh(category)
    return category


def category_has_products(db: Session, category_id: int) -> bool:
    statement = select(exists().where(models.Product.category_id == category_id))
    return bool(db.scalar(statement))


def delete_category(db: Session, category_id: int) -> None:
    category = get_category(db, category_id)
    if category_has_products(db, category_id):
        raise ReferentialIntegrityError(
            "Cannot delete category with existing products.", category_id=category_id
        )
    db.delete(category)
    db.commit()
    logger.info("Deleted category %s (%s)", category_id, category.name)


# Suppliers


def list_suppliers(db: Session, *, active_only: bool = False) -> list[models.Supplier]:
    statement = select(models.Supplier).order_by(models.Supplier.name)
    if active_only:
        statement = statement.where(models.Supplier.is_active.is_(True))
    return list(db.scalars(statement))


def get_supplier(db: Session, supplier_id: int) -> models.Supplier:
    supplier = db.get(models.Supplier, supplier_id)
    if supplier is None:
        raise SupplierNotFoundError(supplier_id)
    return supplier


def create_supplier(db: Session, payload: schemas.SupplierCreate) -> models.Supplier:
    supplier = models.Supplier(**payload.model_dump())
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


def update_supplier(db: Session, supplier_id: int, payload: schemas.SupplierUpdate) -> models.Supplier:
    supplier = get_supplier(db, supplier_id)
    changes = payload.model_dump(exclude_unset=True)
    _reject_nulls(changes, _SUPPLIER_REQUIRED)
    _apply(supplier, changes)
    supplier.modified_date = utcnow()
    db.commit()
    db.refresh(supplier)
    return supplier


def delete_supplier(db: Session, supplier_id: int) -> None:
    """Remove a supplier. Its products stay, with no supplier."""

    supplier = get_supplier(db, supplier_id)
    for product in list(supplier.products):
        product.supplier_id = None
        product.modified_date = utcnow()
    db.delete(supplier)
    _commit(db, f"Supplier {supplier_id} could not be deleted")
    logger.info("Deleted supplier %s (%s)", supplier_id, supplier.name)


# Products


def list_products(
    db: Session, *, category_id: Optional[int] = None, active_only: bool = False
) -> list[models.Product]:
    statement = select(models.Product).order_by(models.Product.name, models.Product.id)
    if category_id is not None:
        statement = statement.where(models.Product.category_id == category_id)
    if active_only:
        statement = statement.where(models.Product.is_active.is_(True))
    return list(db.scalars(statement))


def get_product(db: Session, product_id: int) -> models.Product:
    product = db.get(models.Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def sku_exists(db: Session, sku: Optional[str], exclude_id: Optional[int] = None) -> bool:
    if not sku or not sku.strip():
        return False
    condition = models.Product.sku == sku
    if exclude_id is not None:
        condition = condition & (models.Product.id != exclude_id)
    return bool(db.scalar(select(exists().where(condition))))


def _check_references(db: Session, category_id: Optional[int], supplier_id: Optional[int]) -> None:
    if category_id is not None:
        get_category(db, category_id)
    if supplier_id is not None:
        get_supplier(db, supplier_id)


def create_product(db: Session, payload: schemas.ProductCreate) -> models.Product:
    """Create a product with zero stock.

    ``payload.opening_stock`` is ignored here; :func:`create_stocked_product`
    posts it through the engine once the product exists.
    """

    data = payload.model_dump(exclude={"opening_stock"})
    data["sku"] = data["sku"] or None
    _check_references(db, data["category_id"], data["supplier_id"])
    if sku_exists(db, data["sku"]):
        raise ConflictError(f"SKU '{data['sku']}' already exists", sku=data["sku"])

    product = models.Product(**data)
    db.add(product)
    _commit(db, f"SKU '{data['sku']}' already exists")
    db.refresh(product)
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


def create_stocked_product(
    db: Session, payload: schemas.ProductCreate, engine: PostingEngine, acting_principal: str
) -> models.Product:
    """Create a product and post ``payload.opening_stock`` as its first StockIn.

    If the opening posting fails the new product is deleted again before the
    error propagates, so a failed call leaves nothing behind.
    """

    product = create_product(db, payload)
    if payload.opening_stock <= 0:
        return product

    try:
        engine.post(
            product.id,
            TransactionType.STOCK_IN,
            payload.opening_stock,
            OPENING_BALANCE_REMARKS,
            acting_principal,
        )
    except Exception:
        logger.warning("Opening balance for product %s failed; removing the product", product.id)
        delete_product(db, product.id)
        raise
    db.refresh(product)
    return product


def update_product(db: Session, product_id: int, payload: schemas.ProductUpdate) -> models.Product:
    product = get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    _reject_nulls(changes, _PRODUCT_REQUIRED)
    if "sku" in changes:
        changes["sku"] = changes["sku"] or None
        if sku_exists(db, changes["sku"], exclude_id=product_id):
            raise ConflictError(f"SKU '{changes['sku']}' already exists", sku=changes["sku"])
    _check_references(db, changes.get("category_id"), changes.get("supplier_id"))

    _apply(product, changes)
    product.modified_date = utcnow()
    _commit(db, f"Product {product_id} could not be updated")
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int) -> None:
    """Hard-delete a product that never held stock.

    Products with stock or with ledger history must be deactivated instead.
    """

    product = get_product(db, product_id)
    if product.current_stock > 0:
        raise ReferentialIntegrityError(
            "Cannot delete product with existing stock. Reduce stock to zero first.",
            product_id=product_id,
            current_stock=product.current_stock,
        )
    if ledger.has_entries(db, product_id):
        raise ReferentialIntegrityError(
            "Cannot delete product with transaction history. Deactivate it instead.",
            product_id=product_id,
        )
    db.delete(product)
    _commit(db, f"Product {product_id} could not be deleted")
    logger.info("Deleted product %s (%s)", product_id, product.name)
