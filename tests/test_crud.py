from decimal import Decimal

import pytest

from stockledger import crud, ledger, schemas
from stockledger.exceptions import (
    CategoryNotFoundError,
    ConflictError,
    InvalidArgumentError,
    ProductNotFoundError,
    ReferentialIntegrityError,
    StorageError,
    SupplierNotFoundError,
)
from stockledger.models import TransactionType


def test_category_names_are_unique(db, category) -> None:
    with pytest.raises(ConflictError):
        crud.create_category(db, schemas.CategoryCreate(name="Beverages"))

    assert [item.name for item in crud.list_categories(db)] == ["Beverages"]


def test_update_category(db, category) -> None:
    updated = crud.update_category(db, category.id, schemas.CategoryUpdate(description="Drinks"))

    assert updated.name == "Beverages"
    assert updated.description == "Drinks"
    assert updated.modified_date is not None


def test_category_with_products_cannot_be_deleted(db, category, product) -> None:
    with pytest.raises(ReferentialIntegrityError) as excinfo:
        crud.delete_category(db, category.id)

    assert excinfo.value.code == "integrity_violation"
    assert crud.get_category(db, category.id).name == "Beverages"


def test_empty_category_can_be_deleted(db) -> None:
    snacks = crud.create_category(db, schemas.CategoryCreate(name="Snacks"))

    crud.delete_category(db, snacks.id)

    with pytest.raises(CategoryNotFoundError):
        crud.get_category(db, snacks.id)


def test_list_categories_active_only(db, category) -> None:
    crud.create_category(db, schemas.CategoryCreate(name="Archived", is_active=False))

    assert [item.name for item in crud.list_categories(db)] == ["Archived", "Beverages"]
    assert [item.name for item in crud.list_categories(db, active_only=True)] == ["Beverages"]


def test_new_product_starts_at_zero_stock(db, category) -> None:
    product = crud.create_product(
        db,
        schemas.ProductCreate(name="Juice", category_id=category.id, unit_price=Decimal("3.10"), opening_stock=25),
    )

    assert product.current_stock == 0
    assert product.is_low_stock
    assert product.sku is None


def test_duplicate_sku_is_rejected(db, product, make_product) -> None:
    with pytest.raises(ConflictError) as excinfo:
        make_product("Copycat", sku="BW-500")

    assert excinfo.value.details == {"sku": "BW-500"}


def test_blank_skus_do_not_collide(db, make_product) -> None:
    first = make_product("No Sku One", sku="")
    second = make_product("No Sku Two", sku="")

    assert first.sku is None
    assert second.sku is None


def test_product_requires_existing_category(db) -> None:
    with pytest.raises(CategoryNotFoundError):
        crud.create_product(db, schemas.ProductCreate(name="Orphan", category_id=77))


def test_product_requires_existing_supplier(db, category) -> None:
    with pytest.raises(SupplierNotFoundError):
        crud.create_product(db, schemas.ProductCreate(name="Orphan", category_id=category.id, supplier_id=5))


def test_update_product_leaves_stock_alone(db, posting_engine, product, stock_of) -> None:
    posting_engine.post(product.id, TransactionType.STOCK_IN, 12, "delivery", "staff1")
    db.refresh(product)

    updated = crud.update_product(
        db, product.id, schemas.ProductUpdate(name="Still Water", minimum_stock=3, sku="SW-500")
    )

    assert updated.name == "Still Water"
    assert updated.sku == "SW-500"
    assert updated.minimum_stock == 3
    assert updated.current_stock == 12
    assert stock_of(product.id) == 12


def test_update_product_rejects_taken_sku(db, product, make_product) -> None:
    other = make_product("Sparkling Water", sku="SP-330")

    with pytest.raises(ConflictError):
        crud.update_product(db, other.id, schemas.ProductUpdate(sku="BW-500"))


def test_product_with_stock_cannot_be_deleted(db, posting_engine, product) -> None:
    posting_engine.post(product.id, TransactionType.STOCK_IN, 1, "delivery", "staff1")
    db.refresh(product)

    with pytest.raises(ReferentialIntegrityError, match="existing stock"):
        crud.delete_product(db, product.id)


def test_product_with_history_cannot_be_deleted(db, posting_engine, product) -> None:
    posting_engine.post(product.id, TransactionType.STOCK_IN, 4, "delivery", "staff1")
    posting_engine.post(product.id, TransactionType.STOCK_OUT, 4, "sale", "staff1")
    db.refresh(product)

    with pytest.raises(ReferentialIntegrityError, match="transaction history"):
        crud.delete_product(db, product.id)


def test_fresh_product_can_be_deleted(db, product) -> None:
    crud.delete_product(db, product.id)

    with pytest.raises(ProductNotFoundError):
        crud.get_product(db, product.id)


def test_deleting_supplier_detaches_its_products(db, category) -> None:
    supplier = crud.create_supplier(
        db, schemas.SupplierCreate(name="Acme Wholesale", email="orders@acme-wholesale.com")
    )
    product = crud.create_product(
        db, schemas.ProductCreate(name="Crate", category_id=category.id, supplier_id=supplier.id)
    )

    crud.delete_supplier(db, supplier.id)
    db.refresh(product)

    assert product.supplier_id is None
    with pytest.raises(SupplierNotFoundError):
        crud.get_supplier(db, supplier.id)


@pytest.mark.parametrize("field", ["name", "unit_price", "minimum_stock", "category_id", "is_active"])
def test_update_product_rejects_null_required_fields(db, product, field) -> None:
    with pytest.raises(InvalidArgumentError) as excinfo:
        crud.update_product(db, product.id, schemas.ProductUpdate(**{field: None}))

    assert excinfo.value.field == field
    db.refresh(product)
    assert product.name == "Bottled Water"


def test_update_category_and_supplier_reject_null_required_fields(db, category) -> None:
    supplier = crud.create_supplier(db, schemas.SupplierCreate(name="Acme Wholesale"))

    with pytest.raises(InvalidArgumentError):
        crud.update_category(db, category.id, schemas.CategoryUpdate(name=None))
    with pytest.raises(InvalidArgumentError):
        crud.update_supplier(db, supplier.id, schemas.SupplierUpdate(is_active=None))


def test_stocked_product_gets_opening_balance(db, posting_engine, category, session_factory) -> None:
    product = crud.create_stocked_product(
        db,
        schemas.ProductCreate(name="Juice", category_id=category.id, opening_stock=25),
        posting_engine,
        "admin1",
    )

    assert product.current_stock == 25
    with session_factory() as session:
        (entry,) = ledger.list_entries(session, product.id)
    assert entry.remarks == crud.OPENING_BALANCE_REMARKS
    assert entry.created_by == "admin1"


def test_failed_opening_balance_removes_the_product(db, posting_engine, category, mocker) -> None:
    mocker.patch.object(posting_engine, "post", side_effect=StorageError("disk full"))

    with pytest.raises(StorageError):
        crud.create_stocked_product(
            db,
            schemas.ProductCreate(name="Juice", sku="JU-1", category_id=category.id, opening_stock=25),
            posting_engine,
            "admin1",
        )

    assert crud.list_products(db) == []
    assert not crud.sku_exists(db, "JU-1")
