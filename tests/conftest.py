from collections.abc import Generator
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from stockledger import crud, ledger, schemas
from stockledger.app import create_app
from stockledger.config import Settings
from stockledger.database import create_db_engine, create_session_factory, init_database
from stockledger.models import Category, Product
from stockledger.posting import PostingEngine


@pytest.fixture(name="database_url")
def database_url_fixture(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture(name="db_engine")
def db_engine_fixture(database_url: str) -> Generator[Any, None, None]:
    engine = create_db_engine(database_url, busy_timeout=30.0)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session_factory")
def session_factory_fixture(db_engine) -> sessionmaker[Session]:
    return create_session_factory(db_engine)


@pytest.fixture(name="db")
def db_fixture(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="posting_engine")
def posting_engine_fixture(session_factory) -> PostingEngine:
    return PostingEngine(session_factory, lock_timeout=5.0, max_retries=3)


@pytest.fixture(name="category")
def category_fixture(db: Session) -> Category:
    return crud.create_category(db, schemas.CategoryCreate(name="Beverages"))


@pytest.fixture(name="product")
def product_fixture(db: Session, category: Category) -> Product:
    return crud.create_product(
        db,
        schemas.ProductCreate(
            name="Bottled Water",
            sku="BW-500",
            unit_price=Decimal("1.50"),
            minimum_stock=10,
            category_id=category.id,
        ),
    )


@pytest.fixture(name="make_product")
def make_product_fixture(db: Session, category: Category):
    def factory(name: str, **overrides: Any) -> Product:
        fields = {"name": name, "category_id": category.id, "unit_price": Decimal("2.00")}
        fields.update(overrides)
        return crud.create_product(db, schemas.ProductCreate(**fields))

    return factory


@pytest.fixture(name="stock_of")
def stock_of_fixture(session_factory):
    """Read a balance through a fresh session so nothing cached leaks in."""

    def read(product_id: int) -> int | None:
        with session_factory() as session:
            return ledger.get_balance(session, product_id)

    return read


@pytest.fixture(name="client")
def client_fixture(database_url: str, session_factory) -> Generator[TestClient, None, None]:
    app = create_app(settings=Settings(database_url=database_url), session_factory=session_factory)

    with TestClient(app) as client:
        yield client
