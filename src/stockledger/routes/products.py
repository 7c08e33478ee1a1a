from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import consistency, crud, queries
from ..auth import EDITORS, Principal, Role, get_current_principal, require_roles
from ..dependencies import get_db, get_posting_engine
from ..models import Product, StockTransaction
from ..posting import PostingEngine
from ..schemas import (
    ConsistencyReportRead,
    ProductCreate,
    ProductRead,
    ProductUpdate,
    TransactionRead,
)

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=list[ProductRead])
def list_products(
    category_id: Optional[int] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> list[Product]:
    return crud.list_products(db, category_id=category_id, active_only=active_only)


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    engine: PostingEngine = Depends(get_posting_engine),
    principal: Principal = Depends(require_roles(*EDITORS)),
) -> Product:
    return crud.create_stocked_product(db, payload, engine, principal.username)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> Product:
    return crud.get_product(db, product_id)


@router.patch("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(*EDITORS)),
) -> Product:
    return crud.update_product(db, product_id, payload)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(Role.ADMIN)),
) -> Response:
    crud.delete_product(db, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{product_id}/transactions", response_model=list[TransactionRead])
def product_history(
    product_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> list[StockTransaction]:
    return queries.get_history(db, product_id)


@router.get("/{product_id}/consistency", response_model=ConsistencyReportRead)
def check_product_consistency(
    product_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> ConsistencyReportRead:
    return ConsistencyReportRead.model_validate(consistency.check_product(db, product_id))
