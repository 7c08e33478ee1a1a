from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import crud
from ..auth import EDITORS, Principal, Role, get_current_principal, require_roles
from ..dependencies import get_db
from ..models import Category
from ..schemas import CategoryCreate, CategoryRead, CategoryUpdate

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryRead])
def list_categories(
    active_only: bool = False,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> list[Category]:
    return crud.list_categories(db, active_only=active_only)


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(*EDITORS)),
) -> Category:
    return crud.create_category(db, payload)


@router.get("/{category_id}", response_model=CategoryRead)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> Category:
    return crud.get_category(db, category_id)


@router.patch("/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(*EDITORS)),
) -> Category:
    return crud.update_category(db, category_id, payload)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(Role.ADMIN)),
) -> Response:
    crud.delete_category(db, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
