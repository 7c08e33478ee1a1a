from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import crud
from ..auth import EDITORS, Principal, Role, get_current_principal, require_roles
from ..dependencies import get_db
from ..models import Supplier
from ..schemas import SupplierCreate, SupplierRead, SupplierUpdate

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@router.get("", response_model=list[SupplierRead])
def list_suppliers(
    active_only: bool = False,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> list[Supplier]:
    return crud.list_suppliers(db, active_only=active_only)


@router.post("", response_model=SupplierRead, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: SupplierCreate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(*EDITORS)),
) -> Supplier:
    return crud.create_supplier(db, payload)


@router.get("/{supplier_id}", response_model=SupplierRead)
def get_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> Supplier:
    return crud.get_supplier(db, supplier_id)


@router.patch("/{supplier_id}", response_model=SupplierRead)
def update_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(*EDITORS)),
) -> Supplier:
    return crud.update_supplier(db, supplier_id, payload)


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(Role.ADMIN)),
) -> Response:
    crud.delete_supplier(db, supplier_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
