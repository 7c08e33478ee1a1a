from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import consistency, queries
from ..auth import EDITORS, POSTERS, Principal, get_current_principal, require_roles
from ..dependencies import get_db, get_posting_engine
from ..models import Product, StockTransaction
from ..posting import PostingEngine
from ..schemas import (
    ConsistencyReportRead,
    ProductRead,
    RecentTransactionRead,
    StockPosting,
    TransactionRead,
)

router = APIRouter(prefix="/stock", tags=["stock"])


@router.post("/transactions", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
def post_transaction(
    payload: StockPosting,
    engine: PostingEngine = Depends(get_posting_engine),
    principal: Principal = Depends(require_roles(*POSTERS)),
) -> StockTransaction:
    return engine.post(
        payload.product_id,
        payload.transaction_type,
        payload.quantity,
        payload.remarks,
        principal.username,
    )


@router.get("/transactions/recent", response_model=list[RecentTransactionRead])
def recent_transactions(
    count: int = Query(queries.DEFAULT_RECENT_COUNT, gt=0, le=500),
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> list[RecentTransactionRead]:
    return [RecentTransactionRead.from_entry(entry) for entry in queries.get_recent(db, count)]


@router.get("/low-stock", response_model=list[ProductRead])
def low_stock(
    product_id: Optional[int] = None,
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> list[Product]:
    return queries.get_low_stock(db, product_id)


@router.get("/consistency", response_model=list[ConsistencyReportRead])
def check_all_consistency(
    db: Session = Depends(get_db),
    _: Principal = Depends(require_roles(*EDITORS)),
) -> list[ConsistencyReportRead]:
    return [ConsistencyReportRead.model_validate(report) for report in consistency.check_all(db)]
