from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import queries
from ..auth import Principal, get_current_principal
from ..dependencies import get_db
from ..schemas import DashboardRead, ProductRead, RecentTransactionRead

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardRead)
def dashboard(
    db: Session = Depends(get_db),
    _: Principal = Depends(get_current_principal),
) -> DashboardRead:
    summary = queries.dashboard_summary(db)
    return DashboardRead(
        total_products=summary.total_products,
        total_categories=summary.total_categories,
        low_stock_count=summary.low_stock_count,
        total_stock_value=summary.total_stock_value,
        low_stock_products=[ProductRead.model_validate(product) for product in summary.low_stock_products],
        recent_transactions=[RecentTransactionRead.from_entry(entry) for entry in summary.recent_transactions],
    )
