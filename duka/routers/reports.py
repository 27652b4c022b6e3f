# =========================================================
# REPORTS ROUTER
#
# Dashboard figures come from the product counters that
# checkout increments, plus the pending customer balances.
# =========================================================

from fastapi import APIRouter, Depends, Query

from duka.core.auth import get_current_user
from duka.core.config import settings
from duka.core.store import DocumentStore, get_store
from duka.schemas.report import DashboardResponse, LowStockResponse
from duka.services import product_service, report_service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    return report_service.dashboard_summary(store, settings.LOW_STOCK_THRESHOLD)


@router.get("/low-stock", response_model=LowStockResponse)
def low_stock(
    threshold: int | None = Query(None, ge=0),
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    results = product_service.low_stock_products(store, threshold)

    return {
        "threshold": threshold,
        "total_products": len(results),
        "results": results,
    }
