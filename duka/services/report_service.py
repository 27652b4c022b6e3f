# =========================================================
# DASHBOARD SUMMARY
# Figures are computed from the product counters (sold,
# balance) plus the pending customer balances.
# =========================================================

from collections import defaultdict
from decimal import Decimal

from duka.core.store import DocumentStore
from duka.schemas.balance import BalanceStatus
from duka.services.balance_service import list_balances
from duka.services.product_service import all_products

UNDATED = "undated"


def _stock_percentage(total_stock: int, units_sold: int) -> Decimal:
    if total_stock <= 0:
        return Decimal("0.00")

    percentage = Decimal(total_stock) / Decimal(total_stock + units_sold) * 100
    return min(percentage, Decimal("100")).quantize(Decimal("0.01"))


def dashboard_summary(store: DocumentStore, low_stock_threshold: int) -> dict:
    products = all_products(store)

    total_sales = sum(
        (Decimal(p.sold) * p.selling_price for p in products),
        Decimal("0"),
    )
    units_sold = sum(p.sold for p in products)
    total_stock = sum(p.balance for p in products)

    sold_by_month = defaultdict(int)
    for product in products:
        month = product.stocked_on.strftime("%Y-%m") if product.stocked_on else UNDATED
        sold_by_month[month] += product.sold

    pending, _ = list_balances(store, status=BalanceStatus.PENDING, limit=None)
    outstanding = sum((b.balance_amount for b in pending), Decimal("0"))

    return {
        "total_sales": total_sales,
        "units_sold": units_sold,
        "total_stock": total_stock,
        "stock_percentage": _stock_percentage(total_stock, units_sold),
        "product_count": len(products),
        "low_stock_count": sum(1 for p in products if p.balance < low_stock_threshold),
        "outstanding_balance": outstanding,
        "pending_balances": len(pending),
        "units_sold_by_month": dict(sorted(sold_by_month.items())),
    }
