
# schemas/report.py

from pydantic import BaseModel
from decimal import Decimal
from typing import Dict, List

from duka.schemas.product import Product



class DashboardResponse(BaseModel):
    total_sales: Decimal
    units_sold: int
    total_stock: int
    stock_percentage: Decimal
    product_count: int
    low_stock_count: int
    outstanding_balance: Decimal
    pending_balances: int
    units_sold_by_month: Dict[str, int]


class LowStockResponse(BaseModel):
    threshold: int
    total_products: int
    results: List[Product]
