from decimal import Decimal
from typing import List

from duka.schemas.sale import CamelModel


class CartLineResponse(CamelModel):
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    max_quantity: int
    line_total: Decimal
    image_url: str | None = None


class CartResponse(CamelModel):
    lines: List[CartLineResponse]
    total: Decimal
    warnings: List[str] = []


class AddLineRequest(CamelModel):
    product_id: str


class SetQuantityRequest(CamelModel):
    quantity: int
