# schemas/sale.py

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, List

from pydantic import BaseModel, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from duka.core.config import settings


NO_REFERENCE = "N/A"

# Fixed-width UTC timestamps keep string ordering chronological in the store
Timestamp = Annotated[
    datetime,
    PlainSerializer(
        lambda value: value.astimezone(timezone.utc).isoformat(timespec="microseconds"),
        return_type=str,
        when_used="json",
    ),
]


class PaymentMethod(str, Enum):
    CASH = "cash"
    MOBILE_MONEY = "mobile-money"
    CREDIT = "credit"


class SaleStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class CustomerInfo(CamelModel):
    name: str = ""
    phone: str = ""
    email: str = ""


class SaleLine(CamelModel):
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class Sale(CamelModel):
    id: str
    products: List[SaleLine]
    customer: CustomerInfo
    payment_method: PaymentMethod
    transaction_reference: str = NO_REFERENCE
    total: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    timestamp: Timestamp
    status: SaleStatus
    receipt_number: str | None = None
    request_id: str | None = None

    @classmethod
    def from_document(cls, document: dict) -> "Sale":
        return cls.model_validate(document)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


class CheckoutRequest(CamelModel):
    customer: CustomerInfo = Field(default_factory=CustomerInfo)
    payment_method: str | None = None
    transaction_reference: str | None = None
    partial: bool = False
    paid_amount: Decimal | None = None
    request_id: str | None = None


class Receipt(CamelModel):
    receipt_number: str
    currency: str = Field(default_factory=lambda: settings.CURRENCY)
    date: Timestamp
    sale_id: str
    items: List[SaleLine]
    customer: CustomerInfo
    payment_method: PaymentMethod
    transaction_reference: str
    total: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    status: SaleStatus

    @classmethod
    def for_sale(cls, sale: Sale) -> "Receipt":
        return cls(
            receipt_number=sale.receipt_number or f"INV-{sale.id[:7].upper()}",
            date=sale.timestamp,
            sale_id=sale.id,
            items=sale.products,
            customer=sale.customer,
            payment_method=sale.payment_method,
            transaction_reference=sale.transaction_reference,
            total=sale.total,
            paid_amount=sale.paid_amount,
            balance_amount=sale.balance_amount,
            status=sale.status,
        )


class SalePage(CamelModel):
    items: List[Sale]
    next_cursor: str | None = None
