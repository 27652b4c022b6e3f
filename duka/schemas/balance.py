# schemas/balance.py

from decimal import Decimal
from enum import Enum
from typing import List

from pydantic import Field

from duka.schemas.sale import CamelModel, SaleLine, Timestamp


class BalanceStatus(str, Enum):
    PENDING = "pending"
    CLEARED = "cleared"


class CustomerBalance(CamelModel):
    """Outstanding amount owed on one sale.

    ``sale_id`` only points back at the sale; the two records carry the
    same paid/balance figures and the balance is written first.
    """

    id: str
    customer_name: str
    customer_phone: str = ""
    customer_email: str = ""
    products: List[SaleLine] = Field(default_factory=list)
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    purchase_date: Timestamp
    sale_id: str
    status: BalanceStatus = BalanceStatus.PENDING
    last_payment_date: Timestamp | None = None
    cleared_date: Timestamp | None = None
    last_payment_method: str | None = None
    last_payment_reference: str | None = None

    @classmethod
    def from_document(cls, document: dict) -> "CustomerBalance":
        return cls.model_validate(document)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


class PaymentRequest(CamelModel):
    amount: Decimal
    payment_method: str | None = None
    transaction_reference: str | None = None


class BalancePage(CamelModel):
    items: List[CustomerBalance]
    next_cursor: str | None = None
