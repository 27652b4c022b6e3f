from duka.schemas.balance import CustomerBalance
from duka.schemas.sale import CamelModel, Receipt, Sale, SaleStatus


class CheckoutResponse(CamelModel):
    sale: Sale
    receipt: Receipt
    balance: CustomerBalance | None = None
    replayed: bool = False


class SettlementResponse(CamelModel):
    balance: CustomerBalance
    sale_id: str
    sale_status: SaleStatus
