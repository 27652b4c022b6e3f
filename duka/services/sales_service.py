# =========================================================
# CHECKOUT / RECONCILIATION
#
# Cart + payment input -> Sale, stock decrements and (when
# something is still owed) a CustomerBalance.
#
# Order of side effects:
#   1. sale document        (durability checkpoint)
#   2. one atomic increment per cart line
#   3. customer balance     (only when balance_amount > 0)
#
# Validation runs before step 1. Failures after step 1 are
# not rolled back; each one is reported by step.
# =========================================================

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from duka.core.exceptions import (
    CheckoutIncompleteError,
    EmptyCartError,
    InvalidPartialAmountError,
    MissingCustomerError,
    MissingPaymentMethodError,
    MissingReferenceError,
    PersistenceError,
    SaleWriteError,
)
from duka.core.store import CUSTOMER_BALANCES, PRODUCTS, SALES, DocumentStore
from duka.schemas.balance import BalanceStatus, CustomerBalance
from duka.schemas.sale import (
    NO_REFERENCE,
    CheckoutRequest,
    PaymentMethod,
    Receipt,
    Sale,
    SaleLine,
    SaleStatus,
)
from duka.services.cart import Cart

logger = logging.getLogger("duka")

TWOPLACES = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def parse_payment_method(method: str | None) -> PaymentMethod:
    if not method or not str(method).strip():
        raise MissingPaymentMethodError()

    try:
        return PaymentMethod(str(method).strip().lower())
    except ValueError:
        raise MissingPaymentMethodError(method)


def sale_status_for(method: PaymentMethod, balance_amount: Decimal) -> SaleStatus:
    if method == PaymentMethod.CREDIT:
        return SaleStatus.PENDING
    if balance_amount > 0:
        return SaleStatus.PARTIAL
    return SaleStatus.COMPLETED


def receipt_number_for(moment: datetime) -> str:
    millis = str(int(moment.timestamp() * 1000))
    return f"INV-{millis[6:]}"


@dataclass
class CheckoutResult:
    sale: Sale
    receipt: Receipt
    balance: CustomerBalance | None = None
    failures: list[str] = field(default_factory=list)
    replayed: bool = False


@dataclass
class _ValidCheckout:
    method: PaymentMethod
    reference: str
    total: Decimal
    paid_amount: Decimal


def validate_checkout(cart: Cart, request: CheckoutRequest) -> _ValidCheckout:
    if cart.is_empty:
        raise EmptyCartError()

    method = parse_payment_method(request.payment_method)

    if not request.customer.name.strip():
        raise MissingCustomerError()

    reference = (request.transaction_reference or "").strip()
    if method == PaymentMethod.MOBILE_MONEY and not reference:
        raise MissingReferenceError()

    total = to_money(cart.total())
    paid_amount = total

    if request.partial:
        if request.paid_amount is None:
            raise InvalidPartialAmountError(None, total)

        paid_amount = to_money(request.paid_amount)

        # Paying the whole total is a full payment, not a partial one
        if paid_amount <= 0 or paid_amount >= total:
            raise InvalidPartialAmountError(paid_amount, total)

    return _ValidCheckout(
        method=method,
        reference=reference or NO_REFERENCE,
        total=total,
        paid_amount=paid_amount,
    )


def find_sale_by_request_id(store: DocumentStore, request_id: str) -> Sale | None:
    items, _ = store.list_documents(SALES, filters={"requestId": request_id}, limit=1)
    return Sale.from_document(items[0]) if items else None


def checkout(
    store: DocumentStore,
    cart: Cart,
    request: CheckoutRequest,
    now: datetime | None = None,
) -> CheckoutResult:
    """Commit the cart as a sale.

    Raises a ``ValidationError`` subclass before any write, ``SaleWriteError``
    when the sale itself could not be stored, and ``CheckoutIncompleteError``
    when the sale was stored but inventory or balance writes failed. In the
    last case the cart is already cleared, since the sale has happened.
    """
    # Double submit protection
    if request.request_id:
        existing = find_sale_by_request_id(store, request.request_id)
        if existing:
            logger.info(f"Checkout replayed for request {request.request_id}")
            return CheckoutResult(
                sale=existing,
                receipt=Receipt.for_sale(existing),
                replayed=True,
            )

    valid = validate_checkout(cart, request)
    now = now or datetime.now(timezone.utc)

    balance_amount = valid.total - valid.paid_amount
    status = sale_status_for(valid.method, balance_amount)

    lines = [
        SaleLine(
            product_id=line.product_id,
            name=line.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=to_money(line.line_total),
        )
        for line in cart.lines
    ]

    sale = Sale(
        id="",
        products=lines,
        customer=request.customer,
        payment_method=valid.method,
        transaction_reference=valid.reference,
        total=valid.total,
        paid_amount=valid.paid_amount,
        balance_amount=balance_amount,
        timestamp=now,
        status=status,
        receipt_number=receipt_number_for(now),
        request_id=request.request_id,
    )

    # ===============================
    # 1. SALE (checkpoint)
    # ===============================
    try:
        sale_id = store.create_document(SALES, sale.to_document())
    except PersistenceError as exc:
        logger.error(f"Checkout failed before sale was recorded: {exc}")
        raise SaleWriteError(exc) from exc

    sale = sale.model_copy(update={"id": sale_id})
    logger.info(
        f"Sale {sale_id} recorded: total={sale.total} paid={sale.paid_amount} "
        f"status={sale.status.value}"
    )

    failures = []

    # ===============================
    # 2. INVENTORY (atomic, per product)
    # ===============================
    for line in lines:
        try:
            store.atomic_increment(
                PRODUCTS,
                line.product_id,
                {"sold": line.quantity, "balance": -line.quantity},
            )
        except PersistenceError as exc:
            message = (
                f"Sale recorded but inventory not yet updated for "
                f"{line.name} ({line.quantity} units): {exc}"
            )
            logger.error(f"Sale {sale_id}: {message}")
            failures.append(message)

    # ===============================
    # 3. CUSTOMER BALANCE
    # ===============================
    balance = None

    if balance_amount > 0:
        balance = CustomerBalance(
            id="",
            customer_name=request.customer.name.strip(),
            customer_phone=request.customer.phone,
            customer_email=request.customer.email,
            products=lines,
            total_amount=valid.total,
            paid_amount=valid.paid_amount,
            balance_amount=balance_amount,
            purchase_date=now,
            sale_id=sale_id,
            status=BalanceStatus.PENDING,
            last_payment_date=now,
            last_payment_method=valid.method.value,
            last_payment_reference=valid.reference,
        )

        try:
            balance_id = store.create_document(CUSTOMER_BALANCES, balance.to_document())
            balance = balance.model_copy(update={"id": balance_id})
        except PersistenceError as exc:
            message = (
                f"Sale recorded but customer balance of {balance_amount} "
                f"not yet created: {exc}"
            )
            logger.error(f"Sale {sale_id}: {message}")
            failures.append(message)
            balance = None

    # ===============================
    # 4. RECEIPT + RESET
    # ===============================
    result = CheckoutResult(
        sale=sale,
        receipt=Receipt.for_sale(sale),
        balance=balance,
        failures=failures,
    )

    cart.clear()

    if failures:
        raise CheckoutIncompleteError(result, failures)

    return result


def list_sales(store: DocumentStore, limit: int = 20, cursor: str | None = None):
    items, next_cursor = store.list_documents(
        SALES,
        order_by="timestamp",
        descending=True,
        limit=limit,
        cursor=cursor,
    )
    return [Sale.from_document(item) for item in items], next_cursor


def get_sale(store: DocumentStore, sale_id: str) -> Sale:
    return Sale.from_document(store.get_document(SALES, sale_id))
