# =========================================================
# BALANCE SETTLEMENT
#
# A later payment against an outstanding CustomerBalance.
# The balance document is the source of truth for what is
# owed and is always written BEFORE the sale mirror:
#
#   1. customer_balances/<id>   paid, balance, status, dates
#   2. sales/<sale_id>          paid, balance, status
#
# The two writes are not transactional. If step 2 fails the
# balance is ahead of the sale, never the other way round.
# Stock is never touched here.
# =========================================================

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from duka.core.exceptions import (
    BalanceAlreadyClearedError,
    InvalidPaymentAmountError,
    LedgerWriteError,
    MissingReferenceError,
    PersistenceError,
    SaleMirrorError,
)
from duka.core.store import CUSTOMER_BALANCES, SALES, DocumentStore
from duka.schemas.balance import BalanceStatus, CustomerBalance, PaymentRequest
from duka.schemas.sale import NO_REFERENCE, PaymentMethod, SaleStatus
from duka.services.sales_service import parse_payment_method, to_money

logger = logging.getLogger("duka")


@dataclass
class SettlementResult:
    balance: CustomerBalance
    sale_id: str
    sale_status: SaleStatus


def sale_status_for_balance(status: BalanceStatus) -> SaleStatus:
    if status == BalanceStatus.CLEARED:
        return SaleStatus.COMPLETED
    return SaleStatus.PARTIAL


def get_balance(store: DocumentStore, balance_id: str) -> CustomerBalance:
    return CustomerBalance.from_document(store.get_document(CUSTOMER_BALANCES, balance_id))


def list_balances(
    store: DocumentStore,
    status: BalanceStatus | None = None,
    limit: int | None = 20,
    cursor: str | None = None,
):
    filters = {"status": status.value} if status else None

    items, next_cursor = store.list_documents(
        CUSTOMER_BALANCES,
        filters=filters,
        order_by="purchaseDate",
        descending=True,
        limit=limit,
        cursor=cursor,
    )
    return [CustomerBalance.from_document(item) for item in items], next_cursor


def settle_balance(
    store: DocumentStore,
    balance_id: str,
    payment: PaymentRequest,
    now: datetime | None = None,
) -> SettlementResult:
    # Re-read so the amount check runs against the current figures
    balance = get_balance(store, balance_id)

    if balance.status != BalanceStatus.PENDING:
        raise BalanceAlreadyClearedError(balance_id)

    # Rounded to cents like every checkout amount
    amount = to_money(payment.amount)
    if amount <= 0 or amount > balance.balance_amount:
        raise InvalidPaymentAmountError(amount, balance.balance_amount)

    method = parse_payment_method(payment.payment_method)

    reference = (payment.transaction_reference or "").strip()
    if method == PaymentMethod.MOBILE_MONEY and not reference:
        raise MissingReferenceError()

    now = now or datetime.now(timezone.utc)

    new_paid = balance.paid_amount + amount
    new_balance = balance.balance_amount - amount
    new_status = BalanceStatus.CLEARED if new_balance == 0 else BalanceStatus.PENDING

    updates = {
        "paid_amount": new_paid,
        "balance_amount": new_balance,
        "status": new_status,
        "last_payment_date": now,
        "last_payment_method": method.value,
        "last_payment_reference": reference or NO_REFERENCE,
    }
    if new_status == BalanceStatus.CLEARED:
        updates["cleared_date"] = now

    updated = balance.model_copy(update=updates)
    ledger_fields = updated.model_dump(
        mode="json",
        by_alias=True,
        include=set(updates),
    )

    # ===============================
    # 1. LEDGER FIRST
    # ===============================
    try:
        store.update_document(CUSTOMER_BALANCES, balance_id, ledger_fields)
    except PersistenceError as exc:
        logger.error(f"Settlement of balance {balance_id} failed: {exc}")
        raise LedgerWriteError(balance_id, exc) from exc

    logger.info(
        f"Balance {balance_id}: paid {amount}, outstanding {new_balance}, "
        f"status={new_status.value}"
    )

    # ===============================
    # 2. MIRROR ONTO SALE
    # ===============================
    sale_status = sale_status_for_balance(new_status)
    sale_fields = {
        "paidAmount": ledger_fields["paidAmount"],
        "balanceAmount": ledger_fields["balanceAmount"],
        "status": sale_status.value,
    }

    try:
        store.update_document(SALES, balance.sale_id, sale_fields)
    except PersistenceError as exc:
        logger.error(
            f"Balance {balance_id} updated but sale {balance.sale_id} was not: {exc}"
        )
        raise SaleMirrorError(updated, balance.sale_id, exc) from exc

    return SettlementResult(
        balance=updated,
        sale_id=balance.sale_id,
        sale_status=sale_status,
    )
