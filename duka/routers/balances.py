# =========================================================
# CUSTOMER BALANCES ROUTER
#
# Listing is newest purchase first. A payment updates the
# balance and then mirrors the figures onto the sale; when
# only the first write lands the answer is 502 and says so.
# =========================================================

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from duka.core.auth import get_current_user
from duka.core.exceptions import (
    ConsistencyError,
    DocumentNotFoundError,
    LedgerWriteError,
    SaleMirrorError,
    StoreError,
    ValidationError,
)
from duka.core.rate_limiter import limiter
from duka.core.store import DocumentStore, get_store
from duka.schemas.balance import BalancePage, BalanceStatus, CustomerBalance, PaymentRequest
from duka.schemas.checkout import SettlementResponse
from duka.services import balance_service

router = APIRouter(prefix="/balances", tags=["Customer Balances"])


def _balance_not_found():
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Balance not found",
    )


@router.get("", response_model=BalancePage)
def list_balances(
    status_filter: BalanceStatus | None = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = None,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        balances, next_cursor = balance_service.list_balances(
            store,
            status=status_filter,
            limit=limit,
            cursor=cursor,
        )
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    return BalancePage(items=balances, next_cursor=next_cursor)


@router.get("/{balance_id}", response_model=CustomerBalance)
def get_balance(
    balance_id: str,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        return balance_service.get_balance(store, balance_id)
    except DocumentNotFoundError:
        raise _balance_not_found()


@router.post("/{balance_id}/payments", response_model=SettlementResponse)
@limiter.limit("30/minute")
def record_payment(
    request: Request,
    balance_id: str,
    payment: PaymentRequest,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        result = balance_service.settle_balance(store, balance_id, payment)

    except DocumentNotFoundError:
        raise _balance_not_found()

    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    except ConsistencyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    except LedgerWriteError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    except SaleMirrorError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(exc),
                "balanceId": exc.balance.id,
                "saleId": exc.sale_id,
            },
        )

    return SettlementResponse(
        balance=result.balance,
        sale_id=result.sale_id,
        sale_status=result.sale_status,
    )
