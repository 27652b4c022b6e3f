# =========================================================
# SALES ROUTER
#
# Checkout turns the operator's cart into a sale. Once the
# sale document is written the sale has happened: later
# step failures come back as 502 with the sale id and one
# message per step, and nothing is rolled back.
# =========================================================

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from duka.core.auth import get_current_user
from duka.core.exceptions import (
    CheckoutIncompleteError,
    DocumentNotFoundError,
    PersistenceError,
    SaleWriteError,
    StoreError,
    ValidationError,
)
from duka.core.rate_limiter import limiter
from duka.core.store import DocumentStore, get_store
from duka.routers.cart import get_cart
from duka.schemas.checkout import CheckoutResponse
from duka.schemas.sale import CheckoutRequest, Receipt, Sale, SalePage
from duka.services import sales_service
from duka.services.cart import Cart

router = APIRouter(prefix="/sales", tags=["Sales"])


# =========================================================
# CHECKOUT
# =========================================================
@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def checkout(
    request: Request,
    checkout_data: CheckoutRequest,
    cart: Cart = Depends(get_cart),
    store: DocumentStore = Depends(get_store),
):
    try:
        # One checkout at a time per cart
        with cart.lock:
            result = sales_service.checkout(store, cart, checkout_data)

    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    except SaleWriteError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    except CheckoutIncompleteError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(exc),
                "saleId": exc.result.sale.id,
                "failures": exc.failures,
                "receipt": exc.result.receipt.model_dump(mode="json", by_alias=True),
            },
        )

    except PersistenceError as exc:
        # Raised before any write, by the requestId lookup
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    return CheckoutResponse(
        sale=result.sale,
        receipt=result.receipt,
        balance=result.balance,
        replayed=result.replayed,
    )


# =========================================================
# LIST SALES (NEWEST FIRST)
# =========================================================
@router.get("", response_model=SalePage)
def list_sales(
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = None,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        sales, next_cursor = sales_service.list_sales(store, limit=limit, cursor=cursor)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    return SalePage(items=sales, next_cursor=next_cursor)


# =========================================================
# SINGLE SALE / RECEIPT
# =========================================================
@router.get("/{sale_id}", response_model=Sale)
def get_sale(
    sale_id: str,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        return sales_service.get_sale(store, sale_id)
    except DocumentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")


@router.get("/{sale_id}/receipt", response_model=Receipt)
def get_receipt(
    sale_id: str,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        sale = sales_service.get_sale(store, sale_id)
    except DocumentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")

    return Receipt.for_sale(sale)
