# =========================================================
# CART ROUTER
#
# One in-memory cart per authenticated operator. Rejected
# quantity changes answer 409 and leave the cart unchanged.
# =========================================================

from fastapi import APIRouter, Depends, HTTPException, status

from duka.core.auth import CurrentUser, get_current_user
from duka.core.exceptions import DocumentNotFoundError
from duka.core.store import DocumentStore, get_store
from duka.schemas.cart import AddLineRequest, CartLineResponse, CartResponse, SetQuantityRequest
from duka.services import product_service
from duka.services.cart import Cart, cart_sessions

router = APIRouter(prefix="/cart", tags=["Cart"])


def get_cart(current_user: CurrentUser = Depends(get_current_user)) -> Cart:
    return cart_sessions.get(current_user.uid)


def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(
        lines=[
            CartLineResponse(
                product_id=line.product_id,
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                max_quantity=line.max_quantity,
                line_total=line.line_total,
                image_url=line.image_url,
            )
            for line in cart.lines
        ],
        total=cart.total(),
        warnings=cart.drain_warnings(),
    )


def _rejected(cart: Cart):
    warnings = cart.drain_warnings()
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=warnings[-1] if warnings else "Cart change rejected",
    )


@router.get("", response_model=CartResponse)
def view_cart(cart: Cart = Depends(get_cart)):
    with cart.lock:
        return _cart_response(cart)


@router.delete("", response_model=CartResponse)
def cancel_cart(cart: Cart = Depends(get_cart)):
    with cart.lock:
        cart.clear()
        return _cart_response(cart)


@router.post("/lines", response_model=CartResponse)
def add_line(
    line_data: AddLineRequest,
    cart: Cart = Depends(get_cart),
    store: DocumentStore = Depends(get_store),
):
    try:
        product = product_service.get_product(store, line_data.product_id)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")

    with cart.lock:
        if not cart.add_line(product):
            raise _rejected(cart)

        return _cart_response(cart)


@router.put("/lines/{product_id}", response_model=CartResponse)
def set_line_quantity(
    product_id: str,
    quantity_data: SetQuantityRequest,
    cart: Cart = Depends(get_cart),
):
    with cart.lock:
        if product_id not in cart:
            raise HTTPException(status_code=404, detail="Product is not in the cart")

        if not cart.set_line_quantity(product_id, quantity_data.quantity):
            raise _rejected(cart)

        return _cart_response(cart)


@router.delete("/lines/{product_id}", response_model=CartResponse)
def remove_line(
    product_id: str,
    cart: Cart = Depends(get_cart),
):
    with cart.lock:
        cart.remove_line(product_id)
        return _cart_response(cart)
