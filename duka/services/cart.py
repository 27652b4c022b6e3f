# =========================================================
# CART
#
# Session-scoped purchase intent. Never persisted; the
# checkout service receives the cart as an argument.
#
# Quantity bounds come from the product balance known when
# the line was added or last refreshed. Attempts to go past
# the bound are rejected with a warning, never clamped.
# =========================================================

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal

from duka.schemas.product import Product

logger = logging.getLogger("duka")


@dataclass
class CartLine:
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    max_quantity: int
    image_url: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Cart:
    """One operator's cart.

    Every method holds ``lock``. Callers that need several calls to see a
    consistent cart (building a response, checking out) take it themselves;
    it is re-entrant.
    """

    def __init__(self):
        self._lines: dict[str, CartLine] = {}
        self.warnings: list[str] = []
        self.lock = threading.RLock()

    def __len__(self):
        with self.lock:
            return len(self._lines)

    def __contains__(self, product_id):
        with self.lock:
            return product_id in self._lines

    @property
    def lines(self) -> list[CartLine]:
        with self.lock:
            return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        with self.lock:
            return not self._lines

    def _warn(self, message: str) -> bool:
        logger.warning(message)
        self.warnings.append(message)
        return False

    def add_line(self, product: Product) -> bool:
        with self.lock:
            line = self._lines.get(product.id)

            if line is None:
                if product.balance <= 0:
                    return self._warn(f"{product.name} is out of stock.")

                self._lines[product.id] = CartLine(
                    product_id=product.id,
                    name=product.name,
                    unit_price=product.selling_price,
                    quantity=1,
                    max_quantity=product.balance,
                    image_url=product.image_url,
                )
                return True

            # The fresher stock figure only replaces the snapshot when the add succeeds
            if line.quantity + 1 > product.balance:
                return self._warn(
                    f"Cannot add more {line.name}. Maximum stock reached."
                )

            line.max_quantity = product.balance
            line.quantity += 1
            return True

    def set_line_quantity(self, product_id: str, quantity: int) -> bool:
        with self.lock:
            line = self._lines.get(product_id)

            if line is None:
                return self._warn(f"Product {product_id} is not in the cart.")

            if quantity <= 0:
                self.remove_line(product_id)
                return True

            if quantity > line.max_quantity:
                return self._warn(
                    f"Cannot add more than available stock ({line.max_quantity})."
                )

            line.quantity = quantity
            return True

    def remove_line(self, product_id: str) -> None:
        with self.lock:
            self._lines.pop(product_id, None)

    def total(self) -> Decimal:
        with self.lock:
            return sum((line.line_total for line in self._lines.values()), Decimal("0"))

    def drain_warnings(self) -> list[str]:
        with self.lock:
            warnings, self.warnings = self.warnings, []
            return warnings

    def clear(self) -> None:
        with self.lock:
            self._lines.clear()
            self.warnings = []


class CartSessions:
    """Process-local carts keyed by the operator's session id."""

    def __init__(self):
        self._carts: dict[str, Cart] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Cart:
        with self._lock:
            return self._carts.setdefault(session_id, Cart())

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._carts.pop(session_id, None)

    def reset(self) -> None:
        with self._lock:
            self._carts.clear()


cart_sessions = CartSessions()
