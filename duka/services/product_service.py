"""Catalog operations on the ``products`` collection.

Derived fields (``balance = quantity - sold`` and ``total = price * quantity``)
are only computed here, when a full record is written. Sales move ``sold``
and ``balance`` through the store's atomic increment instead.
"""

import logging
import math

from duka.core.exceptions import InvalidProductError
from duka.core.store import CATEGORIES, PRODUCTS, DocumentStore
from duka.schemas.product import Product, ProductCreate, ProductPage, ProductUpdate

logger = logging.getLogger("duka")

UNCATEGORIZED = "Uncategorized"
ALL_CATEGORIES = "All"


def _materialize(product_id: str, data: dict) -> Product:
    quantity = int(data.get("quantity") or 0)
    sold = int(data.get("sold") or 0)

    if sold > quantity:
        raise InvalidProductError("Sold units cannot exceed quantity.")

    data = {
        **data,
        "id": product_id,
        "category": data.get("category") or UNCATEGORIZED,
        "balance": quantity - sold,
        "total": data["price"] * quantity,
    }
    return Product.model_validate(data)


def create_product(store: DocumentStore, product_data: ProductCreate) -> Product:
    product = _materialize("", product_data.model_dump(exclude_none=True))

    product_id = store.create_document(PRODUCTS, product.to_document())
    logger.info(f"Product {product.name} created ({product_id})")

    return product.model_copy(update={"id": product_id})


def get_product(store: DocumentStore, product_id: str) -> Product:
    return Product.from_document(store.get_document(PRODUCTS, product_id))


def update_product(
    store: DocumentStore,
    product_id: str,
    product_data: ProductUpdate,
) -> Product:
    current = get_product(store, product_id)
    changes = product_data.model_dump(exclude_unset=True, exclude_none=True)

    merged = current.model_dump(exclude={"id", "balance", "total"})
    merged.update(changes)

    product = _materialize(product_id, merged)
    document = product.to_document()

    if "sold" in changes:
        # An explicit stock count overwrites both counters
        store.update_document(PRODUCTS, product_id, document)
        return product

    # Sales may have moved sold/balance since the read above; only shift
    # balance by the change in quantity
    document.pop("sold")
    document.pop("balance")
    store.update_document(PRODUCTS, product_id, document)

    restocked = product.quantity - current.quantity
    if restocked:
        store.atomic_increment(PRODUCTS, product_id, {"balance": restocked})

    return get_product(store, product_id)


def delete_product(store: DocumentStore, product_id: str) -> None:
    store.delete_document(PRODUCTS, product_id)
    logger.info(f"Product {product_id} deleted")


def set_product_image(store: DocumentStore, product_id: str, image_url: str) -> Product:
    store.update_document(PRODUCTS, product_id, {"imageUrl": image_url})
    return get_product(store, product_id)


def all_products(store: DocumentStore) -> list[Product]:
    items, _ = store.list_documents(PRODUCTS)
    return [Product.from_document(item) for item in items]


# =========================================================
# SEARCH / FILTER / SORT / PAGINATE
# =========================================================
def matches_search(product: Product, search: str | None) -> bool:
    if not search:
        return True

    needle = search.lower()
    return needle in product.name.lower() or needle in (product.barcode or "").lower()


def matches_category(product: Product, category: str | None) -> bool:
    if not category or category == ALL_CATEGORIES:
        return True
    return (product.category or UNCATEGORIZED) == category


def _sort_key(value):
    if isinstance(value, str):
        return (1, value.lower())
    return (0, value)


def _resolve_field(sort_field: str) -> str:
    for name, info in Product.model_fields.items():
        if sort_field in (name, info.alias):
            return name
    raise InvalidProductError(f"Cannot sort by {sort_field}")


def sort_products(products: list[Product], sort_field: str, descending: bool = False):
    sort_field = _resolve_field(sort_field)

    present = [p for p in products if getattr(p, sort_field) is not None]
    missing = [p for p in products if getattr(p, sort_field) is None]

    present.sort(key=lambda p: _sort_key(getattr(p, sort_field)), reverse=descending)
    return present + missing


def search_products(
    store: DocumentStore,
    search: str | None = None,
    category: str | None = None,
    sort_field: str = "name",
    descending: bool = False,
    page: int = 1,
    page_size: int = 10,
) -> ProductPage:
    products = [
        product for product in all_products(store)
        if matches_search(product, search) and matches_category(product, category)
    ]
    products = sort_products(products, sort_field, descending)

    total_items = len(products)
    start = (page - 1) * page_size

    return ProductPage(
        items=products[start:start + page_size],
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=math.ceil(total_items / page_size),
    )


def available_products(
    store: DocumentStore,
    search: str | None = None,
    category: str | None = None,
) -> list[Product]:
    return [
        product for product in all_products(store)
        if product.balance > 0
        and matches_search(product, search)
        and matches_category(product, category)
    ]


def list_categories(store: DocumentStore) -> list[str]:
    items, _ = store.list_documents(CATEGORIES, order_by="name")
    names = [item["name"] for item in items if item.get("name")]

    if names:
        return names

    return sorted({product.category or UNCATEGORIZED for product in all_products(store)})


def low_stock_products(store: DocumentStore, threshold: int) -> list[Product]:
    products = [p for p in all_products(store) if p.balance < threshold]
    return sorted(products, key=lambda p: p.balance)
