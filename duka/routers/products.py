# duka/routers/products.py

from typing import Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from duka.core.auth import get_current_user
from duka.core.exceptions import (
    BlobStorageError,
    DocumentNotFoundError,
    InvalidImageError,
    InvalidProductError,
    StoreError,
)
from duka.core.store import DocumentStore, get_store
from duka.schemas.product import Product, ProductCreate, ProductPage, ProductUpdate
from duka.services import product_service
from duka.services.storage_service import BlobStorage, get_storage

router = APIRouter(
    prefix="/products",
    tags=["Products"],
)


def _product_not_found():
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Product not found",
    )


@router.post(
    "",
    response_model=Product,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    product_data: ProductCreate,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        return product_service.create_product(store, product_data)
    except InvalidProductError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StoreError:
        raise HTTPException(status_code=500, detail="Unable to save product")


@router.get("", response_model=ProductPage)
def list_products(
    search: str | None = None,
    category: str | None = None,
    sort: str = "name",
    order: Literal["asc", "desc"] = "asc",
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        return product_service.search_products(
            store,
            search=search,
            category=category,
            sort_field=sort,
            descending=order == "desc",
            page=page,
            page_size=page_size,
        )
    except InvalidProductError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/available", response_model=list[Product])
def list_available_products(
    search: str | None = None,
    category: str | None = None,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    # Only products with stock left can be sold
    return product_service.available_products(store, search=search, category=category)


@router.get("/categories", response_model=list[str])
def list_categories(
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    return product_service.list_categories(store)


@router.get("/{product_id}", response_model=Product)
def get_product(
    product_id: str,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        return product_service.get_product(store, product_id)
    except DocumentNotFoundError:
        raise _product_not_found()


@router.put("/{product_id}", response_model=Product)
def update_product(
    product_id: str,
    product_data: ProductUpdate,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        return product_service.update_product(store, product_id, product_data)
    except DocumentNotFoundError:
        raise _product_not_found()
    except InvalidProductError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StoreError:
        raise HTTPException(status_code=500, detail="Unable to update product")


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: str,
    store: DocumentStore = Depends(get_store),
    current_user=Depends(get_current_user),
):
    try:
        product_service.delete_product(store, product_id)
    except DocumentNotFoundError:
        raise _product_not_found()

    return None


@router.post("/{product_id}/image", response_model=Product)
def upload_product_image(
    product_id: str,
    image: UploadFile = File(...),
    store: DocumentStore = Depends(get_store),
    storage: BlobStorage = Depends(get_storage),
    current_user=Depends(get_current_user),
):
    try:
        product_service.get_product(store, product_id)
    except DocumentNotFoundError:
        raise _product_not_found()

    try:
        url = storage.upload_blob(
            f"products/{product_id}/{image.filename}",
            image.file.read(),
            image.content_type,
        )
    except InvalidImageError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except BlobStorageError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    return product_service.set_product_image(store, product_id, url)
