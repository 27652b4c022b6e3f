import datetime
from decimal import Decimal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1)
    barcode: str = ""
    category: str | None = None
    description: str | None = None

    price: Decimal = Field(
        ...,
        ge=0,
        lt=100_000_000,
        description="Unit cost must be below 100 million"
    )

    selling_price: Decimal = Field(
        ...,
        ge=0,
        lt=100_000_000,
        description="Unit selling price must be below 100 million"
    )

    quantity: int = Field(..., ge=0)
    sold: int = Field(0, ge=0)
    stocked_on: datetime.date | None = Field(None, alias="date")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: str | None = None
    barcode: str | None = None
    category: str | None = None
    description: str | None = None
    price: Decimal | None = Field(None, ge=0)
    selling_price: Decimal | None = Field(None, ge=0)
    quantity: int | None = Field(None, ge=0)
    sold: int | None = Field(None, ge=0)
    stocked_on: datetime.date | None = Field(None, alias="date")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Product(BaseModel):
    """A catalog entry as stored in the ``products`` collection.

    ``balance`` is the units on hand (``quantity - sold``); during sales
    both ``sold`` and ``balance`` only move through atomic increments.
    """

    id: str
    name: str
    barcode: str = ""
    category: str = "Uncategorized"
    description: str | None = None
    price: Decimal = Decimal("0")
    selling_price: Decimal = Decimal("0")
    quantity: int = 0
    sold: int = 0
    balance: int = 0
    total: Decimal = Decimal("0")
    stocked_on: datetime.date | None = Field(None, alias="date")
    image_url: str | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @classmethod
    def from_document(cls, document: dict) -> "Product":
        data = dict(document)
        if not data.get("category"):
            data.pop("category", None)
        return cls.model_validate(data)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


class ProductPage(BaseModel):
    items: list[Product]
    page: int
    page_size: int
    total_items: int
    total_pages: int

    class Config:
        alias_generator = to_camel
        populate_by_name = True
