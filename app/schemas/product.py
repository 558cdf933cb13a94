# app/schemas/product.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

ProductStatus = Literal["active", "out_of_stock", "hidden"]
SortDirection = Literal["asc", "desc"]
AdminSortField = Literal["name", "price", "created_at", "view_count"]


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: uuid.UUID
    name: str
    description: str | None = None
    price: Decimal
    category: str | None = None
    stock_quantity: int
    is_active: bool
    status: ProductStatus
    image_url: str | None = None
    image_urls: list[str] | None = None
    options: dict[str, list[str]] | None = None
    view_count: int = 0
    is_promotional: bool = False
    original_price: Decimal | None = None
    discount_percentage: int | None = None
    promotion_start_date: datetime | None = None
    promotion_end_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ProductPage(SQLModel):
    """
    One page of the public product list.
    """

    items: list[ProductRead]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class CategoryInfo(SQLModel):
    category: str
    label: str
    count: int


class ProductCreate(SQLModel):
    """
    Admin payload for creating a product.

    - image_urls wins over the legacy image_url when both are sent.
    - is_active is derived from status, never sent by the client.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=255)
    description: str | None = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category: str | None = Field(default=None, max_length=50)
    stock_quantity: int = Field(default=0, ge=0)
    image_url: str | None = None
    image_urls: list[str] | None = None
    is_promotional: bool = False
    original_price: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2
    )
    discount_percentage: int | None = Field(default=None, ge=0, le=100)
    promotion_start_date: datetime | None = None
    promotion_end_date: datetime | None = None
    options: dict[str, list[str]] | None = None
    status: ProductStatus = "active"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("category")
    @classmethod
    def normalize_category(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def check_original_price(self):
        if self.original_price is not None and self.original_price < self.price:
            raise ValueError("original_price must be >= price")
        return self


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    Only fields actually sent are written (exclude_unset).
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category: str | None = Field(default=None, max_length=50)
    stock_quantity: int | None = Field(default=None, ge=0)
    image_url: str | None = None
    image_urls: list[str] | None = None
    is_promotional: bool | None = None
    original_price: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2
    )
    discount_percentage: int | None = Field(default=None, ge=0, le=100)
    promotion_start_date: datetime | None = None
    promotion_end_date: datetime | None = None
    options: dict[str, list[str]] | None = None
    status: ProductStatus | None = None

    # Omit these to keep the stored value; null is not a value for them.
    @field_validator("name", "price", "stock_quantity", "is_promotional", "status", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)


class AdminProductQuery(SQLModel):
    """
    Filters for the admin product table. All optional and composable.
    """

    search: str | None = None
    status: ProductStatus | None = None
    category: str | None = None
    sort_by: AdminSortField = "created_at"
    sort_order: SortDirection = "desc"
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


class ProductImageUploadRead(SQLModel):
    url: str
    product: ProductRead
