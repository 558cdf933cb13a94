# app/models/product.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    - status: active | out_of_stock | hidden
    - status='hidden' always goes together with is_active=False
      (admin writes set both; the DB trigger is only a safety net).
    - image_url is the legacy single image; image_urls is authoritative.
    - options: free-form {"size": ["S", "M"], "color": ["red"]}
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name of the product",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description",
    )

    price: Decimal = Field(
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Unit price (KRW)",
    )

    category: str | None = Field(
        default=None,
        index=True,
        max_length=50,
    )

    stock_quantity: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    status: str = Field(
        default="active",
        index=True,
        description="active | out_of_stock | hidden",
    )

    image_url: str | None = Field(
        default=None,
        description="Legacy single image URL",
    )

    image_urls: list[str] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    options: dict[str, list[str]] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    view_count: int = Field(default=0, ge=0)

    is_promotional: bool = Field(default=False, index=True)

    original_price: Decimal | None = Field(
        default=None,
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Price before discount (promotional products)",
    )

    discount_percentage: int | None = Field(default=None, ge=0, le=100)

    promotion_start_date: datetime | None = None
    promotion_end_date: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
