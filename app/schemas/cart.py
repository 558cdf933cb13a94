# app/schemas/cart.py
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from app.schemas.product import ProductRead


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    options: chosen value per option name, e.g. {"size": "M"}.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)
    options: dict[str, str] | None = None


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(ge=1)


class CartItemIds(SQLModel):
    """
    Batch payload (bulk delete).
    """

    model_config = ConfigDict(extra="forbid")

    cart_item_ids: list[uuid.UUID]


class CartItemRead(SQLModel):
    id: uuid.UUID
    owner_id: str
    product_id: uuid.UUID
    quantity: int
    options: dict[str, str] | None = None
    created_at: datetime
    updated_at: datetime


class CartLineRead(CartItemRead):
    """
    Cart entry joined with its current product, plus line_total.
    """

    product: ProductRead
    line_total: Decimal


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartLineRead]
    total_quantity: int
    subtotal: Decimal
    shipping_fee: Decimal
    total_amount: Decimal


class CartCount(SQLModel):
    count: int

