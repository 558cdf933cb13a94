# app/schemas/order.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "processing", "completed", "failed", "cancelled"]


class ShippingAddress(SQLModel):
    """
    Delivery destination, stored as JSON on the order.

    Field names follow the storefront form (camelCase).
    """

    model_config = ConfigDict(extra="forbid")

    recipientName: str = Field(max_length=100)
    phone: str = Field(max_length=20)
    postalCode: str = Field(max_length=10)
    address: str
    detailAddress: str
    deliveryRequest: str | None = None

    @field_validator("recipientName", "phone", "postalCode", "address", "detailAddress")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("deliveryRequest")
    @classmethod
    def normalize_request(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderCreate(SQLModel):
    """
    Payload for creating an order from selected cart entries.

    Backend derives:
      - owner_id from token
      - status = 'pending', payment_status = 'pending'
      - subtotal / shipping_fee / total_amount from current product prices
      - items from the selected cart entries
    """

    model_config = ConfigDict(extra="forbid")

    cart_item_ids: list[uuid.UUID]
    shipping_address: ShippingAddress
    order_note: str | None = Field(default=None, max_length=500)

    @field_validator("order_note")
    @classmethod
    def normalize_note(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderCreated(SQLModel):
    order_id: uuid.UUID


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    owner_id: str
    status: OrderStatus
    payment_status: PaymentStatus
    subtotal: Decimal
    shipping_fee: Decimal
    total_amount: Decimal
    shipping_address: dict[str, Any] | None = None
    order_note: str | None = None
    payment_id: str | None = None
    payment_method: str | None = None
    payment_data: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    price: Decimal
    options: dict[str, str] | None = None
    line_total: Decimal
    created_at: datetime


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
