# app/models/order.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Lifecycle:
      pending --(payment settles)--> confirmed --> shipped --> delivered
      pending | confirmed --(cancel)--> cancelled

    total_amount = subtotal + shipping_fee
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    owner_id: str = Field(
        index=True,
        description="Identity-provider user id",
    )

    # pending | confirmed | shipped | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    # pending | processing | completed | failed | cancelled
    payment_status: str = Field(
        default="pending",
        index=True,
    )

    subtotal: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    shipping_fee: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    total_amount: Decimal = Field(
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Subtotal plus shipping fee",
    )

    # recipientName, phone, postalCode, address, detailAddress, deliveryRequest
    shipping_address: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    order_note: str | None = None

    payment_id: str | None = Field(
        default=None,
        description="Provider paymentKey",
    )
    payment_method: str | None = None
    payment_data: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    product_name, price and options are snapshots taken at order time,
    so later product edits never change a historical order.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        ondelete="CASCADE",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        ondelete="RESTRICT",
        index=True,
    )

    product_name: str

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    price: Decimal = Field(
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Unit price at time of order",
    )

    options: dict[str, str] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
