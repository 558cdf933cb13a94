# app/models/cart.py
import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field

# Key shared by every "no option" entry (options None or {}).
NO_OPTIONS_KEY = "null"


def options_key(options: dict[str, str] | None) -> str:
    """
    Canonical serialization of an option-set.

    Key order does not matter: {"size": "M", "color": "red"} and
    {"color": "red", "size": "M"} produce the same key.
    """
    if not options:
        return NO_OPTIONS_KEY
    return json.dumps(options, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class CartItem(SQLModel, table=True):
    """
    Shopping cart entry for a user.

    One owner cannot have 2 rows for the same product + option-set.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint(
            "owner_id",
            "product_id",
            "options_key",
            name="cart_items_unique_owner_product_options",
        ),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    owner_id: str = Field(
        index=True,
        description="Identity-provider user id",
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        ondelete="CASCADE",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    options: dict[str, str] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    options_key: str = Field(
        default=NO_OPTIONS_KEY,
        description="Canonical form of options, part of the unique key",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
