# app/services/cart_service.py
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.errors import (
    InsufficientStock,
    NotFound,
    ProductMissing,
    ProductUnavailable,
)
from app.models.cart import CartItem, options_key
from app.models.product import Product
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartItemCreate, CartLineRead, CartSummary
from app.schemas.product import ProductRead
from app.services.pricing import calculate_shipping_fee

logger = logging.getLogger(__name__)


def ensure_purchasable(product: Product | None, product_id: uuid.UUID) -> Product:
    """
    Shared product gate for cart and checkout: exists, active, not hidden.
    """
    if product is None:
        raise ProductMissing(f"Product not found (id: {product_id})")
    if not product.is_active or product.status == "hidden":
        raise ProductUnavailable(f"Product is not available for sale: {product.name}")
    return product


def _stock_error(product: Product) -> InsufficientStock:
    return InsufficientStock(
        f"Not enough stock for {product.name} "
        f"(max {product.stock_quantity} available)"
    )


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate product existence, active flag and hidden status
      - merge entries with the same product + option-set
      - enforce quantity <= stock_quantity (the merged quantity on merge)
      - scope every read/write to the owner
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- reads ----

    def get_cart_summary(
        self,
        session: Session,
        owner_id: str | None,
    ) -> CartSummary:
        """
        Caller's entries with their current product and totals.
        Guests get an empty cart.
        """
        lines: list[CartLineRead] = []
        total_qty = 0
        subtotal = Decimal("0")

        items = self.cart_repo.list_for_owner(session, owner_id) if owner_id else []
        for it in items:
            product = self.product_repo.get_by_id(session, it.product_id)
            if product is None:
                continue
            line_total = product.price * it.quantity
            total_qty += it.quantity
            subtotal += line_total
            lines.append(
                CartLineRead(
                    id=it.id,
                    owner_id=it.owner_id,
                    product_id=it.product_id,
                    quantity=it.quantity,
                    options=it.options,
                    created_at=it.created_at,
                    updated_at=it.updated_at,
                    product=ProductRead.model_validate(product),
                    line_total=line_total,
                )
            )

        shipping_fee = calculate_shipping_fee(subtotal) if lines else Decimal("0")
        return CartSummary(
            items=lines,
            total_quantity=total_qty,
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            total_amount=subtotal + shipping_fee,
        )

    def count_entries(self, session: Session, owner_id: str | None) -> int:
        """Badge counter; 0 for guests."""
        if not owner_id:
            return 0
        return self.cart_repo.count_for_owner(session, owner_id)

    # ---- writes ----

    def add_to_cart(
        self,
        session: Session,
        owner_id: str,
        payload: CartItemCreate,
    ) -> CartItem:
        """
        Add a product to the owner's cart.

        Rules:
          - product must exist, be active and not hidden, and have stock > 0
          - same product + same option-set => quantities are merged, and
            the merged quantity must not exceed stock
        """
        product = ensure_purchasable(
            self.product_repo.get_by_id(session, payload.product_id),
            payload.product_id,
        )
        if product.stock_quantity <= 0:
            raise InsufficientStock(f"{product.name} is sold out")

        options = payload.options or None
        key = options_key(options)
        existing = self.cart_repo.find_entry(session, owner_id, product.id, key)

        if existing:
            return self._merge(session, existing, product, payload.quantity)

        if payload.quantity > product.stock_quantity:
            raise _stock_error(product)

        item = CartItem(
            owner_id=owner_id,
            product_id=product.id,
            quantity=payload.quantity,
            options=options,
            options_key=key,
        )
        try:
            item = self.cart_repo.create(session, item)
        except IntegrityError:
            # A concurrent add created the same entry first; merge into it.
            session.rollback()
            existing = self.cart_repo.find_entry(session, owner_id, product.id, key)
            if existing is None:
                raise
            return self._merge(session, existing, product, payload.quantity)
        logger.info("cart add: owner=%s item=%s qty=%s", owner_id, item.id, item.quantity)
        return item

    def _merge(
        self,
        session: Session,
        existing: CartItem,
        product: Product,
        quantity: int,
    ) -> CartItem:
        new_qty = existing.quantity + quantity
        if new_qty > product.stock_quantity:
            raise _stock_error(product)
        existing.quantity = new_qty
        existing.updated_at = datetime.now(timezone.utc)
        item = self.cart_repo.update(session, existing)
        logger.info("cart merge: owner=%s item=%s qty=%s", item.owner_id, item.id, new_qty)
        return item

    def update_quantity(
        self,
        session: Session,
        owner_id: str,
        item_id: uuid.UUID,
        quantity: int,
    ) -> CartItem:
        """
        Set (not increment) the quantity of one entry, re-validated
        against the product's current state.
        """
        item = self.cart_repo.get_owned(session, owner_id, item_id)
        if not item:
            raise NotFound("Cart item not found")

        product = ensure_purchasable(
            self.product_repo.get_by_id(session, item.product_id),
            item.product_id,
        )
        if quantity > product.stock_quantity:
            raise _stock_error(product)

        item.quantity = quantity
        item.updated_at = datetime.now(timezone.utc)
        return self.cart_repo.update(session, item)

    def remove_entry(self, session: Session, owner_id: str, item_id: uuid.UUID) -> None:
        self.cart_repo.delete_ids(session, owner_id, [item_id])

    def remove_entries(
        self,
        session: Session,
        owner_id: str,
        item_ids: list[uuid.UUID],
    ) -> int:
        """
        Batch delete; ids that are absent or belong to someone else
        just match nothing.
        """
        return self.cart_repo.delete_ids(session, owner_id, item_ids)

    def clear_cart(self, session: Session, owner_id: str) -> int:
        return self.cart_repo.clear_owner_cart(session, owner_id)
