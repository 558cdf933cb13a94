# app/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import (
    CartMismatch,
    InsufficientStock,
    InvalidAmount,
    InvalidStatusTransition,
    LineItemPersistFailed,
    NotFound,
    OrderNotCancellable,
    OrderPersistFailed,
    StockDecrementFailed,
    Unauthenticated,
)
from app.models.cart import CartItem
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.services.cart_service import ensure_purchasable
from app.services.pricing import calculate_shipping_fee

logger = logging.getLogger(__name__)

# Admin status machine; delivered and cancelled are terminal
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

CANCELLABLE_STATUSES = {"pending", "confirmed"}

__all__ = ["OrderService", "calculate_shipping_fee"]


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create an order from a subset of the caller's cart
      - Validate each entry against its product (exists, active, stock)
      - Compute subtotal / shipping fee / total
      - Persist header + lines and decrement stock in ONE transaction
      - Remove the consumed cart entries (non-fatal on failure)
      - Cancellation and admin status transitions
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # -------- User-facing operations --------

    def create_order(
        self,
        session: Session,
        owner_id: str | None,
        payload: OrderCreate,
    ) -> uuid.UUID:
        """
        Convert the selected cart entries into an Order.

        Steps:
          1. Reject guests and an empty selection.
          2. Load the caller's entries among the ids; every id must match.
          3. For each entry: product exists, is sellable, has enough stock.
          4. subtotal / shipping fee / total; total must be positive.
          5. Insert the order header (pending / pending).
          6. Insert the line items (name, price, options snapshots).
          7. Conditionally decrement stock per line.
          8. Delete the consumed cart entries inside a savepoint.
          9. Commit and return the order id.

        Steps 5-7 share one transaction: any failure rolls all of them back.
        """
        # 1) Guard
        if not owner_id:
            raise Unauthenticated()
        requested = list(payload.cart_item_ids)
        if not requested:
            raise CartMismatch("No cart items selected")

        # 2) Load the selection
        cart_items: list[CartItem] = self.cart_repo.list_by_ids(
            session, owner_id, requested
        )
        if len(cart_items) != len(requested):
            raise CartMismatch()

        # 3) Validate each entry and snapshot line items
        subtotal = Decimal("0")
        pending_lines: list[tuple[Product, CartItem]] = []
        for ci in cart_items:
            product = ensure_purchasable(
                self.product_repo.get_by_id(session, ci.product_id),
                ci.product_id,
            )
            if ci.quantity > product.stock_quantity:
                raise InsufficientStock(
                    f"Not enough stock for {product.name} "
                    f"(have {product.stock_quantity}, requested {ci.quantity})"
                )
            subtotal += product.price * ci.quantity
            pending_lines.append((product, ci))

        # 4) Totals
        shipping_fee = calculate_shipping_fee(subtotal)
        total_amount = subtotal + shipping_fee
        if total_amount <= 0:
            raise InvalidAmount()

        # 5) Order header
        try:
            order = self.order_repo.create_order(
                session,
                Order(
                    owner_id=owner_id,
                    status="pending",
                    payment_status="pending",
                    subtotal=subtotal,
                    shipping_fee=shipping_fee,
                    total_amount=total_amount,
                    shipping_address=payload.shipping_address.model_dump(),
                    order_note=payload.order_note,
                ),
            )
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("order insert failed for owner=%s: %s", owner_id, exc)
            raise OrderPersistFailed() from exc

        # 6) Line items
        try:
            self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=product.id,
                        product_name=product.name,
                        quantity=ci.quantity,
                        price=product.price,
                        options=ci.options,
                    )
                    for product, ci in pending_lines
                ],
            )
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("order_items insert failed for order=%s: %s", order.id, exc)
            raise LineItemPersistFailed() from exc

        # 7) Stock
        for product, ci in pending_lines:
            try:
                ok = self.product_repo.decrement_stock(session, product.id, ci.quantity)
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("stock decrement failed for %s: %s", product.id, exc)
                raise StockDecrementFailed() from exc
            if not ok:
                session.rollback()
                raise StockDecrementFailed(
                    f"Stock for {product.name} changed, please try again"
                )

        # 8) Cart clean-up; failure keeps the order
        try:
            with session.begin_nested():
                self.cart_repo.delete_ids(
                    session, owner_id, [ci.id for ci in cart_items], commit=False
                )
        except SQLAlchemyError as exc:
            logger.warning(
                "cart clean-up failed after order %s (owner=%s): %s",
                order.id,
                owner_id,
                exc,
            )

        # 9) Commit
        order_id = order.id
        try:
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("order commit failed for owner=%s: %s", owner_id, exc)
            raise OrderPersistFailed() from exc

        logger.info(
            "order created: id=%s owner=%s lines=%s total=%s",
            order_id,
            owner_id,
            len(pending_lines),
            total_amount,
        )
        return order_id

    def get_orders(self, session: Session, owner_id: str | None) -> list[Order]:
        """
        Caller's orders, newest first. Guests get an empty list.
        """
        if not owner_id:
            return []
        return self.order_repo.list_for_owner(session, owner_id)

    def get_order(
        self,
        session: Session,
        owner_id: str | None,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        One order with its lines; 404 when it does not exist or is not the caller's.
        """
        order = (
            self.order_repo.get_owned(session, owner_id, order_id) if owner_id else None
        )
        if not order:
            raise NotFound("Order not found")

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def cancel_order(
        self,
        session: Session,
        owner_id: str,
        order_id: uuid.UUID,
    ) -> Order:
        order = self.order_repo.get_owned(session, owner_id, order_id)
        if not order:
            raise NotFound("Order not found")
        if order.status not in CANCELLABLE_STATUSES:
            raise OrderNotCancellable(
                f"Order in status '{order.status}' can no longer be cancelled"
            )

        self._cancel(session, order)
        session.commit()
        session.refresh(order)
        logger.info("order cancelled: id=%s owner=%s", order.id, owner_id)
        return order

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_all(session, skip, limit)

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> Order:
        """
        Admin-only status update with simple state machine:

          pending   -> confirmed, cancelled
          confirmed -> shipped, cancelled
          shipped   -> delivered
          delivered -> (no change)
          cancelled -> (no change)

        Same status is a no-op. Cancelling restores stock.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")

        current = order.status
        new = payload.status

        if current == new:
            return order

        if new not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransition(
                f"Invalid status transition: {current} -> {new}"
            )

        if new == "cancelled":
            self._cancel(session, order)
        else:
            order.status = new
            order.updated_at = datetime.now(timezone.utc)
            self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        logger.info("order status: id=%s %s -> %s", order.id, current, new)
        return order

    # -------- Helpers --------

    def _cancel(self, session: Session, order: Order) -> None:
        """Mark cancelled and put every line's quantity back; caller commits."""
        for it in self.order_repo.list_items_for_order(session, order.id):
            self.product_repo.restore_stock(session, it.product_id, it.quantity)

        order.status = "cancelled"
        if order.payment_status != "completed":
            order.payment_status = "cancelled"
        order.updated_at = datetime.now(timezone.utc)
        self.order_repo.update_order(session, order)

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        item_dtos = [
            OrderItemRead(
                id=it.id,
                order_id=it.order_id,
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                price=it.price,
                options=it.options,
                line_total=it.price * it.quantity,
                created_at=it.created_at,
            )
            for it in items
        ]
        return OrderWithItemsRead(
            **OrderRead.model_validate(order).model_dump(),
            items=item_dtos,
        )
