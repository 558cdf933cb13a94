# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import get_current_user_id, require_admin, require_auth
from app.database import get_session
from app.repositories.order_repo import OrderRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    OrderCreate,
    OrderCreated,
    OrderRead,
    OrderWithItemsRead,
    OrderStatusUpdate,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
cart_repo = CartRepository()
product_repo = ProductRepository()
service = OrderService(order_repo, cart_repo, product_repo)


# -------- User-facing endpoints --------


@router.post(
    "/checkout",
    response_model=OrderCreated,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
):
    """
    Create a pending order from the selected cart entries.

    The returned order_id is handed to the payment widget.
    """
    order_id = service.create_order(session, user_id, payload)
    return OrderCreated(order_id=order_id)


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
):
    """
    List the caller's orders (without items), newest first.
    """
    return service.get_orders(session, user_id)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
):
    """
    Get a single order (with items) belonging to the caller.
    """
    return service.get_order(session, user_id, order_id)


@router.post(
    "/me/{order_id}/cancel",
    response_model=OrderRead,
)
def cancel_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    user_id: str = Depends(require_auth),
):
    """
    Cancel a pending or confirmed order and put its stock back.
    """
    return service.cancel_order(session, user_id, order_id)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    return service.list_all_orders(session, skip, limit)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_order_admin(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Admin-only status change following the order state machine.
    """
    return service.update_status(session, order_id, payload)
