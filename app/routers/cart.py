# app/routers/cart.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import get_current_user_id, require_auth
from app.database import get_session
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartCount,
    CartItemCreate,
    CartItemIds,
    CartItemRead,
    CartItemUpdate,
    CartSummary,
)
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
):
    """
    Get current user's cart with product details and totals.

    Guests get an empty cart.
    """
    return service.get_cart_summary(session, user_id)


@router.get("/count", response_model=CartCount)
def count_cart_items(
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
):
    """Header badge; 0 for guests."""
    return CartCount(count=service.count_entries(session, user_id))


@router.post("", response_model=CartItemRead, status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    user_id: str = Depends(require_auth),
):
    """
    Add product to the current user's cart.

    Same product + same options merges into the existing entry.
    """
    return service.add_to_cart(session, user_id, payload)


@router.patch("/{item_id}", response_model=CartItemRead)
def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    user_id: str = Depends(require_auth),
):
    """
    Set the quantity of one cart entry.
    """
    return service.update_quantity(session, user_id, item_id, payload.quantity)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_cart_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    user_id: str = Depends(require_auth),
):
    service.remove_entry(session, user_id, item_id)
    return None


@router.post("/remove", response_model=CartCount)
def remove_cart_items(
    payload: CartItemIds,
    session: Session = Depends(get_session),
    user_id: str = Depends(require_auth),
):
    """
    Remove several entries at once; returns how many were removed.
    """
    return CartCount(count=service.remove_entries(session, user_id, payload.cart_item_ids))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(
    session: Session = Depends(get_session),
    user_id: str = Depends(require_auth),
):
    """
    Clear the entire cart.
    """
    service.clear_cart(session, user_id)
    return None
