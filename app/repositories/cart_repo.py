# app/repositories/cart_repo.py
import uuid
from typing import Sequence

from sqlalchemy import delete, func
from sqlmodel import Session, select, col

from app.models.cart import CartItem


class CartRepository:

    # Get items for a user, newest first
    def list_for_owner(self, session: Session, owner_id: str) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.owner_id == owner_id)
            .order_by(col(CartItem.created_at).desc())
        )
        return list(session.exec(stmt).all())

    def list_by_ids(
        self,
        session: Session,
        owner_id: str,
        item_ids: Sequence[uuid.UUID],
    ) -> list[CartItem]:
        """Only rows owned by owner_id; foreign ids simply don't match."""
        if not item_ids:
            return []
        stmt = select(CartItem).where(
            CartItem.owner_id == owner_id,
            col(CartItem.id).in_(list(item_ids)),
        )
        return list(session.exec(stmt).all())

    def get_owned(
        self,
        session: Session,
        owner_id: str,
        item_id: uuid.UUID,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.id == item_id,
            CartItem.owner_id == owner_id,
        )
        return session.exec(stmt).first()

    def find_entry(
        self,
        session: Session,
        owner_id: str,
        product_id: uuid.UUID,
        options_key: str,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.owner_id == owner_id,
            CartItem.product_id == product_id,
            CartItem.options_key == options_key,
        )
        return session.exec(stmt).first()

    def count_for_owner(self, session: Session, owner_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(CartItem)
            .where(CartItem.owner_id == owner_id)
        )
        return int(session.exec(stmt).one() or 0)

    # CRUD
    def create(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def update(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete_ids(
        self,
        session: Session,
        owner_id: str,
        item_ids: Sequence[uuid.UUID],
        *,
        commit: bool = True,
    ) -> int:
        """
        Delete the owner's rows among item_ids; returns the number removed.

        commit=False leaves the delete inside the caller's transaction.
        """
        if not item_ids:
            return 0
        stmt = delete(CartItem).where(
            CartItem.owner_id == owner_id,
            col(CartItem.id).in_(list(item_ids)),
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        if commit:
            session.commit()
        return result.rowcount

    def clear_owner_cart(self, session: Session, owner_id: str) -> int:
        stmt = delete(CartItem).where(CartItem.owner_id == owner_id)
        result = session.exec(stmt)  # type: ignore[call-overload]
        session.commit()
        return result.rowcount
