# app/repositories/product_repo.py
import uuid
from typing import Sequence

from sqlalchemy import func, or_, update
from sqlmodel import Session, select, col

from app.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    SORTABLE = {
        "created_at": Product.created_at,
        "price": Product.price,
        "name": Product.name,
        "view_count": Product.view_count,
    }

    # ----- helpers -----

    def _order(self, stmt, sort_by: str, descending: bool):
        column = self.SORTABLE[sort_by]
        return stmt.order_by(column.desc() if descending else column.asc())

    @staticmethod
    def _text_match(pattern: str, *fields):
        return or_(*(col(f).ilike(pattern) for f in fields))

    # ----- single rows -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    # ----- storefront queries -----

    def list_page(
        self,
        session: Session,
        *,
        category: str | None,
        active_only: bool,
        sort_by: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> list[Product]:
        stmt = select(Product)
        if active_only:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712
        if category:
            stmt = stmt.where(Product.category == category)
        stmt = self._order(stmt, sort_by, descending).offset(offset).limit(limit)
        return list(session.exec(stmt).all())

    def count(
        self,
        session: Session,
        *,
        category: str | None,
        active_only: bool,
    ) -> int:
        stmt = select(func.count()).select_from(Product)
        if active_only:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712
        if category:
            stmt = stmt.where(Product.category == category)
        return int(session.exec(stmt).one() or 0)

    def list_active_categories(self, session: Session) -> list[str]:
        """Category column of every active product (one entry per row)."""
        stmt = select(Product.category).where(
            Product.is_active == True,  # noqa: E712
            col(Product.category).is_not(None),
        )
        return [c for c in session.exec(stmt).all() if c]

    def list_active_by_ids(
        self,
        session: Session,
        product_ids: Sequence[uuid.UUID],
    ) -> list[Product]:
        if not product_ids:
            return []
        stmt = select(Product).where(
            Product.is_active == True,  # noqa: E712
            col(Product.id).in_(list(product_ids)),
        )
        return list(session.exec(stmt).all())

    def list_promotional(self, session: Session, limit: int) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.is_active == True, Product.is_promotional == True)  # noqa: E712
            .order_by(col(Product.created_at).desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_latest(self, session: Session, limit: int) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.is_active == True)  # noqa: E712
            .order_by(col(Product.created_at).desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_collaboration(
        self,
        session: Session,
        category: str,
        keywords: Sequence[str],
        limit: int,
    ) -> list[Product]:
        """
        Active products in `category` OR whose name/description contains
        any keyword (case-insensitive substring).
        """
        conditions = [Product.category == category]
        for kw in keywords:
            conditions.append(
                self._text_match(f"%{kw}%", Product.name, Product.description)
            )
        stmt = (
            select(Product)
            .where(Product.is_active == True, or_(*conditions))  # noqa: E712
            .order_by(col(Product.created_at).desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    # ----- admin queries -----

    def search(
        self,
        session: Session,
        *,
        search: str | None,
        status: str | None,
        category: str | None,
        sort_by: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> list[Product]:
        stmt = select(Product)
        if search:
            stmt = stmt.where(
                self._text_match(f"%{search}%", Product.name, Product.description)
            )
        if status:
            stmt = stmt.where(Product.status == status)
        if category:
            stmt = stmt.where(Product.category == category)
        stmt = self._order(stmt, sort_by, descending).offset(offset).limit(limit)
        return list(session.exec(stmt).all())

    # ----- atomic counters -----

    def decrement_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Conditional decrement:

            UPDATE products SET stock_quantity = stock_quantity - :q
            WHERE id = :id AND stock_quantity >= :q

        Returns False when no row matched (missing product or not enough
        stock). No commit; runs inside the caller's transaction.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(stock_quantity=Product.stock_quantity - quantity)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1

    def restore_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity + quantity)
        )
        session.exec(stmt)  # type: ignore[call-overload]

    def increment_view_count(self, session: Session, product_id: uuid.UUID) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(view_count=Product.view_count + 1)
        )
        session.exec(stmt)  # type: ignore[call-overload]
        session.commit()

    # ----- CRUD -----

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.commit()
