# app/repositories/order_repo.py
import uuid

from sqlalchemy import update
from sqlmodel import Session, select, col

from app.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation is a multi-step transaction.
        The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_owner(self, session: Session, owner_id: str) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.owner_id == owner_id)
            .order_by(col(Order.created_at).desc())
        )
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .order_by(col(Order.created_at).desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_owned(
        self,
        session: Session,
        owner_id: str,
        order_id: uuid.UUID,
    ) -> Order | None:
        stmt = select(Order).where(Order.id == order_id, Order.owner_id == owner_id)
        return session.exec(stmt).first()

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(col(OrderItem.created_at).asc())
        )
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items

    def recent_sales(self, session: Session, limit: int) -> list[tuple[uuid.UUID, int]]:
        """
        (product_id, quantity) of the most recent order lines.
        """
        stmt = (
            select(OrderItem.product_id, OrderItem.quantity)
            .order_by(col(OrderItem.created_at).desc())
            .limit(limit)
        )
        return [(pid, qty) for pid, qty in session.exec(stmt).all()]

    def settle_pending(
        self,
        session: Session,
        owner_id: str,
        order_id: uuid.UUID,
        values: dict,
    ) -> int:
        """
        UPDATE orders SET ...
        WHERE id = :id AND owner_id = :owner
          AND status = 'pending' AND payment_status != 'completed'

        Returns the number of rows written (0 if the order was paid or
        left pending meanwhile). No commit.
        """
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.owner_id == owner_id,
                Order.status == "pending",
                Order.payment_status != "completed",
            )
            .values(**values)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount
