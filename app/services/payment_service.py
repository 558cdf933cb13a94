# app/services/payment_service.py
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import Session

from app.core.errors import AlreadyPaid, AmountMismatch, NotFound, OrderNotPayable
from app.core.payment_client import post_payment_confirm
from app.models.order import Order
from app.repositories.order_repo import OrderRepository
from app.schemas.payment import (
    PaymentConfirmRequest,
    PaymentFailRead,
    PaymentFailRequest,
    SettlementInfo,
)
from app.services.pricing import PAYMENT_AMOUNT_TOLERANCE

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "카드"


def confirm_payment(
    payment_key: str,
    order_id: uuid.UUID | str,
    amount: Decimal,
) -> SettlementInfo:
    """
    Exchange the widget's paymentKey for a settlement.

    The provider payload is kept verbatim in payment_data.
    """
    data = post_payment_confirm(payment_key, str(order_id), amount)
    return SettlementInfo(
        payment_key=data.get("paymentKey") or payment_key,
        order_id=str(data.get("orderId") or order_id),
        status=data.get("status") or "DONE",
        method=data.get("method") or DEFAULT_PAYMENT_METHOD,
        payment_data=data,
    )


class PaymentService:
    """
    Writes provider settlements onto orders.

    Order of checks for a settlement:
      1. order exists and belongs to the caller (404 otherwise)
      2. settled amount within PAYMENT_AMOUNT_TOLERANCE of total_amount
      3. not already completed (duplicate callbacks are rejected)
      4. still pending (cancelled or shipped orders cannot be paid)
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    def _owned_order(self, session: Session, owner_id: str, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_owned(session, owner_id, order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    def update_order_payment(
        self,
        session: Session,
        owner_id: str,
        order_id: uuid.UUID,
        settlement: SettlementInfo,
    ) -> Order:
        order = self._owned_order(session, owner_id, order_id)

        paid = settlement.total_amount
        if paid is None or abs(paid - order.total_amount) > PAYMENT_AMOUNT_TOLERANCE:
            raise AmountMismatch(
                f"Payment amount does not match order amount "
                f"(paid {paid}, expected {order.total_amount})"
            )

        if order.payment_status == "completed":
            raise AlreadyPaid()
        if order.status != "pending":
            raise OrderNotPayable()

        written = self.order_repo.settle_pending(
            session,
            owner_id,
            order_id,
            {
                "payment_id": settlement.payment_key,
                "payment_method": settlement.method,
                "payment_status": "completed",
                "payment_data": settlement.payment_data,
                "status": "confirmed",
                "updated_at": datetime.now(timezone.utc),
            },
        )
        if written != 1:
            session.rollback()
            raise OrderNotPayable()

        session.commit()
        session.refresh(order)
        logger.info(
            "payment settled: order=%s owner=%s key=%s amount=%s",
            order_id,
            owner_id,
            settlement.payment_key,
            paid,
        )
        return order

    def confirm_and_settle(
        self,
        session: Session,
        owner_id: str,
        payload: PaymentConfirmRequest,
    ) -> Order:
        """
        Success-redirect flow: ownership, payability and amount are checked
        before the provider is called, then the settlement is written.
        """
        order = self._owned_order(session, owner_id, payload.orderId)
        if order.payment_status == "completed":
            raise AlreadyPaid()
        if order.status != "pending":
            raise OrderNotPayable()
        if abs(payload.amount - order.total_amount) > PAYMENT_AMOUNT_TOLERANCE:
            raise AmountMismatch()

        settlement = confirm_payment(payload.paymentKey, payload.orderId, payload.amount)
        return self.update_order_payment(session, owner_id, payload.orderId, settlement)

    def record_failure(
        self,
        session: Session,
        owner_id: str,
        payload: PaymentFailRequest,
    ) -> PaymentFailRead:
        """
        Fail-redirect flow: mark the caller's unpaid order as failed.

        A completed order, a foreign order or a missing orderId is left alone.
        """
        recorded = False
        if payload.orderId is not None:
            order = self.order_repo.get_owned(session, owner_id, payload.orderId)
            if order and order.payment_status not in ("completed", "cancelled"):
                order.payment_status = "failed"
                order.updated_at = datetime.now(timezone.utc)
                self.order_repo.update_order(session, order)
                session.commit()
                recorded = True

        logger.info(
            "payment failed: order=%s code=%s recorded=%s",
            payload.orderId,
            payload.code,
            recorded,
        )
        return PaymentFailRead(
            code=payload.code,
            message=payload.message,
            order_id=payload.orderId,
            recorded=recorded,
        )
