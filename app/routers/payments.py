# app/routers/payments.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderRead
from app.schemas.payment import PaymentConfirmRequest, PaymentFailRead, PaymentFailRequest
from app.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])

service = PaymentService(OrderRepository())


@router.post("/confirm", response_model=OrderRead)
def confirm_payment(
    payload: PaymentConfirmRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(require_auth),
):
    """
    Called by the storefront's success page with the widget's
    paymentKey / orderId / amount.

    Confirms with the provider, then marks the order paid and confirmed.
    """
    return service.confirm_and_settle(session, user_id, payload)


@router.post("/fail", response_model=PaymentFailRead)
def payment_failed(
    payload: PaymentFailRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(require_auth),
):
    """
    Called by the storefront's fail page; echoes the provider's code/message.
    """
    return service.record_failure(session, user_id, payload)
