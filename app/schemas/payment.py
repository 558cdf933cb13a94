# app/schemas/payment.py
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class PaymentConfirmRequest(SQLModel):
    """
    Query parameters the payment widget appends to the success URL,
    forwarded by the storefront as a JSON body.
    """

    model_config = ConfigDict(extra="forbid")

    paymentKey: str = Field(min_length=1)
    orderId: uuid.UUID
    amount: Decimal = Field(gt=0)


class PaymentFailRequest(SQLModel):
    """
    Query parameters the payment widget appends to the fail URL.
    """

    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    orderId: uuid.UUID | None = None


class PaymentFailRead(SQLModel):
    code: str
    message: str
    order_id: uuid.UUID | None = None
    recorded: bool


class SettlementInfo(SQLModel):
    """
    Result of a successful provider confirm.

    payment_data is the provider's payload, verbatim.
    """

    payment_key: str
    order_id: str
    status: str
    method: str
    payment_data: dict[str, Any]

    @property
    def total_amount(self) -> Decimal | None:
        raw = self.payment_data.get("totalAmount")
        if raw is None:
            return None
        try:
            amount = Decimal(str(raw))
        except InvalidOperation:
            return None
        return amount if amount.is_finite() else None
