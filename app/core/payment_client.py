# app/core/payment_client.py

"""
Server-to-server client for the payment provider's confirm endpoint.

The browser widget collects the payment and redirects back with a
paymentKey; the backend must then confirm it with the secret key:

    POST {PAYMENT_CONFIRM_URL}
    Authorization: Basic base64("<secret>:")
    {"paymentKey": ..., "orderId": ..., "amount": ...}

Every call is attempted exactly once.
"""

import base64
import logging
from decimal import Decimal
from typing import Any

import requests

from app.core.config import get_settings
from app.core.errors import PaymentConfirmFailed, PaymentNotConfigured

logger = logging.getLogger(__name__)


def _basic_auth_header(secret_key: str) -> str:
    """Secret as username, empty password."""
    token = base64.b64encode(f"{secret_key}:".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def post_payment_confirm(
    payment_key: str,
    order_id: str,
    amount: Decimal | int,
) -> dict[str, Any]:
    """
    Call the provider's confirm endpoint and return its JSON body.

    Raises
    ------
    PaymentNotConfigured:
        If PAYMENT_SECRET_KEY is missing.
    PaymentConfirmFailed:
        On a network error or any non-2xx response; carries the
        provider's message and code when it sent one.
    """
    settings = get_settings()
    if not settings.PAYMENT_SECRET_KEY:
        logger.error("PAYMENT_SECRET_KEY is not configured")
        raise PaymentNotConfigured()

    # The provider expects an integer amount in the smallest currency unit.
    body = {
        "paymentKey": payment_key,
        "orderId": order_id,
        "amount": int(amount),
    }

    try:
        response = requests.post(
            settings.PAYMENT_CONFIRM_URL,
            json=body,
            headers={
                "Authorization": _basic_auth_header(settings.PAYMENT_SECRET_KEY),
                "Content-Type": "application/json",
            },
            timeout=settings.PAYMENT_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        logger.error("Payment confirm request failed: %s", exc)
        raise PaymentConfirmFailed(f"Payment provider unreachable: {exc}")

    try:
        data = response.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    if not response.ok:
        message = data.get("message") or f"Payment confirmation failed: {response.status_code}"
        logger.error(
            "Payment confirm rejected (status=%s, code=%s): %s",
            response.status_code,
            data.get("code"),
            message,
        )
        raise PaymentConfirmFailed(message, code=data.get("code"))

    return data
