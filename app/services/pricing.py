# app/services/pricing.py
from decimal import Decimal

FREE_SHIPPING_THRESHOLD = Decimal("50000")
FLAT_SHIPPING_FEE = Decimal("3000")

# Allowed difference between the provider's amount and the stored total
PAYMENT_AMOUNT_TOLERANCE = Decimal("1")


def calculate_shipping_fee(subtotal: Decimal) -> Decimal:
    """0 at or above the free-shipping threshold, flat fee below it."""
    if subtotal >= FREE_SHIPPING_THRESHOLD:
        return Decimal("0")
    return FLAT_SHIPPING_FEE
