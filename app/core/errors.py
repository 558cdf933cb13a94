# app/core/errors.py
"""
Typed failures raised by the services.

Every error is an HTTPException, so FastAPI renders it as
{"detail": ...} with the matching status code without any extra handler.
Services and tests can still catch the concrete class.
"""
from fastapi import HTTPException, status


class StoreError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
        )


# ---- auth ----


class Unauthenticated(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class Unauthorized(StoreError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Admin access required"


# ---- lookups ----


class NotFound(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ProductMissing(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Product not found"


# ---- cart / order validation ----


class CartMismatch(StoreError):
    default_detail = "Some cart items could not be found"


class ProductUnavailable(StoreError):
    default_detail = "Product is not available for sale"


class InsufficientStock(StoreError):
    default_detail = "Not enough stock available"


class InvalidAmount(StoreError):
    default_detail = "Order amount is invalid"


class InvalidStatusTransition(StoreError):
    default_detail = "Invalid status transition"


class OrderNotCancellable(StoreError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Order can no longer be cancelled"


class OrderNotPayable(StoreError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Order can no longer be paid"


# ---- order persistence ----


class OrderPersistFailed(StoreError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to create order"


class LineItemPersistFailed(StoreError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to save order items"


class StockDecrementFailed(StoreError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Failed to reserve stock"


# ---- payment ----


class AmountMismatch(StoreError):
    default_detail = "Payment amount does not match order amount"


class AlreadyPaid(StoreError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Order has already been paid"


class PaymentConfirmFailed(StoreError):
    default_detail = "Payment confirmation failed"

    def __init__(self, detail: str | None = None, code: str | None = None):
        super().__init__(detail)
        self.code = code


class PaymentNotConfigured(StoreError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Payment service is not configured"


# ---- admin catalog ----


class ProductInUse(StoreError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Product is referenced by existing orders; hide it instead"


class UnsupportedImage(StoreError):
    default_detail = "Unsupported image type. Allowed: JPEG, PNG, WEBP."


class ImageTooLarge(StoreError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_detail = "Image too large (max 6MB)."


class InvalidPrice(StoreError):
    default_detail = "original_price must be >= price"
