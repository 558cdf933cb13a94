# app/services/admin_product_service.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.auth import AuthorizationContext
from app.core.errors import (
    ImageTooLarge,
    InvalidPrice,
    NotFound,
    ProductInUse,
    UnsupportedImage,
)
from app.core.storage_utils import generate_filename, upload_to_storage
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.product import AdminProductQuery, ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


# --- Image config ---

MAX_IMAGE_BYTES = 6 * 1024 * 1024  # 6MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def is_active_for(status: str) -> bool:
    """Only hidden products are inactive."""
    return status != "hidden"


def normalize_images(data: dict[str, Any]) -> dict[str, Any]:
    """
    Make image_urls authoritative and keep the legacy image_url in step.

      - image_urls sent       => image_url = first entry (or None if empty)
      - only image_url sent   => image_urls = [image_url] (or None)
      - neither               => untouched
    """
    if "image_urls" in data:
        urls = [u for u in (data["image_urls"] or []) if u]
        data["image_urls"] = urls or None
        data["image_url"] = urls[0] if urls else None
    elif "image_url" in data:
        url = data["image_url"]
        data["image_urls"] = [url] if url else None
    return data


class AdminProductService:
    """
    Catalog management for administrators.

    Every method checks the AuthorizationContext before touching data,
    even though the router already gates on it.
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Helpers -----

    @staticmethod
    def _validate_and_get_ext(content_type: str, file_bytes: bytes) -> str:
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise UnsupportedImage()

        if len(file_bytes) > MAX_IMAGE_BYTES:
            raise ImageTooLarge()

        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    def _get(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise NotFound("Product not found")
        return product

    # ----- Reads -----

    def list_admin_products(
        self,
        session: Session,
        ctx: AuthorizationContext,
        query: AdminProductQuery,
    ) -> list[Product]:
        ctx.require_admin()
        return self.repo.search(
            session,
            search=query.search.strip() if query.search else None,
            status=query.status,
            category=query.category,
            sort_by=query.sort_by,
            descending=query.sort_order == "desc",
            offset=query.offset,
            limit=query.limit,
        )

    def get_product_by_id(
        self,
        session: Session,
        ctx: AuthorizationContext,
        product_id: uuid.UUID,
    ) -> Product:
        """Any status, hidden included."""
        ctx.require_admin()
        return self._get(session, product_id)

    # ----- Writes -----

    def create_product(
        self,
        session: Session,
        ctx: AuthorizationContext,
        payload: ProductCreate,
    ) -> Product:
        admin_id = ctx.require_admin()

        data = normalize_images(payload.model_dump())
        product = Product(**data, is_active=is_active_for(payload.status))
        product = self.repo.create(session, product)
        logger.info("product created: id=%s by=%s", product.id, admin_id)
        return product

    def update_product(
        self,
        session: Session,
        ctx: AuthorizationContext,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update: only fields present in the payload are written.

        Writing status also writes is_active. The merged result must keep
        original_price >= price; nothing is written otherwise.
        """
        admin_id = ctx.require_admin()
        product = self._get(session, product_id)

        data = normalize_images(payload.model_dump(exclude_unset=True))
        if "status" in data:
            data["is_active"] = is_active_for(data["status"])

        price = data.get("price", product.price)
        original_price = data.get("original_price", product.original_price)
        if original_price is not None and original_price < price:
            raise InvalidPrice(
                f"original_price ({original_price}) must be >= price ({price})"
            )

        for field, value in data.items():
            setattr(product, field, value)
        product.updated_at = datetime.now(timezone.utc)

        product = self.repo.update(session, product)
        logger.info(
            "product updated: id=%s fields=%s by=%s",
            product.id,
            sorted(data),
            admin_id,
        )
        return product

    def delete_product(
        self,
        session: Session,
        ctx: AuthorizationContext,
        product_id: uuid.UUID,
        hard_delete: bool = False,
    ) -> None:
        """
        Soft delete (default): status=hidden, is_active=False; reversible.
        Hard delete removes the row; refused while order lines reference it.
        """
        admin_id = ctx.require_admin()
        product = self._get(session, product_id)

        if not hard_delete:
            product.status = "hidden"
            product.is_active = False
            product.updated_at = datetime.now(timezone.utc)
            self.repo.update(session, product)
            logger.info("product hidden: id=%s by=%s", product_id, admin_id)
            return

        try:
            self.repo.delete(session, product)
        except IntegrityError as exc:
            session.rollback()
            raise ProductInUse() from exc
        logger.info("product deleted: id=%s by=%s", product_id, admin_id)

    # ----- Images -----

    def upload_product_image(
        self,
        session: Session,
        ctx: AuthorizationContext,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> tuple[str, Product]:
        """
        Upload one image and append its public URL to image_urls.

        Path pattern:
            products/<product_id>/<uuid>.<ext>
        """
        ctx.require_admin()
        product = self._get(session, product_id)
        ext = self._validate_and_get_ext(content_type, file_bytes)

        path = f"products/{product.id}/{generate_filename(ext)}"
        url = upload_to_storage(path, file_bytes, content_type)

        product.image_urls = [*(product.image_urls or []), url]
        if not product.image_url:
            product.image_url = url
        product.updated_at = datetime.now(timezone.utc)

        return url, self.repo.update(session, product)
