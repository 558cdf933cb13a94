# app/routers/admin_products.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import AuthorizationContext, require_admin
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.schemas.product import (
    AdminProductQuery,
    ProductCreate,
    ProductImageUploadRead,
    ProductRead,
    ProductUpdate,
)
from app.services.admin_product_service import AdminProductService

router = APIRouter(prefix="/admin/products", tags=["Admin Products"])

repo = ProductRepository()
service = AdminProductService(repo)


@router.get("", response_model=list[ProductRead])
def list_admin_products(
    query: AdminProductQuery = Depends(),
    session: Session = Depends(get_session),
    ctx: AuthorizationContext = Depends(require_admin),
):
    """
    Admin product table.

    - `search` matches name or description (case-insensitive).
    - `status`, `category` filters are optional and combine with AND.
    """
    return service.list_admin_products(session, ctx, query)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    ctx: AuthorizationContext = Depends(require_admin),
):
    """
    Get any product by id, hidden ones included.
    """
    return service.get_product_by_id(session, ctx, product_id)


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
    ctx: AuthorizationContext = Depends(require_admin),
):
    return service.create_product(session, ctx, payload)


@router.patch("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
    ctx: AuthorizationContext = Depends(require_admin),
):
    """
    Partial update; only sent fields change.
    """
    return service.update_product(session, ctx, product_id, payload)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: uuid.UUID,
    hard_delete: bool = False,
    session: Session = Depends(get_session),
    ctx: AuthorizationContext = Depends(require_admin),
):
    """
    Hide a product (default) or remove it for good with `hard_delete=true`.
    """
    service.delete_product(session, ctx, product_id, hard_delete=hard_delete)
    return None


@router.post(
    "/{product_id}/images",
    response_model=ProductImageUploadRead,
    summary="Upload an image for a product",
)
def upload_product_image(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    ctx: AuthorizationContext = Depends(require_admin),
):
    """
    Upload one image and append it to the product's gallery.

    - Accepts JPEG, PNG, WEBP up to 6MB.
    - The first image also becomes `image_url`.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    url, product = service.upload_product_image(
        session,
        ctx,
        product_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
    )
    return ProductImageUploadRead(url=url, product=ProductRead.model_validate(product))
