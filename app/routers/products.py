# app/routers/products.py
import uuid

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.database import get_session
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.product import CategoryInfo, ProductPage, ProductRead, SortDirection
from app.services.catalog_service import DEFAULT_PAGE_SIZE, CatalogService

router = APIRouter(prefix="/products", tags=["Products"])

service = CatalogService(ProductRepository(), OrderRepository())


@router.get("", response_model=ProductPage)
def list_products(
    session: Session = Depends(get_session),
    category: str | None = None,
    sort_by: str = "created_at",
    sort_order: SortDirection = "desc",
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
):
    """
    Public product list (active products only).

    - Unknown `sort_by` falls back to newest first.
    - Never fails on a database error; returns an empty page instead.
    """
    return service.list_products(
        session,
        category=category,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )


@router.get("/categories", response_model=list[CategoryInfo])
def list_categories(session: Session = Depends(get_session)):
    return service.list_categories(session)


# -------- Home page sections --------


@router.get("/popular", response_model=list[ProductRead])
def popular_products(
    session: Session = Depends(get_session),
    limit: int = Query(8, ge=1, le=50),
):
    """Best sellers by ordered quantity."""
    return service.popular_products(session, limit)


@router.get("/promotional", response_model=list[ProductRead])
def promotional_products(
    session: Session = Depends(get_session),
    limit: int = Query(8, ge=1, le=50),
):
    return service.promotional_products(session, limit)


@router.get("/latest", response_model=list[ProductRead])
def latest_products(
    session: Session = Depends(get_session),
    limit: int = Query(12, ge=1, le=50),
):
    return service.latest_products(session, limit)


@router.get("/collaboration", response_model=list[ProductRead])
def collaboration_products(
    session: Session = Depends(get_session),
    limit: int = Query(6, ge=1, le=50),
):
    return service.collaboration_products(session, limit)


# -------- Detail --------


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single active product and count the view.
    """
    product = service.get_product(session, product_id)
    service.record_view(session, product_id)
    return product
